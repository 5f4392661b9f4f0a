from __future__ import annotations

from flask import request
from flask_login import current_user
from flask.views import MethodView

from .errors import Forbidden
from .extensions import login_manager
from .models import Occasion
from .services.occasions import AlreadyMatched, get_occasion_for_member


def is_creator(occasion: Occasion) -> bool:
    return current_user.is_authenticated and occasion.created_by_id == current_user.id


# --------- Class-based view Mixins ----------

class LoginRequiredMixin(MethodView):
    def dispatch_request(self, *args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        return super().dispatch_request(*args, **kwargs)


class OccasionMemberMixin(LoginRequiredMixin):
    """
    Resolves the <occasion_id> route argument into `self.occasion`.
    Non-members get a 404.
    """
    occasion: Occasion

    def dispatch_request(self, *args, **kwargs):
        if current_user.is_authenticated and "occasion_id" in kwargs:
            self.occasion = get_occasion_for_member(kwargs["occasion_id"], current_user)
        return super().dispatch_request(*args, **kwargs)


class CreatorRequiredMixin(OccasionMemberMixin):
    """Allows GET to any member; writes only to the occasion's creator."""
    def dispatch_request(self, *args, **kwargs):
        if current_user.is_authenticated and request.method != "GET":
            occasion = get_occasion_for_member(kwargs["occasion_id"], current_user)
            if not is_creator(occasion):
                raise Forbidden("Only the occasion creator can do that.")
        return super().dispatch_request(*args, **kwargs)


class OpenUntilMatchedMixin(OccasionMemberMixin):
    """
    Allows GET always.
    Blocks POST/PUT/PATCH/DELETE once the occasion has been matched.
    """
    def dispatch_request(self, *args, **kwargs):
        if current_user.is_authenticated and request.method in {"POST", "PUT", "PATCH", "DELETE"}:
            occasion = get_occasion_for_member(kwargs["occasion_id"], current_user)
            if occasion.is_matched:
                raise AlreadyMatched("Secret Santas have already been matched. You cannot add new members after matching.")
        return super().dispatch_request(*args, **kwargs)
