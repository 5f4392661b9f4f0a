from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user

from ..policies import (
    CreatorRequiredMixin,
    LoginRequiredMixin,
    OccasionMemberMixin,
    OpenUntilMatchedMixin,
    is_creator,
)
from ..services.assignments import assignment_for, reset_matching, run_matching
from ..services.occasions import (
    accept_invite,
    create_occasion,
    decline_invite,
    get_pending_invite,
    occasions_for_user,
    pending_invites_for,
    send_invite,
    update_occasion,
)
from . import form_fields, form_flag, form_value

occasions_bp = Blueprint("occasions", __name__)


class OccasionListView(LoginRequiredMixin):
    def get(self):
        return jsonify({"occasions": [o.to_dict() for o in occasions_for_user(current_user)]})

    def post(self):
        occasion = create_occasion(
            current_user,
            name=form_value("name"),
            occasion_type=form_value("type"),
            budget=form_value("budget"),
            on_date=form_value("date"),
            is_private=form_flag("is_private"),
        )
        resp = jsonify({"occasion": occasion.to_dict()})
        resp.status_code = 201
        return resp


class OccasionDetailView(CreatorRequiredMixin):
    def get(self, occasion_id: int):
        data = self.occasion.to_dict()
        data["is_creator"] = is_creator(self.occasion)
        return jsonify({"occasion": data})

    def patch(self, occasion_id: int):
        fields = form_fields("name", "type", "budget", "date", "is_private")
        if "is_private" in fields:
            fields["is_private"] = form_flag("is_private")
        occasion = update_occasion(self.occasion, **fields)
        return jsonify({"occasion": occasion.to_dict()})


class InviteCreateView(OpenUntilMatchedMixin):
    def post(self, occasion_id: int):
        invite = send_invite(self.occasion, current_user, form_value("email"))
        resp = jsonify({"invite": invite.to_dict()})
        resp.status_code = 201
        return resp


class PendingInvitesView(LoginRequiredMixin):
    def get(self):
        return jsonify({"invites": [i.to_dict() for i in pending_invites_for(current_user)]})


class AcceptInviteView(LoginRequiredMixin):
    def post(self, invite_id: int):
        invite = get_pending_invite(invite_id, current_user)
        occasion = accept_invite(invite, current_user)
        return jsonify({"occasion": occasion.to_dict()})


class DeclineInviteView(LoginRequiredMixin):
    def post(self, invite_id: int):
        invite = get_pending_invite(invite_id, current_user)
        decline_invite(invite, current_user)
        return jsonify({"ok": True})


class MatchView(CreatorRequiredMixin):
    def post(self, occasion_id: int):
        pairs = run_matching(self.occasion)
        # Pairs stay secret; each member fetches their own receiver.
        return jsonify({"occasion": self.occasion.to_dict(), "num_assignments": len(pairs)})


class ResetMatchView(CreatorRequiredMixin):
    def post(self, occasion_id: int):
        reset_matching(self.occasion)
        return jsonify({"occasion": self.occasion.to_dict()})


class MyAssignmentView(OccasionMemberMixin):
    def get(self, occasion_id: int):
        if not self.occasion.is_matched:
            return jsonify({"matched": False, "receiver": None})
        receiver = assignment_for(self.occasion, current_user.id)
        return jsonify({"matched": True, "receiver": receiver.to_dict() if receiver else None})


occasions_bp.add_url_rule("/occasions", view_func=OccasionListView.as_view("list"), methods=["GET", "POST"])
occasions_bp.add_url_rule("/occasions/<int:occasion_id>", view_func=OccasionDetailView.as_view("detail"), methods=["GET", "PATCH"])
occasions_bp.add_url_rule("/occasions/<int:occasion_id>/invites", view_func=InviteCreateView.as_view("invite"), methods=["POST"])

occasions_bp.add_url_rule("/invites", view_func=PendingInvitesView.as_view("pending_invites"))
occasions_bp.add_url_rule("/invites/<int:invite_id>/accept", view_func=AcceptInviteView.as_view("accept_invite"), methods=["POST"])
occasions_bp.add_url_rule("/invites/<int:invite_id>/decline", view_func=DeclineInviteView.as_view("decline_invite"), methods=["POST"])

occasions_bp.add_url_rule("/occasions/<int:occasion_id>/match", view_func=MatchView.as_view("match"), methods=["POST"])
occasions_bp.add_url_rule("/occasions/<int:occasion_id>/reset-match", view_func=ResetMatchView.as_view("reset_match"), methods=["POST"])
occasions_bp.add_url_rule("/occasions/<int:occasion_id>/my-assignment", view_func=MyAssignmentView.as_view("my_assignment"))
