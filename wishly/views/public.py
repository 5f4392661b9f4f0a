from __future__ import annotations

from flask import Blueprint, jsonify
from flask.views import MethodView

from ..models import Occasion, User


public_bp = Blueprint("public", __name__)


class LandingView(MethodView):
    def get(self):
        return jsonify(
            {
                "app": "wishly",
                "num_users": User.query.count(),
                "num_occasions": Occasion.query.count(),
            }
        )


public_bp.add_url_rule("/", view_func=LandingView.as_view("landing"))
