from __future__ import annotations

import logging

from flask import Blueprint, jsonify
from flask.views import MethodView
from flask_login import login_user, logout_user, current_user
from flask_wtf.csrf import generate_csrf

from ..errors import Conflict, WishlyError
from ..extensions import db
from ..models import OccasionMember, User, WishlistItem
from ..policies import LoginRequiredMixin
from ..security import hash_client_key, verify_client_key
from . import form_value


logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


class AuthError(WishlyError):
    status_code = 401


class CsrfTokenView(MethodView):
    """Clients send this back in the X-CSRFToken header on writes."""
    def get(self):
        return jsonify({"csrf_token": generate_csrf()})


class RegisterView(MethodView):
    def post(self):
        name = (form_value("name") or "").strip()
        email = (form_value("email") or "").strip().lower()
        client_hash = (form_value("client_hash") or "").strip().lower()

        if not name:
            raise WishlyError("Name is required.")
        if not email:
            raise WishlyError("Email is required.")
        if not client_hash:
            raise WishlyError("Missing passphrase hash. Please try again.")

        if User.query.filter_by(email=email).first():
            raise Conflict("That email is already registered.")

        user = User(name=name, email=email, passkey_hash=hash_client_key(client_hash))
        db.session.add(user)
        db.session.commit()

        logger.info("Registered user %s", user.id)
        resp = jsonify({"user": user.to_dict()})
        resp.status_code = 201
        return resp


class LoginView(MethodView):
    def post(self):
        email = (form_value("email") or "").strip().lower()
        client_hash = (form_value("client_hash") or "").strip().lower()

        if not email:
            raise WishlyError("Email is required.")

        user = User.query.filter_by(email=email).first()
        if not user or not client_hash or not verify_client_key(client_hash, user.passkey_hash):
            raise AuthError("Invalid email or passphrase.")

        login_user(user)
        return jsonify({"user": user.to_dict()})


class LogoutView(MethodView):
    def get(self):
        if current_user.is_authenticated:
            logout_user()
        return jsonify({"ok": True})


class MeView(LoginRequiredMixin):
    def get(self):
        return jsonify({"user": current_user.to_dict()})

    def patch(self):
        name = (form_value("name") or "").strip()
        if not name:
            raise WishlyError("Please enter your name.")
        if len(name) > 64:
            raise WishlyError("Name must be 64 characters or fewer.")

        current_user.name = name
        # Member rows and purchase marks carry a copy of the display name.
        OccasionMember.query.filter_by(user_id=current_user.id).update({"name": name}, synchronize_session=False)
        WishlistItem.query.filter_by(purchased_by_id=current_user.id).update(
            {"purchased_by_name": name}, synchronize_session=False
        )
        db.session.commit()

        logger.info("User %s updated their profile", current_user.id)
        return jsonify({"user": current_user.to_dict()})


class ChangePassphraseView(LoginRequiredMixin):
    def post(self):
        client_hash = (form_value("client_hash") or "").strip().lower()
        if not client_hash:
            raise WishlyError("Missing passphrase hash. Please try again.")

        current_user.passkey_hash = hash_client_key(client_hash)
        db.session.commit()
        return jsonify({"ok": True})


auth_bp.add_url_rule("/csrf", view_func=CsrfTokenView.as_view("csrf"), methods=["GET"])
auth_bp.add_url_rule("/register", view_func=RegisterView.as_view("register"), methods=["POST"])
auth_bp.add_url_rule("/login", view_func=LoginView.as_view("login"), methods=["POST"])
auth_bp.add_url_rule("/logout", view_func=LogoutView.as_view("logout"), methods=["GET"])
auth_bp.add_url_rule("/me", view_func=MeView.as_view("me"), methods=["GET", "PATCH"])
auth_bp.add_url_rule("/change-passphrase", view_func=ChangePassphraseView.as_view("change_passphrase"), methods=["POST"])
