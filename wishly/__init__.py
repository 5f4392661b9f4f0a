from __future__ import annotations

import logging
import os
from flask import Flask

from .errors import register_error_handlers
from .extensions import db, login_manager, migrate, csrf
from .security import init_assignment_cipher
from .views.auth import auth_bp
from .views.occasions import occasions_bp
from .views.public import public_bp
from .views.wishlist import wishlist_bp


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///wishly.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["WTF_CSRF_ENABLED"] = _env_flag("WTF_CSRF_ENABLED", True)

    # Amazon Associates tag injected into wishlist product links
    app.config["AMAZON_ASSOCIATE_TAG"] = os.environ.get("AMAZON_ASSOCIATE_TAG", "").strip()
    # Optional explicit Fernet key for stored Secret Santa pairs
    app.config["ASSIGNMENT_ENC_KEY"] = os.environ.get("ASSIGNMENT_ENC_KEY", "").strip()
    app.config["MATCH_MAX_ATTEMPTS"] = int(os.environ.get("MATCH_MAX_ATTEMPTS", "10000"))
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO").upper()

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    init_assignment_cipher(app)
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    register_error_handlers(app)

    # Blueprints
    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(occasions_bp)
    app.register_blueprint(wishlist_bp)

    return app
