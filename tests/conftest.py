import hashlib

import pytest

from wishly import create_app
from wishly.extensions import db


def client_hash(passphrase: str) -> str:
    return hashlib.sha256(passphrase.encode("utf-8")).hexdigest()


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "WTF_CSRF_ENABLED": False,
            "AMAZON_ASSOCIATE_TAG": "wishly-20",
        }
    )
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_client(app):
    """Registers a user and returns a logged-in test client for them."""
    def _make(name: str, email: str | None = None, passphrase: str = "correct horse"):
        email = email or f"{name.lower()}@example.com"
        c = app.test_client()
        resp = c.post("/auth/register", json={"name": name, "email": email, "client_hash": client_hash(passphrase)})
        assert resp.status_code == 201, resp.get_json()
        resp = c.post("/auth/login", json={"email": email, "client_hash": client_hash(passphrase)})
        assert resp.status_code == 200, resp.get_json()
        c.user_id = resp.get_json()["user"]["id"]
        return c
    return _make


def join(owner, guest, occasion_id: int, email: str) -> None:
    """Invites guest by email and accepts as guest."""
    resp = owner.post(f"/occasions/{occasion_id}/invites", json={"email": email})
    assert resp.status_code == 201, resp.get_json()
    invite_id = guest.get("/invites").get_json()["invites"][0]["id"]
    resp = guest.post(f"/invites/{invite_id}/accept")
    assert resp.status_code == 200, resp.get_json()
