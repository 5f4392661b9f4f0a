from __future__ import annotations

import base64
import binascii
import hashlib

from cryptography.fernet import Fernet, InvalidToken
from flask import Flask, current_app
from passlib.context import CryptContext


pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

CIPHER_EXTENSION = "wishly.assignment_cipher"


def hash_client_key(client_hash: str) -> str:
    """Store an argon2 hash of the client-provided SHA-256(passphrase)."""
    return pwd_context.hash(client_hash)


def verify_client_key(client_hash: str, stored_hash: str) -> bool:
    return pwd_context.verify(client_hash, stored_hash)


class CipherError(ValueError):
    pass


def build_assignment_cipher(explicit_key: str, secret_key: str) -> Fernet:
    """
    Fernet keyed by ASSIGNMENT_ENC_KEY when given, else derived from SECRET_KEY
    so stored pairs stay readable across restarts.
    """
    explicit_key = (explicit_key or "").strip()
    if explicit_key:
        try:
            return Fernet(explicit_key.encode("utf-8"))
        except (binascii.Error, ValueError) as e:
            raise CipherError(
                "ASSIGNMENT_ENC_KEY must be a urlsafe base64-encoded 32-byte key "
                "(see cryptography.fernet.Fernet.generate_key)."
            ) from e

    digest = hashlib.sha256(b"wishly-santa-assignments|" + (secret_key or "").encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def init_assignment_cipher(app: Flask) -> None:
    """Fails app startup on a malformed key instead of at the first match."""
    app.extensions[CIPHER_EXTENSION] = build_assignment_cipher(
        app.config.get("ASSIGNMENT_ENC_KEY"),
        app.config.get("SECRET_KEY"),
    )


def _cipher() -> Fernet:
    try:
        return current_app.extensions[CIPHER_EXTENSION]
    except KeyError as e:
        raise CipherError("Assignment cipher is not initialised.") from e


# Occasion creators can read their occasion's rows, so each receiver is
# stored as a Fernet token. Anyone holding the key can still decrypt.

def encrypt_receiver(receiver_id: int) -> str:
    token = _cipher().encrypt(str(int(receiver_id)).encode("utf-8"))
    return token.decode("utf-8")


def decrypt_receiver(token: str) -> int:
    """Raises CipherError on a token this key did not produce."""
    try:
        raw = _cipher().decrypt(token.encode("utf-8"))
        return int(raw.decode("utf-8"))
    except (InvalidToken, ValueError, TypeError) as e:
        raise CipherError("Invalid assignment token") from e
