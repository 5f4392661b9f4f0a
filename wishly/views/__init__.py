from __future__ import annotations

from flask import request

from ..errors import WishlyError


def _scalar(name: str, value):
    """JSON bodies may carry numbers; nested values are rejected."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value).lower() if isinstance(value, bool) else str(value)
    raise WishlyError(f"{name} must be a string.")


def _source():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else request.form


def form_value(name: str, default=None):
    """Reads a field from a JSON body or a form post."""
    return _scalar(name, _source().get(name, default))


def form_flag(name: str) -> bool:
    return (form_value(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def form_fields(*names: str) -> dict:
    """Only the fields present in the request, for partial updates."""
    source = _source()
    return {n: _scalar(n, source.get(n)) for n in names if n in source}
