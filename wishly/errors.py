from __future__ import annotations

from flask import jsonify

from .matching import InternalFailure, MatchingError


class WishlyError(RuntimeError):
    status_code = 400


class NotFound(WishlyError):
    status_code = 404


class Forbidden(WishlyError):
    status_code = 403


class Conflict(WishlyError):
    status_code = 409


def _error_response(message: str, status: int):
    resp = jsonify({"error": message})
    resp.status_code = status
    return resp


def register_error_handlers(app) -> None:
    @app.errorhandler(WishlyError)
    def handle_wishly_error(e: WishlyError):
        app.logger.warning("%s: %s", type(e).__name__, e)
        return _error_response(str(e), e.status_code)

    @app.errorhandler(MatchingError)
    def handle_matching_error(e: MatchingError):
        if isinstance(e, InternalFailure):
            app.logger.error("Matching failed: %s", e)
            return _error_response(str(e), 500)
        app.logger.warning("%s: %s", type(e).__name__, e)
        return _error_response(str(e), 400)
