from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..core.exceptions import (
    DomainError,
    NotInSessionError,
    PermissionDenied,
    ProximityError,
    StoreUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Key"

_STATUS = (
    (StoreUnavailableError, 503),
    (PermissionDenied, 403),
    (NotInSessionError, 409),
    (ProximityError, 409),
    (ValidationError, 400),
)


def current_user_key() -> str:
    """Identity of the caller; sign-in itself happens outside this service."""
    key = (request.headers.get(USER_HEADER) or "").strip()
    if not key:
        raise ValidationError(f"Missing {USER_HEADER} header")
    return key


def error_response(exc: DomainError):
    status = next((code for kind, code in _STATUS if isinstance(exc, kind)), 400)
    return jsonify({"success": False, "error": type(exc).__name__, "message": str(exc)}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(exc: DomainError):
        if isinstance(exc, StoreUnavailableError):
            logger.warning("%s %s: %s", request.method, request.path, exc)
        return error_response(exc)
