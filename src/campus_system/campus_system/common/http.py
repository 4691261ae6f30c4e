from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import jsonify, request, session

from ..access.policy import Principal
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    # Unresolved unique-key race.
    (DuplicateError, 500),
    (NotFoundError, 404),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (ConflictError, 400),
    (ValidationError, 400),
)


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 400


def ok(data=None, *, status: int = 200, message: Optional[str] = None):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def fail(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def current_principal() -> Optional[Principal]:
    """Principal stored in the Flask session by the login endpoint."""

    user_id = session.get("user_id")
    role = session.get("role")
    if user_id is None or role is None:
        return None
    try:
        return Principal(user_id=int(user_id), role=Role(role), full_name=session.get("name"))
    except ValueError:
        return None


def api_view(view):
    """Require a logged-in principal and turn domain errors into JSON.

    The wrapped view receives the principal as its first argument.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        actor = current_principal()
        if actor is None:
            return fail("Authentication required", 401)
        try:
            return view(actor, *args, **kwargs)
        except DomainError as e:
            status = status_for(e)
            if status >= 500:
                logger.exception("Unresolved domain error on %s %s", request.method, request.path)
                return fail("Internal server error", status)
            return fail(str(e), status)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            return fail("Internal server error", 500)

    return wrapper


def json_body(*, expect=dict):
    data = request.get_json(silent=True)
    if not isinstance(data, expect):
        kind = "an array" if expect is list else "an object"
        raise ValidationError(f"Request body must be {kind}")
    return data
