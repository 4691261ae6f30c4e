from __future__ import annotations

import logging

from flask import Flask, request, session

from ..common.http import current_principal, fail, ok
from ..container import Container
from ..core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = request.get_json(silent=True) or {}
        try:
            principal = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))
        except AuthenticationError as e:
            return fail(str(e), 401)
        except Exception:
            logger.exception("Login failed unexpectedly")
            return fail("Internal server error", 500)

        session.clear()
        session.permanent = bool(data.get("rememberMe"))
        session["user_id"] = principal.user_id
        session["role"] = principal.role.value
        session["name"] = principal.full_name

        return ok({"id": principal.user_id, "name": principal.full_name, "role": principal.role.value})

    @app.route("/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok(message="Logged out")

    @app.route("/auth/me", methods=["GET"], endpoint="me")
    def me():
        principal = current_principal()
        if principal is None:
            return fail("Authentication required", 401)
        return ok({"id": principal.user_id, "name": principal.full_name, "role": principal.role.value})
