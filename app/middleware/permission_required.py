"""
Permission Decorators — role-based route protection.

The principal is resolved by auth_context before the view runs; these
decorators only check that it exists and carries an allowed role.

Usage:
    @bp.route("/visits", methods=["POST"])
    @require_role(ROLE_ADMIN, ROLE_DISPATCHER)
    def create_visit():
        principal = current_principal()
        ...

    @bp.route("/visits/<int:visit_id>/closeout-gate", methods=["GET"])
    @require_auth
    def closeout_gate(visit_id):
        ...

Scope checks (which records a role may see) happen in the service layer;
a decorator only decides whether the role may call the endpoint at all.
"""

import functools
import logging

from flask import g

from app.core.principal import Principal
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

AUTH_REQUIRED_MESSAGE = "Missing or invalid auth headers."
FORBIDDEN_MESSAGE = "Insufficient permissions."


def current_principal() -> Principal:
    """The principal of the current request (set by auth_context)."""
    return g.principal


def require_auth(f):
    """Decorator: require a resolved principal, else 401."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "principal", None) is None:
            return api_error(E.AUTH_REQUIRED, AUTH_REQUIRED_MESSAGE)
        return f(*args, **kwargs)
    return decorated


def require_role(*roles: str):
    """
    Decorator: require a principal whose role is one of ``roles``.

    Missing principal → 401, role outside the list → 403.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            principal = getattr(g, "principal", None)
            if principal is None:
                return api_error(E.AUTH_REQUIRED, AUTH_REQUIRED_MESSAGE)

            if principal.role not in roles:
                logger.warning(
                    "User %d (%s) denied: role not in %s on %s",
                    principal.user_id, principal.role, roles, f.__name__,
                )
                return api_error(E.FORBIDDEN, FORBIDDEN_MESSAGE)

            return f(*args, **kwargs)
        return decorated
    return decorator
