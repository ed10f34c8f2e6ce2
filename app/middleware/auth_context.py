"""
Auth Context Middleware — resolves the request principal, sets g.principal.

Sources, in priority order:
  1. JWT (Authorization: Bearer <token>)  →  sub / org_id / role claims
  2. Dev headers (X-Org-Id, X-User-Id, X-Role), only when DEV_AUTH_HEADERS is on

A request with no usable credentials leaves g.principal as None; the
require_auth decorator turns that into a 401. Invalid credentials are never
an error here, so public routes (health checks) keep working.
"""

import logging

import jwt as pyjwt
from flask import current_app, g, request

from app.core.principal import Principal
from app.models.auth import USER_ROLES
from app.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip principal resolution entirely
AUTH_SKIP_PREFIXES = (
    "/api/v1/health",
)


def _parse_id(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def build_principal(org_id, user_id, role) -> Principal | None:
    """Validate raw claim values and build a Principal, or None if any is unusable."""
    org_id = _parse_id(org_id)
    user_id = _parse_id(user_id)
    role = (role or "").strip().upper() if isinstance(role, str) else None
    if org_id is None or user_id is None or role not in USER_ROLES:
        return None
    return Principal(org_id=org_id, user_id=user_id, role=role)


def principal_from_bearer(auth_header: str) -> Principal | None:
    token = auth_header[7:].strip()  # Strip "Bearer "
    try:
        payload = decode_access_token(token)
    except pyjwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except pyjwt.InvalidTokenError as exc:
        logger.warning("Rejected invalid access token: %s", exc)
        return None
    return build_principal(payload.get("org_id"), payload.get("sub"), payload.get("role"))


def principal_from_headers(headers) -> Principal | None:
    return build_principal(
        headers.get("X-Org-Id"),
        headers.get("X-User-Id"),
        headers.get("X-Role"),
    )


def init_auth_context(app):
    """Register auth context middleware as a before_request hook."""

    @app.before_request
    def _auth_context():
        g.principal = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in AUTH_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            g.principal = principal_from_bearer(auth_header)
            return

        if current_app.config.get("DEV_AUTH_HEADERS"):
            g.principal = principal_from_headers(request.headers)
