"""
Auth Blueprint — identity echo for the authenticated caller.

  GET /api/v1/auth/me  — principal (org, user, role) plus the user/org rows when present

Tokens are issued by the identity provider; the API only verifies them.
"""

from flask import Blueprint, jsonify

from app.middleware.permission_required import current_principal, require_auth
from app.services.user_service import get_profile

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """Echo the resolved principal with its user and organization profile."""
    principal = current_principal()
    user, org = get_profile(principal)
    return jsonify({
        "principal": principal.to_dict(),
        "user": user.to_dict() if user else None,
        "organization": org.to_dict() if org else None,
    }), 200
