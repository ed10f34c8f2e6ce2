"""
Field Service Platform
User blueprint — organization members.

Endpoints:
    GET   /api/v1/users        — members of the caller's org (?role=)   ADMIN, DISPATCHER
    POST  /api/v1/users        — add a member                           ADMIN
    PATCH /api/v1/users/<id>   — change a member's role                ADMIN
"""

from flask import Blueprint, jsonify, request

from app.blueprints import list_response, require_choice
from app.middleware.permission_required import current_principal, require_role
from app.models.auth import ROLE_ADMIN, ROLE_DISPATCHER, USER_ROLES
from app.services import user_service
from app.utils.errors import E, api_error

user_bp = Blueprint("user", __name__, url_prefix="/api/v1")


@user_bp.route("/users", methods=["GET"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def list_users():
    role = request.args.get("role")
    if role and role not in USER_ROLES:
        return api_error(E.VALIDATION_INVALID, f"role must be one of {list(USER_ROLES)}")
    return list_response(user_service.list_users(current_principal(), role))


@user_bp.route("/users", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_user():
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("email"), str) or not data["email"].strip():
        return api_error(E.VALIDATION_REQUIRED, "email is required")
    err = require_choice(data, "role", USER_ROLES)
    if err:
        return err

    user = user_service.create_user(current_principal(), data)
    return jsonify(user.to_dict()), 201


@user_bp.route("/users/<int:user_id>", methods=["PATCH"])
@require_role(ROLE_ADMIN)
def update_user(user_id):
    data = request.get_json(silent=True) or {}
    err = require_choice(data, "role", USER_ROLES, required=True)
    if err:
        return err

    user = user_service.update_user_role(current_principal(), user_id, data["role"])
    return jsonify(user.to_dict())
