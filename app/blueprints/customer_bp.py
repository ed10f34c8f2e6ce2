"""
Field Service Platform
Customer blueprint — customers, their service sites and site equipment.

Endpoints:
    CUSTOMER  /api/v1/customers          GET, POST
              /api/v1/customers/<id>     GET, PUT
    SITE      /api/v1/sites              GET, POST   (?customer_id=)
              /api/v1/sites/<id>         GET, PUT
    ASSET     /api/v1/assets             GET, POST   (?site_id=)
              /api/v1/assets/<id>        GET, PUT, DELETE

Reads are filtered by the caller's access scope; a technician sees only
customers, sites and assets tied to a work order they are involved in.
Writes are office-only.
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import coerce_ids, list_response, optional_text, require_choice, require_text
from app.middleware.permission_required import current_principal, require_auth, require_role
from app.models.auth import ROLE_ADMIN, ROLE_DISPATCHER
from app.models.customer import CUSTOMER_STATUSES
from app.services import customer_service
from app.services.customer_service import SITE_FIELDS
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

customer_bp = Blueprint("customer", __name__, url_prefix="/api/v1")

DESCRIPTION_MAX_LENGTH = 2000


def _id_arg(name):
    """Parse an optional integer query arg. Returns (value, api_error)."""
    value = request.args.get(name)
    if value is None:
        return None, None
    if not value.isdigit():
        return None, api_error(E.VALIDATION_INVALID, f"{name} must be an integer")
    return int(value), None


def _validate_update_name(data):
    if "name" in data and data["name"] is not None:
        return require_text(data, "name")
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  CUSTOMERS
# ═══════════════════════════════════════════════════════════════════════════

@customer_bp.route("/customers", methods=["GET"])
@require_auth
def list_customers():
    return list_response(customer_service.list_customers(current_principal()))


@customer_bp.route("/customers", methods=["POST"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def create_customer():
    data = request.get_json(silent=True) or {}
    err = require_text(data, "name") or require_choice(data, "status", CUSTOMER_STATUSES)
    if err:
        return err

    customer = customer_service.create_customer(current_principal(), data)
    return jsonify(customer.to_dict()), 201


@customer_bp.route("/customers/<int:customer_id>", methods=["GET"])
@require_auth
def get_customer(customer_id):
    customer = customer_service.get_customer(current_principal(), customer_id)
    return jsonify(customer.to_dict())


@customer_bp.route("/customers/<int:customer_id>", methods=["PUT"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def update_customer(customer_id):
    data = request.get_json(silent=True) or {}
    err = _validate_update_name(data) or require_choice(data, "status", CUSTOMER_STATUSES)
    if err:
        return err

    customer = customer_service.update_customer(current_principal(), customer_id, data)
    return jsonify(customer.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  SITES
# ═══════════════════════════════════════════════════════════════════════════

@customer_bp.route("/sites", methods=["GET"])
@require_auth
def list_sites():
    customer_id, err = _id_arg("customer_id")
    if err:
        return err
    return list_response(customer_service.list_sites(current_principal(), customer_id))


@customer_bp.route("/sites", methods=["POST"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def create_site():
    data = request.get_json(silent=True) or {}
    err = (
        require_text(data, "name")
        or optional_text(data, *SITE_FIELDS)
        or coerce_ids(data, "customer_id", required=("customer_id",))
    )
    if err:
        return err

    site = customer_service.create_site(current_principal(), data)
    return jsonify(site.to_dict()), 201


@customer_bp.route("/sites/<int:site_id>", methods=["GET"])
@require_auth
def get_site(site_id):
    site = customer_service.get_site(current_principal(), site_id)
    return jsonify(site.to_dict())


@customer_bp.route("/sites/<int:site_id>", methods=["PUT"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def update_site(site_id):
    data = request.get_json(silent=True) or {}
    err = _validate_update_name(data) or optional_text(data, *SITE_FIELDS)
    if err:
        return err

    site = customer_service.update_site(current_principal(), site_id, data)
    return jsonify(site.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  ASSETS
# ═══════════════════════════════════════════════════════════════════════════

def _validate_asset_text(data):
    return (
        optional_text(data, "serial", max_length=100)
        or optional_text(data, "description", max_length=DESCRIPTION_MAX_LENGTH)
    )


@customer_bp.route("/assets", methods=["GET"])
@require_auth
def list_assets():
    site_id, err = _id_arg("site_id")
    if err:
        return err
    return list_response(customer_service.list_assets(current_principal(), site_id))


@customer_bp.route("/assets", methods=["POST"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def create_asset():
    data = request.get_json(silent=True) or {}
    err = (
        require_text(data, "name")
        or _validate_asset_text(data)
        or coerce_ids(data, "customer_id", "site_id", required=("customer_id", "site_id"))
    )
    if err:
        return err

    asset = customer_service.create_asset(current_principal(), data)
    return jsonify(asset.to_dict()), 201


@customer_bp.route("/assets/<int:asset_id>", methods=["GET"])
@require_auth
def get_asset(asset_id):
    asset = customer_service.get_asset(current_principal(), asset_id)
    return jsonify(asset.to_dict())


@customer_bp.route("/assets/<int:asset_id>", methods=["PUT"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def update_asset(asset_id):
    data = request.get_json(silent=True) or {}
    err = _validate_update_name(data) or _validate_asset_text(data)
    if err:
        return err

    asset = customer_service.update_asset(current_principal(), asset_id, data)
    return jsonify(asset.to_dict())


@customer_bp.route("/assets/<int:asset_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def delete_asset(asset_id):
    deleted_id = customer_service.delete_asset(current_principal(), asset_id)
    return jsonify({"id": deleted_id})
