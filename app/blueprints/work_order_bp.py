"""
Field Service Platform
Work order blueprint — work orders and their work packages.

Endpoints:
    WORK ORDER  /api/v1/work-orders                    GET, POST   (?status=)
                /api/v1/work-orders/<id>               GET, PUT
    PACKAGE     /api/v1/work-orders/<id>/packages      GET, POST
                /api/v1/packages/<id>                  PATCH
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import coerce_ids, list_response, require_choice, require_text
from app.middleware.permission_required import current_principal, require_auth, require_role
from app.models.auth import ROLE_ADMIN, ROLE_DISPATCHER
from app.models.work_order import (
    EXECUTION_MODES,
    PACKAGE_STATUSES,
    PACKAGE_TYPES,
    WORK_ORDER_STATUSES,
)
from app.services import work_order_service
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

work_order_bp = Blueprint("work_order", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  WORK ORDERS
# ═══════════════════════════════════════════════════════════════════════════

@work_order_bp.route("/work-orders", methods=["GET"])
@require_auth
def list_work_orders():
    status = request.args.get("status")
    if status and status not in WORK_ORDER_STATUSES:
        return api_error(E.VALIDATION_INVALID, f"status must be one of {sorted(WORK_ORDER_STATUSES)}")
    return list_response(work_order_service.list_work_orders(current_principal(), status))


@work_order_bp.route("/work-orders", methods=["POST"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def create_work_order():
    data = request.get_json(silent=True) or {}
    err = (
        require_text(data, "title")
        or coerce_ids(data, "customer_id", "site_id", required=("customer_id", "site_id"))
        or require_choice(data, "execution_mode", EXECUTION_MODES)
        or require_choice(data, "status", WORK_ORDER_STATUSES)
    )
    if err:
        return err

    work_order = work_order_service.create_work_order(current_principal(), data)
    return jsonify(work_order.to_dict(include_packages=True)), 201


@work_order_bp.route("/work-orders/<int:work_order_id>", methods=["GET"])
@require_auth
def get_work_order(work_order_id):
    work_order = work_order_service.get_work_order(current_principal(), work_order_id)
    return jsonify(work_order.to_dict())


@work_order_bp.route("/work-orders/<int:work_order_id>", methods=["PUT"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def update_work_order(work_order_id):
    data = request.get_json(silent=True) or {}
    if "title" in data:
        err = require_text(data, "title")
        if err:
            return err
    err = require_choice(data, "status", WORK_ORDER_STATUSES)
    if err:
        return err

    work_order = work_order_service.update_work_order(current_principal(), work_order_id, data)
    return jsonify(work_order.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  WORK PACKAGES
# ═══════════════════════════════════════════════════════════════════════════

@work_order_bp.route("/work-orders/<int:work_order_id>/packages", methods=["GET"])
@require_auth
def list_packages(work_order_id):
    return list_response(work_order_service.list_packages(current_principal(), work_order_id))


@work_order_bp.route("/work-orders/<int:work_order_id>/packages", methods=["POST"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def create_package(work_order_id):
    data = request.get_json(silent=True) or {}
    err = (
        require_text(data, "name")
        or require_choice(data, "package_type", PACKAGE_TYPES, required=True)
        or require_choice(data, "status", PACKAGE_STATUSES)
        or coerce_ids(data, "lead_tech_id")
    )
    if err:
        return err

    package = work_order_service.create_package(current_principal(), work_order_id, data)
    return jsonify(package.to_dict()), 201


@work_order_bp.route("/packages/<int:package_id>", methods=["PATCH"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def update_package(package_id):
    data = request.get_json(silent=True) or {}
    if "name" in data:
        err = require_text(data, "name")
        if err:
            return err
    err = require_choice(data, "status", PACKAGE_STATUSES) or coerce_ids(data, "lead_tech_id")
    if err:
        return err

    package = work_order_service.update_package(current_principal(), package_id, data)
    return jsonify(package.to_dict())
