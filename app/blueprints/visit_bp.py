"""
Field Service Platform
Visit blueprint — site visits and the closeout gate.

Endpoints:
    VISIT     /api/v1/visits                          GET, POST   (?work_order_id=)
              /api/v1/visits/<id>                     GET, PUT
    GATE      /api/v1/visits/<id>/closeout-gate       GET

The closeout gate reports whether a visit may be closed out: every critical
task of its work order must be DONE and every evidence-required task must
have at least one evidence record.
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import coerce_ids, list_response, require_choice
from app.middleware.permission_required import current_principal, require_auth, require_role
from app.models.auth import ROLE_ADMIN, ROLE_DISPATCHER
from app.models.work_order import VISIT_STATUSES
from app.services import visit_service
from app.services.closeout_gate_service import evaluate_closeout_gate
from app.utils.errors import E, api_error
from app.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)

visit_bp = Blueprint("visit", __name__, url_prefix="/api/v1")

_TIME_FIELDS = ("scheduled_for", "started_at", "completed_at")


def _parse_visit_payload(data):
    """Validate enums/ids and parse datetimes in place. Returns an api_error or None."""
    err = require_choice(data, "status", VISIT_STATUSES) or coerce_ids(data, "assigned_tech_id")
    if err:
        return err
    for field in _TIME_FIELDS:
        if field in data:
            try:
                data[field] = parse_datetime(data[field])
            except ValueError as exc:
                return api_error(E.VALIDATION_INVALID, str(exc), details={"field": field})
    return None


@visit_bp.route("/visits", methods=["GET"])
@require_auth
def list_visits():
    work_order_id = request.args.get("work_order_id")
    if work_order_id is not None and not work_order_id.isdigit():
        return api_error(E.VALIDATION_INVALID, "work_order_id must be an integer")

    visits = visit_service.list_visits(
        current_principal(), int(work_order_id) if work_order_id else None
    )
    return list_response(visits)


@visit_bp.route("/visits", methods=["POST"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def create_visit():
    data = request.get_json(silent=True) or {}
    err = coerce_ids(data, "work_order_id", required=("work_order_id",)) or _parse_visit_payload(data)
    if err:
        return err

    visit = visit_service.create_visit(current_principal(), data)
    return jsonify(visit.to_dict()), 201


@visit_bp.route("/visits/<int:visit_id>", methods=["GET"])
@require_auth
def get_visit(visit_id):
    visit = visit_service.get_visit(current_principal(), visit_id)
    return jsonify(visit.to_dict())


@visit_bp.route("/visits/<int:visit_id>", methods=["PUT"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def update_visit(visit_id):
    data = request.get_json(silent=True) or {}
    err = _parse_visit_payload(data)
    if err:
        return err

    visit = visit_service.update_visit(current_principal(), visit_id, data)
    return jsonify(visit.to_dict())


@visit_bp.route("/visits/<int:visit_id>/closeout-gate", methods=["GET"])
@require_auth
def closeout_gate(visit_id):
    result = evaluate_closeout_gate(current_principal(), visit_id)
    return jsonify(result.to_dict())
