"""
Field Service Platform
Task blueprint — tasks, task evidence and the technician's task list.

Endpoints:
    TASK      /api/v1/work-orders/<id>/tasks         GET
              /api/v1/work-packages/<id>/tasks       POST
              /api/v1/tasks/<id>                     PATCH  (technicians: status only)
    EVIDENCE  /api/v1/tasks/<id>/evidence            POST   (NOTE)
    TECH      /api/v1/tech/tasks                     GET    (tasks assigned to caller)
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import coerce_ids, list_response, require_choice, require_text
from app.middleware.permission_required import current_principal, require_auth, require_role
from app.models.auth import ROLE_ADMIN, ROLE_DISPATCHER
from app.models.work_order import EVIDENCE_TYPES, TASK_STATUSES
from app.services import task_service
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

task_bp = Blueprint("task", __name__, url_prefix="/api/v1")

_FLAG_FIELDS = ("is_critical", "requires_evidence")


def _validate_task_payload(data, creating):
    if creating or "title" in data:
        err = require_text(data, "title")
        if err:
            return err
    err = (
        require_choice(data, "status", TASK_STATUSES, required="status" in data)
        or coerce_ids(data, "assigned_to_id")
    )
    if err:
        return err
    for field in _FLAG_FIELDS:
        if field in data and not isinstance(data[field], bool):
            return api_error(E.VALIDATION_INVALID, f"{field} must be a boolean")
    seq = data.get("sequence_number")
    if seq is not None and (isinstance(seq, bool) or not isinstance(seq, int)):
        return api_error(E.VALIDATION_INVALID, "sequence_number must be an integer")
    return None


@task_bp.route("/work-orders/<int:work_order_id>/tasks", methods=["GET"])
@require_auth
def list_work_order_tasks(work_order_id):
    return list_response(task_service.list_work_order_tasks(current_principal(), work_order_id))


@task_bp.route("/work-packages/<int:package_id>/tasks", methods=["POST"])
@require_role(ROLE_ADMIN, ROLE_DISPATCHER)
def create_task(package_id):
    data = request.get_json(silent=True) or {}
    err = _validate_task_payload(data, creating=True)
    if err:
        return err

    task = task_service.create_task(current_principal(), package_id, data)
    return jsonify(task.to_dict()), 201


@task_bp.route("/tasks/<int:task_id>", methods=["PATCH"])
@require_auth
def update_task(task_id):
    data = request.get_json(silent=True) or {}
    if not data:
        return api_error(E.VALIDATION_REQUIRED, "No fields to update")
    err = _validate_task_payload(data, creating=False)
    if err:
        return err

    task = task_service.update_task(current_principal(), task_id, data)
    return jsonify(task.to_dict())


@task_bp.route("/tasks/<int:task_id>/evidence", methods=["POST"])
@require_auth
def add_evidence(task_id):
    data = request.get_json(silent=True) or {}
    evidence_type = data.get("evidence_type", "NOTE")
    if evidence_type not in EVIDENCE_TYPES:
        return api_error(E.VALIDATION_INVALID, f"evidence_type must be one of {sorted(EVIDENCE_TYPES)}")
    if not isinstance(data.get("note_text"), str):
        return api_error(E.VALIDATION_REQUIRED, "note_text is required")

    evidence = task_service.add_evidence(current_principal(), task_id, data)
    return jsonify(evidence.to_dict()), 201


@task_bp.route("/tech/tasks", methods=["GET"])
@require_auth
def list_my_tasks():
    return list_response(task_service.list_assigned_tasks(current_principal()))
