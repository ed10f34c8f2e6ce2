"""Task and task evidence service layer.

Office roles may edit every task field. A technician may only move the
status of a task inside their scope (assigned to them, or in a package
they lead). Evidence may be added by anyone who can see the task.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from app.core.exceptions import PermissionDeniedError, ValidationError
from app.core.principal import Principal
from app.models import db
from app.models.auth import OFFICE_ROLES, ROLE_TECH
from app.models.work_order import Task, TaskEvidence, WorkOrder, WorkPackage
from app.services.access_scope import ResourceKind, get_visible, scoped_select
from app.services.user_service import resolve_org_user
from app.services.work_order_service import get_work_order

logger = logging.getLogger(__name__)

NOTE_MAX_LENGTH = 2000

# Fields a technician may change on a task in their scope
TECH_EDITABLE_FIELDS = frozenset({"status"})

_TASK_FIELDS = ("title", "description", "status", "sequence_number", "is_critical", "requires_evidence")


# ── Reads ────────────────────────────────────────────────────────────────────


def list_work_order_tasks(principal: Principal, work_order_id: int) -> list[Task]:
    """Tasks of a visible work order that the principal may see, in sequence order."""
    work_order = get_work_order(principal, work_order_id)
    stmt = (
        scoped_select(principal, ResourceKind.TASK)
        .where(Task.work_order_id == work_order.id)
        .order_by(Task.sequence_number.is_(None), Task.sequence_number, Task.id)
    )
    return list(db.session.execute(stmt).scalars())


def get_task(principal: Principal, task_id: int) -> Task:
    return get_visible(principal, ResourceKind.TASK, task_id)


def list_assigned_tasks(principal: Principal) -> list[dict]:
    """Tasks directly assigned to the principal, with work order and package labels."""
    stmt = (
        select(Task, WorkOrder, WorkPackage)
        .join(WorkOrder, Task.work_order_id == WorkOrder.id)
        .join(WorkPackage, Task.work_package_id == WorkPackage.id)
        .where(
            Task.org_id == principal.org_id,
            Task.assigned_to_id == principal.user_id,
        )
        .order_by(Task.status, Task.updated_at.desc(), Task.id)
    )
    items = []
    for task, work_order, package in db.session.execute(stmt):
        d = task.to_dict()
        d["work_order"] = {
            "id": work_order.id,
            "title": work_order.title,
            "work_order_number": work_order.work_order_number,
        }
        d["work_package"] = {"id": package.id, "name": package.name}
        items.append(d)
    return items


# ── Writes ───────────────────────────────────────────────────────────────────


def create_task(principal: Principal, package_id: int, data: dict) -> Task:
    package = get_visible(principal, ResourceKind.WORK_PACKAGE, package_id)
    assignee = resolve_org_user(principal.org_id, data.get("assigned_to_id"), "Assigned technician")

    task = Task(
        org_id=principal.org_id,
        work_order_id=package.work_order_id,
        work_package_id=package.id,
        title=data["title"].strip(),
        description=data.get("description"),
        status=data.get("status") or "TODO",
        sequence_number=data.get("sequence_number"),
        is_critical=bool(data.get("is_critical", False)),
        requires_evidence=bool(data.get("requires_evidence", False)),
        assigned_to_id=assignee.id if assignee else None,
    )
    db.session.add(task)
    db.session.commit()
    logger.info(
        "Task created: id=%s package=%s work_order=%s critical=%s evidence=%s",
        task.id, package.id, package.work_order_id, task.is_critical, task.requires_evidence,
    )
    return task


def update_task(principal: Principal, task_id: int, data: dict) -> Task:
    """Apply a partial update.

    Raises:
        NotFoundError: task absent or outside the principal's scope.
        PermissionDeniedError: a technician tried to change a field other than status.
    """
    task = get_task(principal, task_id)

    if principal.role == ROLE_TECH:
        forbidden = sorted(set(data) - TECH_EDITABLE_FIELDS)
        if forbidden:
            logger.warning(
                "Technician %s denied task update id=%s fields=%s",
                principal.user_id, task.id, forbidden,
            )
            raise PermissionDeniedError(principal.role, OFFICE_ROLES)

    for field in _TASK_FIELDS:
        if field in data:
            setattr(task, field, data[field])
    if "assigned_to_id" in data:
        assignee = resolve_org_user(principal.org_id, data["assigned_to_id"], "Assigned technician")
        task.assigned_to_id = assignee.id if assignee else None

    db.session.commit()
    logger.info("Task updated: id=%s status=%s by user=%s", task.id, task.status, principal.user_id)
    return task


def add_evidence(principal: Principal, task_id: int, data: dict) -> TaskEvidence:
    """Attach a NOTE evidence record to a task the principal can see.

    Raises:
        NotFoundError: task absent or outside the principal's scope.
        ValidationError: note text empty after trimming or longer than 2000 chars.
    """
    task = get_task(principal, task_id)

    note_text = (data.get("note_text") or "").strip()
    if not note_text or len(note_text) > NOTE_MAX_LENGTH:
        raise ValidationError(
            "Invalid evidence payload.",
            details={"note_text": f"must be 1-{NOTE_MAX_LENGTH} characters"},
        )

    evidence = TaskEvidence(
        org_id=principal.org_id,
        task_id=task.id,
        evidence_type="NOTE",
        note_text=note_text,
        created_by_id=principal.user_id,
    )
    db.session.add(evidence)
    db.session.commit()
    logger.info("Evidence added: id=%s task=%s by user=%s", evidence.id, task.id, principal.user_id)
    return evidence
