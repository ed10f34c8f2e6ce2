"""Visit service layer.

A visit is one scheduled trip to the site of a work order. Visit numbers
(V00001, ...) are allocated per organization.
"""

from __future__ import annotations

import logging

from app.core.principal import Principal
from app.models import db
from app.models.work_order import Visit, WorkOrder
from app.services.access_scope import ResourceKind, get_visible, scoped_select
from app.services.helpers.numbering import insert_numbered
from app.services.helpers.scoped_queries import get_scoped
from app.services.user_service import resolve_org_user

logger = logging.getLogger(__name__)

_VISIT_TEXT_FIELDS = ("status", "summary", "outcome")
_VISIT_TIME_FIELDS = ("scheduled_for", "started_at", "completed_at")


def list_visits(principal: Principal, work_order_id: int | None = None) -> list[Visit]:
    stmt = scoped_select(principal, ResourceKind.VISIT)
    if work_order_id is not None:
        stmt = stmt.where(Visit.work_order_id == work_order_id)
    stmt = stmt.order_by(Visit.scheduled_for.is_(None), Visit.scheduled_for, Visit.id)
    return list(db.session.execute(stmt).scalars())


def get_visit(principal: Principal, visit_id: int) -> Visit:
    return get_visible(principal, ResourceKind.VISIT, visit_id)


def create_visit(principal: Principal, data: dict) -> Visit:
    """Schedule a visit against a work order of the organization.

    ``data`` datetimes are expected already parsed by the caller.

    Raises:
        NotFoundError: work order or assigned technician not in the organization.
    """
    org_id = principal.org_id
    work_order = get_scoped(WorkOrder, data["work_order_id"], org_id=org_id)
    tech = resolve_org_user(org_id, data.get("assigned_tech_id"), "Assigned technician")

    def build(number):
        return Visit(
            org_id=org_id,
            work_order_id=work_order.id,
            visit_number=number,
            assigned_tech_id=tech.id if tech else None,
            status=data.get("status") or "PLANNED",
            scheduled_for=data.get("scheduled_for"),
            summary=data.get("summary"),
        )

    visit = insert_numbered(build, Visit, "visit_number", org_id, "V")
    logger.info(
        "Visit created: id=%s number=%s work_order=%s tech=%s",
        visit.id, visit.visit_number, work_order.id, visit.assigned_tech_id,
    )
    return visit


def update_visit(principal: Principal, visit_id: int, data: dict) -> Visit:
    """Partial update. ``assigned_tech_id: null`` unassigns the visit."""
    visit = get_visit(principal, visit_id)

    for field in _VISIT_TEXT_FIELDS:
        if data.get(field) is not None:
            setattr(visit, field, data[field])
    for field in _VISIT_TIME_FIELDS:
        if field in data:
            setattr(visit, field, data[field])
    if "assigned_tech_id" in data:
        tech = resolve_org_user(principal.org_id, data["assigned_tech_id"], "Assigned technician")
        visit.assigned_tech_id = tech.id if tech else None

    db.session.commit()
    logger.info("Visit updated: id=%s status=%s", visit.id, visit.status)
    return visit
