"""Work order and work package service layer.

A new work order is created together with its packages: one unified
mechanical/electrical package, or one package per discipline lane for
MULTI_LANE execution (see ``PACKAGE_TEMPLATES``).

Rules:
  - The principal is always an explicit parameter (never read from g).
  - Reads go through the access scope resolver; FK references in payloads
    are resolved with org-scoped lookups.
  - db.session.commit() happens only in the service layer.
"""

from __future__ import annotations

import logging

from app.core.principal import Principal
from app.models import db
from app.models.customer import Customer, Site
from app.models.work_order import PACKAGE_TEMPLATES, WorkOrder, WorkPackage
from app.services.access_scope import ResourceKind, get_visible, scoped_select
from app.services.helpers.numbering import insert_numbered
from app.services.helpers.scoped_queries import get_scoped
from app.services.user_service import resolve_org_user

logger = logging.getLogger(__name__)


# ── Work orders ──────────────────────────────────────────────────────────────


def list_work_orders(principal: Principal, status: str | None = None) -> list[WorkOrder]:
    stmt = scoped_select(principal, ResourceKind.WORK_ORDER)
    if status:
        stmt = stmt.where(WorkOrder.status == status)
    return list(db.session.execute(stmt.order_by(WorkOrder.id.desc())).scalars())


def get_work_order(principal: Principal, work_order_id: int) -> WorkOrder:
    return get_visible(principal, ResourceKind.WORK_ORDER, work_order_id)


def create_work_order(principal: Principal, data: dict) -> WorkOrder:
    """Create a work order plus its template packages in one commit.

    Raises:
        NotFoundError: customer or site is not in the organization, or the
                       site belongs to a different customer.
    """
    org_id = principal.org_id
    customer = get_scoped(Customer, data["customer_id"], org_id=org_id)
    site = get_scoped(Site, data["site_id"], org_id=org_id, customer_id=customer.id)
    execution_mode = data.get("execution_mode") or "UNIFIED"

    def build(number):
        work_order = WorkOrder(
            org_id=org_id,
            customer_id=customer.id,
            site_id=site.id,
            work_order_number=number,
            title=data["title"].strip(),
            description=data.get("description"),
            status=data.get("status") or "OPEN",
            execution_mode=execution_mode,
        )
        work_order.packages = [
            WorkPackage(org_id=org_id, package_type=package_type, name=name)
            for package_type, name in PACKAGE_TEMPLATES[execution_mode]
        ]
        return work_order

    work_order = insert_numbered(build, WorkOrder, "work_order_number", org_id, "WO")
    logger.info(
        "Work order created: id=%s number=%s org=%s packages=%d",
        work_order.id, work_order.work_order_number, org_id, len(work_order.packages),
    )
    return work_order


def update_work_order(principal: Principal, work_order_id: int, data: dict) -> WorkOrder:
    work_order = get_work_order(principal, work_order_id)
    for field in ("title", "description", "status"):
        if data.get(field) is not None:
            setattr(work_order, field, data[field])
    db.session.commit()
    return work_order


# ── Work packages ────────────────────────────────────────────────────────────


def list_packages(principal: Principal, work_order_id: int) -> list[WorkPackage]:
    """Packages of a visible work order that the principal may see."""
    work_order = get_work_order(principal, work_order_id)
    stmt = (
        scoped_select(principal, ResourceKind.WORK_PACKAGE)
        .where(WorkPackage.work_order_id == work_order.id)
        .order_by(WorkPackage.id)
    )
    return list(db.session.execute(stmt).scalars())


def create_package(principal: Principal, work_order_id: int, data: dict) -> WorkPackage:
    work_order = get_work_order(principal, work_order_id)
    lead = resolve_org_user(principal.org_id, data.get("lead_tech_id"), "Lead technician")

    package = WorkPackage(
        org_id=principal.org_id,
        work_order_id=work_order.id,
        package_type=data["package_type"],
        name=data["name"].strip(),
        status=data.get("status") or "PLANNED",
        lead_tech_id=lead.id if lead else None,
    )
    db.session.add(package)
    db.session.commit()
    logger.info("Work package created: id=%s work_order=%s", package.id, work_order.id)
    return package


def update_package(principal: Principal, package_id: int, data: dict) -> WorkPackage:
    """Rename, re-status or re-assign the lead of a package.

    ``lead_tech_id: null`` clears the lead.
    """
    package = get_visible(principal, ResourceKind.WORK_PACKAGE, package_id)

    if data.get("name") is not None:
        package.name = data["name"]
    if data.get("status") is not None:
        package.status = data["status"]
    if "lead_tech_id" in data:
        lead = resolve_org_user(principal.org_id, data["lead_tech_id"], "Lead technician")
        package.lead_tech_id = lead.id if lead else None

    db.session.commit()
    logger.info("Work package updated: id=%s lead=%s", package.id, package.lead_tech_id)
    return package
