"""
Access scope resolver — role-based row visibility.

Translates a request principal into the SQLAlchemy WHERE clause that
restricts which rows of a resource that principal may read or write.
Every list endpoint and every single-record read goes through
``scope_filter`` so that the TECH restrictions are enforced identically
everywhere.

Rules
─────
  ADMIN / DISPATCHER   org_id == principal.org_id for every resource kind.

  TECH                 org_id == principal.org_id AND
    WORK_ORDER           a task assigned to the tech, OR a visit assigned to
                         the tech, OR a package led by the tech
    CUSTOMER / SITE      at least one of its work orders passes the rule above
    WORK_PACKAGE         led by the tech, OR holds a task assigned to the tech
    TASK                 assigned to the tech, OR its package is led by the tech
    VISIT                assigned to the tech (no package/task fallback)
    ASSET                its site passes the SITE rule

Relationship sub-clauses repeat the org condition so a row that points
across organizations never satisfies a rule.

Usage:
    from app.services.access_scope import ResourceKind, get_visible, scoped_select

    stmt = scoped_select(principal, ResourceKind.WORK_ORDER).order_by(WorkOrder.id)
    visit = get_visible(principal, ResourceKind.VISIT, visit_id)
"""

from __future__ import annotations

import enum
import logging

from sqlalchemy import and_, or_, select

from app.core.exceptions import InvalidRoleError, NotFoundError
from app.core.principal import Principal
from app.models import db
from app.models.auth import OFFICE_ROLES, ROLE_TECH
from app.models.customer import Asset, Customer, Site
from app.models.work_order import Task, Visit, WorkOrder, WorkPackage

logger = logging.getLogger(__name__)


class ResourceKind(enum.Enum):
    WORK_ORDER = "work_order"
    CUSTOMER = "customer"
    SITE = "site"
    WORK_PACKAGE = "work_package"
    TASK = "task"
    VISIT = "visit"
    ASSET = "asset"


MODEL_FOR_KIND = {
    ResourceKind.WORK_ORDER: WorkOrder,
    ResourceKind.CUSTOMER: Customer,
    ResourceKind.SITE: Site,
    ResourceKind.WORK_PACKAGE: WorkPackage,
    ResourceKind.TASK: Task,
    ResourceKind.VISIT: Visit,
    ResourceKind.ASSET: Asset,
}

_RESOURCE_LABELS = {
    ResourceKind.WORK_ORDER: "Work order",
    ResourceKind.CUSTOMER: "Customer",
    ResourceKind.SITE: "Site",
    ResourceKind.WORK_PACKAGE: "Work package",
    ResourceKind.TASK: "Task",
    ResourceKind.VISIT: "Visit",
    ResourceKind.ASSET: "Asset",
}


# ── TECH rules ───────────────────────────────────────────────────────────────


def _tech_work_order_reachable(org_id: int, user_id: int):
    return or_(
        WorkOrder.tasks.any(and_(Task.org_id == org_id, Task.assigned_to_id == user_id)),
        WorkOrder.visits.any(and_(Visit.org_id == org_id, Visit.assigned_tech_id == user_id)),
        WorkOrder.packages.any(
            and_(WorkPackage.org_id == org_id, WorkPackage.lead_tech_id == user_id)
        ),
    )


def _tech_work_order(p: Principal):
    return and_(
        WorkOrder.org_id == p.org_id,
        _tech_work_order_reachable(p.org_id, p.user_id),
    )


def _tech_customer(p: Principal):
    return and_(
        Customer.org_id == p.org_id,
        Customer.work_orders.any(_tech_work_order(p)),
    )


def _tech_site(p: Principal):
    return and_(
        Site.org_id == p.org_id,
        Site.work_orders.any(_tech_work_order(p)),
    )


def _tech_asset(p: Principal):
    return and_(
        Asset.org_id == p.org_id,
        Asset.site.has(_tech_site(p)),
    )


def _tech_work_package(p: Principal):
    return and_(
        WorkPackage.org_id == p.org_id,
        or_(
            WorkPackage.lead_tech_id == p.user_id,
            WorkPackage.tasks.any(and_(Task.org_id == p.org_id, Task.assigned_to_id == p.user_id)),
        ),
    )


def _tech_task(p: Principal):
    return and_(
        Task.org_id == p.org_id,
        or_(
            Task.assigned_to_id == p.user_id,
            Task.work_package.has(
                and_(WorkPackage.org_id == p.org_id, WorkPackage.lead_tech_id == p.user_id)
            ),
        ),
    )


def _tech_visit(p: Principal):
    return and_(
        Visit.org_id == p.org_id,
        Visit.assigned_tech_id == p.user_id,
    )


_TECH_RULES = {
    ResourceKind.WORK_ORDER: _tech_work_order,
    ResourceKind.CUSTOMER: _tech_customer,
    ResourceKind.SITE: _tech_site,
    ResourceKind.WORK_PACKAGE: _tech_work_package,
    ResourceKind.TASK: _tech_task,
    ResourceKind.VISIT: _tech_visit,
    ResourceKind.ASSET: _tech_asset,
}


# ── Public API ───────────────────────────────────────────────────────────────


def scope_filter(principal: Principal, kind: ResourceKind):
    """Return the WHERE clause limiting ``kind`` rows to what ``principal`` may see.

    Pure: builds an expression, never touches the session.

    Raises:
        InvalidRoleError: principal.role is not ADMIN, DISPATCHER or TECH.
        ValueError: kind is not a ResourceKind.
    """
    if not isinstance(kind, ResourceKind):
        raise ValueError(f"Unknown resource kind {kind!r}")

    if principal.role in OFFICE_ROLES:
        return MODEL_FOR_KIND[kind].org_id == principal.org_id

    if principal.role == ROLE_TECH:
        return _TECH_RULES[kind](principal)

    raise InvalidRoleError(principal.role)


def scoped_select(principal: Principal, kind: ResourceKind):
    """``select(Model)`` already restricted to the principal's scope."""
    model = MODEL_FOR_KIND[kind]
    return select(model).where(scope_filter(principal, kind))


def get_visible(principal: Principal, kind: ResourceKind, pk: int):
    """Fetch one record by PK if the principal may see it.

    Raises:
        NotFoundError: the record is absent OR outside the principal's scope.
                       Callers cannot tell the two apart.
    """
    model = MODEL_FOR_KIND[kind]
    stmt = scoped_select(principal, kind).where(model.id == pk)
    result = db.session.execute(stmt).scalar_one_or_none()
    if result is None:
        logger.debug(
            "get_visible: %s id=%s not visible to user=%s role=%s org=%s",
            model.__name__, pk, principal.user_id, principal.role, principal.org_id,
        )
        raise NotFoundError(resource=_RESOURCE_LABELS[kind], resource_id=pk)
    return result
