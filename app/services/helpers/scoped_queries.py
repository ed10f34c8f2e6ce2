"""
Org-scoped primary-key lookups.

Used where the service layer resolves a foreign-key reference supplied in
a write payload (customer of a new site, technician assigned to a task,
work order of a new visit). A bare ``db.session.get(Model, pk)`` would
happily return a record owned by another organization, so every such
lookup goes through these helpers instead.

Read endpoints do not use this module; they go through
``app.services.access_scope`` which also applies the TECH assignment rules.

Usage:
    customer = get_scoped(Customer, customer_id, org_id=principal.org_id)
    site = get_scoped(Site, site_id, org_id=org_id, customer_id=customer.id)
    tech = get_scoped_or_none(User, tech_id, org_id=org_id)

Scope field resolution:
    Each keyword argument maps directly to a column name on the model.
    If none of the supplied scope columns exist on the model a ValueError
    is raised so the bug surfaces in tests instead of as an unscoped read.
"""

import logging

from sqlalchemy import select

from app.core.exceptions import NotFoundError
from app.models import db

logger = logging.getLogger(__name__)


def get_scoped(
    model,
    pk: int,
    *,
    org_id: int | None = None,
    work_order_id: int | None = None,
    customer_id: int | None = None,
):
    """Fetch a single entity by PK with a mandatory scope filter.

    Args:
        model: SQLAlchemy model class with an ``id`` PK column.
        pk: Primary key value to look up.
        org_id: Scope by org_id column.
        work_order_id: Scope by work_order_id column.
        customer_id: Scope by customer_id column.

    Returns:
        The model instance if found within the given scope.

    Raises:
        ValueError: If no scope is supplied, or none of the supplied scope
                    columns exist on the model.
        NotFoundError: If the entity does not exist OR lies outside the
                       scope. The two cases are intentionally indistinguishable.
    """
    provided_scopes = {
        "org_id": org_id,
        "work_order_id": work_order_id,
        "customer_id": customer_id,
    }
    provided_scopes = {k: v for k, v in provided_scopes.items() if v is not None}

    if not provided_scopes:
        raise ValueError(
            f"{model.__name__} id={pk} requires at least one scope filter "
            "(org_id, work_order_id or customer_id). "
            "Unscoped lookups are forbidden."
        )

    applicable_scopes = {
        field: value
        for field, value in provided_scopes.items()
        if hasattr(model, field)
    }

    missing_fields = set(provided_scopes) - set(applicable_scopes)
    if missing_fields:
        logger.warning(
            "get_scoped(%s, %s): scope field(s) %s not found on model — "
            "those filters were NOT applied.",
            model.__name__,
            pk,
            sorted(missing_fields),
        )

    if not applicable_scopes:
        raise ValueError(
            f"{model.__name__} id={pk}: none of the scope fields "
            f"{sorted(provided_scopes)} exist on {model.__name__}. "
            "Refusing to perform an unscoped lookup."
        )

    stmt = select(model).where(model.id == pk)
    for field, value in applicable_scopes.items():
        stmt = stmt.where(getattr(model, field) == value)

    result = db.session.execute(stmt).scalar_one_or_none()

    if result is None:
        logger.debug(
            "get_scoped: %s id=%s not found in scope %s",
            model.__name__,
            pk,
            applicable_scopes,
        )
        raise NotFoundError(resource=model.__name__, resource_id=pk)

    return result


def get_scoped_or_none(
    model,
    pk: int,
    *,
    org_id: int | None = None,
    work_order_id: int | None = None,
    customer_id: int | None = None,
):
    """Same as get_scoped but returns None instead of raising NotFoundError.

    Still raises ValueError for a missing or inapplicable scope.
    """
    try:
        return get_scoped(
            model,
            pk,
            org_id=org_id,
            work_order_id=work_order_id,
            customer_id=customer_id,
        )
    except NotFoundError:
        return None
