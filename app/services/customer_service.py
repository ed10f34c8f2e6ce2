"""Customer, site and asset service layer.

Rules:
  - The principal is always an explicit parameter (never read from g).
  - Reads go through the access scope resolver.
  - db.session.commit() happens only in the service layer.
"""

from __future__ import annotations

import logging

from app.core.exceptions import ValidationError
from app.core.principal import Principal
from app.models import db
from app.models.customer import CUSTOMER_STATUSES, Asset, Customer, Site
from app.services.access_scope import ResourceKind, get_visible, scoped_select
from app.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)

SITE_FIELDS = ("address", "city", "state", "postal_code", "country")
ASSET_FIELDS = ("serial", "description")


# ── Customers ────────────────────────────────────────────────────────────────


def list_customers(principal: Principal) -> list[Customer]:
    stmt = scoped_select(principal, ResourceKind.CUSTOMER).order_by(Customer.id.desc())
    return list(db.session.execute(stmt).scalars())


def get_customer(principal: Principal, customer_id: int) -> Customer:
    return get_visible(principal, ResourceKind.CUSTOMER, customer_id)


def create_customer(principal: Principal, data: dict) -> Customer:
    """Create a customer in the principal's organization.

    Raises:
        ValidationError: status is not a known customer status.
    """
    status = data.get("status") or "ACTIVE"
    if status not in CUSTOMER_STATUSES:
        raise ValidationError(
            f"status must be one of {sorted(CUSTOMER_STATUSES)}", details={"status": status}
        )

    customer = Customer(
        org_id=principal.org_id,
        name=data["name"].strip(),
        status=status,
    )
    db.session.add(customer)
    db.session.commit()
    logger.info("Customer created: id=%s org=%s", customer.id, principal.org_id)
    return customer


def update_customer(principal: Principal, customer_id: int, data: dict) -> Customer:
    """Rename or re-status a customer. ``None`` values leave the field unchanged.

    Raises:
        NotFoundError: customer absent or outside the principal's scope.
        ValidationError: status is not a known customer status.
    """
    customer = get_customer(principal, customer_id)

    status = data.get("status")
    if status is not None and status not in CUSTOMER_STATUSES:
        raise ValidationError(
            f"status must be one of {sorted(CUSTOMER_STATUSES)}", details={"status": status}
        )

    if data.get("name") is not None:
        customer.name = data["name"].strip()
    if status is not None:
        customer.status = status

    db.session.commit()
    logger.info("Customer updated: id=%s status=%s", customer.id, customer.status)
    return customer


# ── Sites ────────────────────────────────────────────────────────────────────


def list_sites(principal: Principal, customer_id: int | None = None) -> list[Site]:
    stmt = scoped_select(principal, ResourceKind.SITE)
    if customer_id is not None:
        stmt = stmt.where(Site.customer_id == customer_id)
    return list(db.session.execute(stmt.order_by(Site.id.desc())).scalars())


def get_site(principal: Principal, site_id: int) -> Site:
    return get_visible(principal, ResourceKind.SITE, site_id)


def create_site(principal: Principal, data: dict) -> Site:
    """Create a site under one of the organization's customers.

    Raises:
        NotFoundError: customer_id is not a customer of this organization.
    """
    customer = get_scoped(Customer, data["customer_id"], org_id=principal.org_id)

    site = Site(
        org_id=principal.org_id,
        customer_id=customer.id,
        name=data["name"].strip(),
        **{f: (data.get(f) or "").strip() or None for f in SITE_FIELDS},
    )
    db.session.add(site)
    db.session.commit()
    logger.info("Site created: id=%s customer=%s org=%s", site.id, customer.id, principal.org_id)
    return site


def update_site(principal: Principal, site_id: int, data: dict) -> Site:
    """Update a site's name and address. ``None`` values leave the field unchanged.

    The owning customer cannot be changed.
    """
    site = get_site(principal, site_id)

    if data.get("name") is not None:
        site.name = data["name"].strip()
    for field in SITE_FIELDS:
        if data.get(field) is not None:
            setattr(site, field, data[field].strip() or None)

    db.session.commit()
    logger.info("Site updated: id=%s customer=%s", site.id, site.customer_id)
    return site


# ── Assets ───────────────────────────────────────────────────────────────────


def list_assets(principal: Principal, site_id: int | None = None) -> list[Asset]:
    stmt = scoped_select(principal, ResourceKind.ASSET)
    if site_id is not None:
        stmt = stmt.where(Asset.site_id == site_id)
    return list(db.session.execute(stmt.order_by(Asset.id.desc())).scalars())


def get_asset(principal: Principal, asset_id: int) -> Asset:
    return get_visible(principal, ResourceKind.ASSET, asset_id)


def create_asset(principal: Principal, data: dict) -> Asset:
    """Register equipment at a site of one of the organization's customers.

    Raises:
        NotFoundError: customer not in the organization, or the site is not
                       one of that customer's sites.
    """
    org_id = principal.org_id
    customer = get_scoped(Customer, data["customer_id"], org_id=org_id)
    site = get_scoped(Site, data["site_id"], org_id=org_id, customer_id=customer.id)

    asset = Asset(
        org_id=org_id,
        customer_id=customer.id,
        site_id=site.id,
        name=data["name"].strip(),
        **{f: (data.get(f) or "").strip() or None for f in ASSET_FIELDS},
    )
    db.session.add(asset)
    db.session.commit()
    logger.info("Asset created: id=%s site=%s org=%s", asset.id, site.id, org_id)
    return asset


def update_asset(principal: Principal, asset_id: int, data: dict) -> Asset:
    """Rename or re-describe an asset. ``None`` values leave the field unchanged."""
    asset = get_asset(principal, asset_id)

    if data.get("name") is not None:
        asset.name = data["name"].strip()
    for field in ASSET_FIELDS:
        if data.get(field) is not None:
            setattr(asset, field, data[field].strip() or None)

    db.session.commit()
    logger.info("Asset updated: id=%s", asset.id)
    return asset


def delete_asset(principal: Principal, asset_id: int) -> int:
    asset = get_asset(principal, asset_id)
    db.session.delete(asset)
    db.session.commit()
    logger.info("Asset deleted: id=%s org=%s by user=%s", asset_id, principal.org_id, principal.user_id)
    return asset_id
