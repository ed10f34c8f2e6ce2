"""
Field Service Platform
Customer domain models.

Models:
    - Customer: the account a work order is performed for
    - Site: a physical location belonging to a customer
    - Asset: a piece of equipment installed at a site

Architecture chain: Organization → Customer → Site → WorkOrder | Asset
"""

from datetime import datetime, timezone

from app.models import db
from app.models.base import OrgModel


CUSTOMER_STATUSES = {"ACTIVE", "INACTIVE"}


def _utcnow():
    return datetime.now(timezone.utc)


class Customer(OrgModel):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="ACTIVE")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    sites = db.relationship("Site", back_populates="customer", order_by="Site.id")
    work_orders = db.relationship("WorkOrder", back_populates="customer")

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Site(OrgModel):
    __tablename__ = "sites"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(300))
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    postal_code = db.Column(db.String(20))
    country = db.Column(db.String(100))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    customer = db.relationship("Customer", back_populates="sites")
    work_orders = db.relationship("WorkOrder", back_populates="site")
    assets = db.relationship("Asset", back_populates="site", order_by="Asset.id")

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "customer_id": self.customer_id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Asset(OrgModel):
    __tablename__ = "assets"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    site_id = db.Column(
        db.Integer, db.ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    serial = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    site = db.relationship("Site", back_populates="assets")

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "customer_id": self.customer_id,
            "site_id": self.site_id,
            "name": self.name,
            "serial": self.serial,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
