"""
Auth Models — organizations and users.

Authentication itself is delegated to the identity provider; these tables
only hold the org membership and role that the request principal is
checked against when a payload references another user (assigned tech,
package lead).
"""

from datetime import datetime, timezone

from app.models import db


# ── Roles ────────────────────────────────────────────────────────────────────

ROLE_ADMIN = "ADMIN"
ROLE_DISPATCHER = "DISPATCHER"
ROLE_TECH = "TECH"

USER_ROLES = (ROLE_ADMIN, ROLE_DISPATCHER, ROLE_TECH)

# Roles with full visibility inside their organization
OFFICE_ROLES = (ROLE_ADMIN, ROLE_DISPATCHER)


# ═══════════════════════════════════════════════════════════════
# 1. ORGANIZATIONS
# ═══════════════════════════════════════════════════════════════
class Organization(db.Model):
    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    users = db.relationship("User", back_populates="organization", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    email = db.Column(db.String(200), nullable=False)
    full_name = db.Column(db.String(200))
    role = db.Column(db.String(20), nullable=False, default=ROLE_TECH)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Same email can exist in different organizations
    __table_args__ = (
        db.UniqueConstraint("org_id", "email", name="uq_user_org_email"),
        db.Index("ix_users_org_id", "org_id"),
    )

    organization = db.relationship("Organization", back_populates="users")

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
