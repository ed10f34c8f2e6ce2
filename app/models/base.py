"""
OrgModel — Abstract base class for organization-scoped models.

Every record that belongs to a single organization inherits from OrgModel
instead of db.Model directly. This adds:
  - org_id FK column with index
  - Composite index helper
"""

from sqlalchemy.orm import declared_attr

from app.models import db


class OrgModel(db.Model):
    """Abstract base for org-scoped tables."""
    __abstract__ = True

    @declared_attr
    def org_id(cls):
        return db.Column(
            db.Integer,
            db.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    @classmethod
    def org_composite_index(cls, table_name, *extra_cols):
        """Build an (org_id, ...) composite index for ``__table_args__``."""
        name = f"ix_{table_name}_org_{'_'.join(extra_cols)}"
        return db.Index(name, "org_id", *extra_cols)
