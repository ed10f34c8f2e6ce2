"""
Field Service Platform
Work order domain models.

Models:
    - WorkOrder: a job for a customer site
    - WorkPackage: a discipline lane inside a work order, optionally led by a tech
    - Task: a unit of work inside a package (work_order_id is denormalized)
    - TaskEvidence: a note proving a task was performed
    - Visit: a scheduled trip to site for a work order

Architecture chain: WorkOrder → WorkPackage → Task → TaskEvidence
                    WorkOrder → Visit
"""

from datetime import datetime, timezone

from app.models import db
from app.models.base import OrgModel


# ── Constants ────────────────────────────────────────────────────────────────

WORK_ORDER_STATUSES = {"OPEN", "SCHEDULED", "IN_PROGRESS", "ON_HOLD", "COMPLETED", "CANCELLED"}
EXECUTION_MODES = {"UNIFIED", "MULTI_LANE"}

PACKAGE_TYPES = {"MECH_ELEC_UNIFIED", "MECHANICAL", "ELECTRICAL", "CONTROLS", "INSTRUMENTATION"}
PACKAGE_STATUSES = {"PLANNED", "IN_PROGRESS", "COMPLETED", "ON_HOLD"}

TASK_STATUSES = {"TODO", "IN_PROGRESS", "DONE", "BLOCKED", "SKIPPED"}
TASK_STATUS_DONE = "DONE"

EVIDENCE_TYPES = {"NOTE"}

VISIT_STATUSES = {"PLANNED", "SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED"}

# Packages created together with a new work order, keyed by execution mode
PACKAGE_TEMPLATES = {
    "UNIFIED": [
        ("MECH_ELEC_UNIFIED", "Mech/Electrical Unified"),
    ],
    "MULTI_LANE": [
        ("MECHANICAL", "Mechanical"),
        ("ELECTRICAL", "Electrical"),
        ("CONTROLS", "Controls"),
        ("INSTRUMENTATION", "Instrumentation"),
    ],
}


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class WorkOrder(OrgModel):
    __tablename__ = "work_orders"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    site_id = db.Column(
        db.Integer, db.ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True
    )
    work_order_number = db.Column(db.String(20), nullable=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="OPEN")
    execution_mode = db.Column(db.String(20), nullable=False, default="UNIFIED")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("org_id", "work_order_number", name="uq_work_order_org_number"),
    )

    customer = db.relationship("Customer", back_populates="work_orders")
    site = db.relationship("Site", back_populates="work_orders")
    packages = db.relationship(
        "WorkPackage", back_populates="work_order", order_by="WorkPackage.id",
        cascade="all, delete-orphan",
    )
    tasks = db.relationship(
        "Task", back_populates="work_order", order_by="Task.id",
        cascade="all, delete-orphan",
    )
    visits = db.relationship(
        "Visit", back_populates="work_order", order_by="Visit.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_packages=False):
        d = {
            "id": self.id,
            "org_id": self.org_id,
            "customer_id": self.customer_id,
            "site_id": self.site_id,
            "work_order_number": self.work_order_number,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "execution_mode": self.execution_mode,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_packages:
            d["packages"] = [p.to_dict() for p in self.packages]
        return d


class WorkPackage(OrgModel):
    __tablename__ = "work_packages"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(
        db.Integer, db.ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    package_type = db.Column(db.String(30), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(30), nullable=False, default="PLANNED")
    lead_tech_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    work_order = db.relationship("WorkOrder", back_populates="packages")
    tasks = db.relationship("Task", back_populates="work_package", order_by="Task.id")

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "work_order_id": self.work_order_id,
            "package_type": self.package_type,
            "name": self.name,
            "status": self.status,
            "lead_tech_id": self.lead_tech_id,
            "created_at": _iso(self.created_at),
        }


class Task(OrgModel):
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(
        db.Integer, db.ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    work_package_id = db.Column(
        db.Integer, db.ForeignKey("work_packages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="TODO")
    sequence_number = db.Column(db.Integer, nullable=True)
    is_critical = db.Column(db.Boolean, nullable=False, default=False)
    requires_evidence = db.Column(db.Boolean, nullable=False, default=False)
    assigned_to_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Closeout gate loads every task of a work order within one org
    __table_args__ = (
        OrgModel.org_composite_index("tasks", "work_order_id"),
    )

    work_order = db.relationship("WorkOrder", back_populates="tasks")
    work_package = db.relationship("WorkPackage", back_populates="tasks")
    evidence = db.relationship(
        "TaskEvidence", back_populates="task", order_by="TaskEvidence.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "work_order_id": self.work_order_id,
            "work_package_id": self.work_package_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "sequence_number": self.sequence_number,
            "is_critical": self.is_critical,
            "requires_evidence": self.requires_evidence,
            "assigned_to_id": self.assigned_to_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class TaskEvidence(OrgModel):
    __tablename__ = "task_evidence"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    evidence_type = db.Column(db.String(20), nullable=False, default="NOTE")
    note_text = db.Column(db.Text, nullable=True)
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    task = db.relationship("Task", back_populates="evidence")

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "task_id": self.task_id,
            "evidence_type": self.evidence_type,
            "note_text": self.note_text,
            "created_by_id": self.created_by_id,
            "created_at": _iso(self.created_at),
        }


class Visit(OrgModel):
    __tablename__ = "visits"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(
        db.Integer, db.ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    visit_number = db.Column(db.String(20), nullable=True)
    assigned_tech_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status = db.Column(db.String(20), nullable=False, default="PLANNED")
    scheduled_for = db.Column(db.DateTime(timezone=True), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    summary = db.Column(db.Text, nullable=True)
    outcome = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("org_id", "visit_number", name="uq_visit_org_number"),
    )

    work_order = db.relationship("WorkOrder", back_populates="visits")

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "work_order_id": self.work_order_id,
            "visit_number": self.visit_number,
            "assigned_tech_id": self.assigned_tech_id,
            "status": self.status,
            "scheduled_for": _iso(self.scheduled_for),
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "summary": self.summary,
            "outcome": self.outcome,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
