"""Visit closeout gate.

Decides whether a visit's work order still has unmet completion or
evidence requirements and itemizes them as blockers.

Qualifying tasks are the tasks of the visit's work order flagged
``is_critical`` or ``requires_evidence``. Each one runs through two
independent checks, critical first:

  critical_task_incomplete    is_critical and status != DONE
  evidence_required_missing   requires_evidence and no evidence row exists

A task can therefore contribute zero, one or two blockers. Tasks are
evaluated in id order, so unchanged data always yields the same result.

The evaluator is read-only. Callers that need check-then-close atomicity
must wrap this call and the status change in their own transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import exists, or_, select

from app.core.principal import Principal
from app.models import db
from app.models.work_order import TASK_STATUS_DONE, Task, TaskEvidence
from app.services.access_scope import ResourceKind, get_visible

logger = logging.getLogger(__name__)

BLOCKER_CRITICAL_INCOMPLETE = "critical_task_incomplete"
BLOCKER_EVIDENCE_MISSING = "evidence_required_missing"


@dataclass(frozen=True)
class GateTask:
    """The slice of a task the gate looks at."""

    id: int
    title: str
    status: str
    is_critical: bool
    requires_evidence: bool
    has_evidence: bool


@dataclass(frozen=True)
class Blocker:
    kind: str
    task_id: int
    message: str

    def to_dict(self) -> dict:
        return {"kind": self.kind, "task_id": self.task_id, "message": self.message}


@dataclass
class GateResult:
    visit_id: int
    blockers: list[Blocker] = field(default_factory=list)
    critical_total: int = 0
    critical_incomplete: int = 0
    evidence_total: int = 0
    evidence_missing: int = 0

    @property
    def can_closeout(self) -> bool:
        return not self.blockers

    def to_dict(self) -> dict:
        return {
            "can_closeout": self.can_closeout,
            "blockers": [b.to_dict() for b in self.blockers],
            "summary": {
                "visit_id": self.visit_id,
                "critical_tasks": {
                    "total": self.critical_total,
                    "incomplete": self.critical_incomplete,
                },
                "evidence_required": {
                    "total": self.evidence_total,
                    "missing": self.evidence_missing,
                },
            },
        }


# ── Checks ───────────────────────────────────────────────────────────────────


def critical_blocker(task: GateTask) -> Blocker | None:
    if task.is_critical and task.status != TASK_STATUS_DONE:
        return Blocker(
            kind=BLOCKER_CRITICAL_INCOMPLETE,
            task_id=task.id,
            message=f'Critical task "{task.title}" is not done.',
        )
    return None


def evidence_blocker(task: GateTask) -> Blocker | None:
    if task.requires_evidence and not task.has_evidence:
        return Blocker(
            kind=BLOCKER_EVIDENCE_MISSING,
            task_id=task.id,
            message=f'Task "{task.title}" requires evidence but has none.',
        )
    return None


GATE_CHECKS = (critical_blocker, evidence_blocker)


def build_gate_result(visit_id: int, tasks: list[GateTask]) -> GateResult:
    """Fold qualifying tasks into a GateResult. Pure; order of ``tasks`` is kept."""
    result = GateResult(visit_id=visit_id)
    for task in tasks:
        if task.is_critical:
            result.critical_total += 1
            if task.status != TASK_STATUS_DONE:
                result.critical_incomplete += 1
        if task.requires_evidence:
            result.evidence_total += 1
            if not task.has_evidence:
                result.evidence_missing += 1

        for check in GATE_CHECKS:
            blocker = check(task)
            if blocker is not None:
                result.blockers.append(blocker)
    return result


# ── Persistence ──────────────────────────────────────────────────────────────


def load_gate_tasks(org_id: int, work_order_id: int) -> list[GateTask]:
    """Critical or evidence-required tasks of a work order, with an evidence flag.

    Evidence is an EXISTS check, not a count.
    """
    has_evidence = (
        exists()
        .where(TaskEvidence.task_id == Task.id)
        .where(TaskEvidence.org_id == org_id)
        .label("has_evidence")
    )
    stmt = (
        select(
            Task.id,
            Task.title,
            Task.status,
            Task.is_critical,
            Task.requires_evidence,
            has_evidence,
        )
        .where(
            Task.org_id == org_id,
            Task.work_order_id == work_order_id,
            or_(Task.is_critical.is_(True), Task.requires_evidence.is_(True)),
        )
        .order_by(Task.id)
    )
    return [
        GateTask(
            id=row.id,
            title=row.title,
            status=row.status,
            is_critical=bool(row.is_critical),
            requires_evidence=bool(row.requires_evidence),
            has_evidence=bool(row.has_evidence),
        )
        for row in db.session.execute(stmt)
    ]


def evaluate_closeout_gate(principal: Principal, visit_id: int) -> GateResult:
    """Evaluate the closeout gate for a visit the principal can see.

    Raises:
        NotFoundError: visit absent or outside the principal's scope.
    """
    visit = get_visible(principal, ResourceKind.VISIT, visit_id)
    tasks = load_gate_tasks(visit.org_id, visit.work_order_id)
    result = build_gate_result(visit.id, tasks)

    logger.info(
        "Closeout gate visit=%s work_order=%s can_closeout=%s blockers=%d",
        visit.id, visit.work_order_id, result.can_closeout, len(result.blockers),
    )
    return result
