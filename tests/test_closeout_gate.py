"""
Tests for app/services/closeout_gate_service.py

Scenarios covered:
  A. one critical TODO task → blocked, one critical blocker
  B. the same task marked DONE → can close out
  C. evidence-required task blocks until one evidence row exists
  D. critical + evidence-required task with neither → two blockers for one task
  E. TECH asking about another tech's visit → NotFoundError
  plus: idempotence, monotonicity, ordering, summary tallies, org isolation
  of evidence, and the pure build_gate_result fold.
"""

import pytest

from app.core.exceptions import NotFoundError
from app.models import db
from app.models.work_order import TaskEvidence
from app.services.closeout_gate_service import (
    BLOCKER_CRITICAL_INCOMPLETE,
    BLOCKER_EVIDENCE_MISSING,
    GateTask,
    build_gate_result,
    evaluate_closeout_gate,
)


def _add_evidence(task, text="Photo of gauge reading"):
    ev = TaskEvidence(org_id=task.org_id, task_id=task.id, evidence_type="NOTE", note_text=text)
    db.session.add(ev)
    db.session.commit()
    return ev


def _gate(principal, visit):
    return evaluate_closeout_gate(principal, visit.id)


# ── Scenarios A–E ───────────────────────────────────────────────────────────


class TestCloseoutScenarios:
    def test_a_critical_task_todo_blocks(self, field_data, admin, principal_for, make_task):
        task = make_task(field_data["package"], title="Isolate power", is_critical=True)

        result = _gate(principal_for(admin), field_data["visit"]).to_dict()

        assert result["can_closeout"] is False
        assert [b["kind"] for b in result["blockers"]] == [BLOCKER_CRITICAL_INCOMPLETE]
        assert result["blockers"][0]["task_id"] == task.id
        assert result["summary"]["critical_tasks"] == {"total": 1, "incomplete": 1}
        assert result["summary"]["evidence_required"] == {"total": 0, "missing": 0}

    def test_b_critical_task_done_passes(self, field_data, admin, principal_for, make_task):
        task = make_task(field_data["package"], is_critical=True)
        task.status = "DONE"
        db.session.commit()

        result = _gate(principal_for(admin), field_data["visit"])

        assert result.can_closeout is True
        assert result.blockers == []
        assert result.critical_total == 1
        assert result.critical_incomplete == 0

    def test_c_evidence_required_until_evidence_added(
        self, field_data, admin, principal_for, make_task,
    ):
        task = make_task(field_data["package"], requires_evidence=True)
        p = principal_for(admin)

        before = _gate(p, field_data["visit"])
        assert [b.kind for b in before.blockers] == [BLOCKER_EVIDENCE_MISSING]

        _add_evidence(task)

        after = _gate(p, field_data["visit"])
        assert after.can_closeout is True
        assert after.evidence_total == 1
        assert after.evidence_missing == 0

    def test_d_one_task_two_blockers(self, field_data, admin, principal_for, make_task):
        task = make_task(field_data["package"], is_critical=True, requires_evidence=True)

        result = _gate(principal_for(admin), field_data["visit"])

        assert [(b.kind, b.task_id) for b in result.blockers] == [
            (BLOCKER_CRITICAL_INCOMPLETE, task.id),
            (BLOCKER_EVIDENCE_MISSING, task.id),
        ]

    def test_e_tech_cannot_read_other_techs_visit(
        self, field_data, tech2, principal_for, make_task,
    ):
        make_task(field_data["package"], is_critical=True, assigned_to_id=tech2.id)

        with pytest.raises(NotFoundError) as exc:
            _gate(principal_for(tech2), field_data["visit"])
        assert exc.value.public_message == "Visit not found."

    def test_assigned_tech_can_evaluate(self, field_data, tech, principal_for):
        result = _gate(principal_for(tech), field_data["visit"])
        assert result.can_closeout is True


# ── Properties ──────────────────────────────────────────────────────────────


class TestCloseoutProperties:
    def test_idempotent(self, field_data, admin, principal_for, make_task):
        pkg = field_data["package"]
        make_task(pkg, title="One", is_critical=True)
        make_task(pkg, title="Two", requires_evidence=True)
        make_task(pkg, title="Three", is_critical=True, requires_evidence=True)
        p = principal_for(admin)

        assert _gate(p, field_data["visit"]).to_dict() == _gate(p, field_data["visit"]).to_dict()

    def test_adding_evidence_only_removes_that_blocker(
        self, field_data, admin, principal_for, make_task,
    ):
        pkg = field_data["package"]
        critical = make_task(pkg, title="Critical", is_critical=True)
        needs_evidence = make_task(pkg, title="Needs photo", requires_evidence=True)
        p = principal_for(admin)

        before = {(b.kind, b.task_id) for b in _gate(p, field_data["visit"]).blockers}
        _add_evidence(needs_evidence)
        after = {(b.kind, b.task_id) for b in _gate(p, field_data["visit"]).blockers}

        assert before - after == {(BLOCKER_EVIDENCE_MISSING, needs_evidence.id)}
        assert after <= before
        assert (BLOCKER_CRITICAL_INCOMPLETE, critical.id) in after

    def test_second_evidence_row_changes_nothing(
        self, field_data, admin, principal_for, make_task,
    ):
        task = make_task(field_data["package"], requires_evidence=True)
        p = principal_for(admin)
        _add_evidence(task, "first")
        once = _gate(p, field_data["visit"]).to_dict()
        _add_evidence(task, "second")

        assert _gate(p, field_data["visit"]).to_dict() == once

    def test_blockers_follow_task_id_order(self, field_data, admin, principal_for, make_task):
        pkg = field_data["package"]
        first = make_task(pkg, title="First", requires_evidence=True, sequence_number=9)
        second = make_task(pkg, title="Second", is_critical=True, sequence_number=1)

        result = _gate(principal_for(admin), field_data["visit"])

        assert [b.task_id for b in result.blockers] == [first.id, second.id]

    def test_unflagged_tasks_are_ignored(self, field_data, admin, principal_for, make_task):
        make_task(field_data["package"], title="Sweep floor")

        result = _gate(principal_for(admin), field_data["visit"])

        assert result.can_closeout is True
        assert result.critical_total == 0
        assert result.evidence_total == 0

    def test_only_visits_work_order_counts(
        self, org, field_data, admin, principal_for, make_work_order, make_task,
    ):
        _, _, _, other_pkg = make_work_order(org, title="Elsewhere", number="WO00002")
        make_task(other_pkg, is_critical=True)

        assert _gate(principal_for(admin), field_data["visit"]).can_closeout is True

    def test_evidence_from_other_org_does_not_count(
        self, field_data, other_org, admin, principal_for, make_task,
    ):
        task = make_task(field_data["package"], requires_evidence=True)
        db.session.add(TaskEvidence(org_id=other_org.id, task_id=task.id, note_text="stray"))
        db.session.commit()

        result = _gate(principal_for(admin), field_data["visit"])

        assert [b.kind for b in result.blockers] == [BLOCKER_EVIDENCE_MISSING]

    def test_message_names_task(self, field_data, admin, principal_for, make_task):
        make_task(field_data["package"], title="Torque check", is_critical=True, requires_evidence=True)

        messages = [b.message for b in _gate(principal_for(admin), field_data["visit"]).blockers]

        assert messages == [
            'Critical task "Torque check" is not done.',
            'Task "Torque check" requires evidence but has none.',
        ]


# ── Pure fold ───────────────────────────────────────────────────────────────


class TestBuildGateResult:
    def _task(self, task_id, **flags):
        defaults = dict(
            title=f"T{task_id}", status="TODO",
            is_critical=False, requires_evidence=False, has_evidence=False,
        )
        defaults.update(flags)
        return GateTask(id=task_id, **defaults)

    def test_empty_task_list_can_close(self):
        result = build_gate_result(7, [])
        assert result.can_closeout is True
        assert result.to_dict()["summary"] == {
            "visit_id": 7,
            "critical_tasks": {"total": 0, "incomplete": 0},
            "evidence_required": {"total": 0, "missing": 0},
        }

    def test_tallies_are_independent_of_blockers(self):
        tasks = [
            self._task(1, is_critical=True, status="DONE"),
            self._task(2, is_critical=True),
            self._task(3, requires_evidence=True, has_evidence=True),
            self._task(4, requires_evidence=True),
            self._task(5, is_critical=True, requires_evidence=True),
        ]

        result = build_gate_result(1, tasks)

        assert (result.critical_total, result.critical_incomplete) == (3, 2)
        assert (result.evidence_total, result.evidence_missing) == (3, 2)
        assert len(result.blockers) == 4
        assert [b.task_id for b in result.blockers] == [2, 4, 5, 5]

    @pytest.mark.parametrize("status", ["TODO", "IN_PROGRESS", "BLOCKED", "SKIPPED"])
    def test_any_status_other_than_done_blocks(self, status):
        result = build_gate_result(1, [self._task(1, is_critical=True, status=status)])
        assert [b.kind for b in result.blockers] == [BLOCKER_CRITICAL_INCOMPLETE]
