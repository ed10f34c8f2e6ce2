"""
Smoke test for scripts/seed_demo_data.py — the seed runs through the real
services, so it doubles as an end-to-end check of the write path.
"""

from app.models import db
from app.models.work_order import Task, TaskEvidence, Visit
from scripts.seed_demo_data import ELECTRICAL_TASKS, seed_demo


def test_seed_builds_blocked_visit(capsys):
    org, visit = seed_demo(slug="demo-test")

    assert visit.visit_number == "V00001"
    assert db.session.query(Task).filter_by(org_id=org.id).count() == len(ELECTRICAL_TASKS)
    assert db.session.query(TaskEvidence).count() == 1
    assert "can_closeout=False, 2 blockers" in capsys.readouterr().out


def test_seed_prints_tokens(capsys):
    seed_demo(slug="demo-tokens", tokens=True)

    out = capsys.readouterr().out
    assert "Access tokens:" in out
    assert out.count("@northwind-mech.com") == 4
    assert db.session.query(Visit).count() == 1
