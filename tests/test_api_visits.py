"""
Field Service Platform
Tests — visit API and closeout gate endpoint.

Covers:
    - Visit creation with per-org visit numbers (V00001, V00002 ...)
    - Datetime parsing and validation
    - Assigned technician must belong to the org; null unassigns
    - TECH sees only visits assigned directly to them
    - GET /visits/<id>/closeout-gate response shape and 404 for other techs
"""

from app.models import db


def _create_visit(client, headers, work_order_id, **kw):
    payload = {"work_order_id": work_order_id}
    payload.update(kw)
    res = client.post("/api/v1/visits", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# VISIT CRUD
# ═════════════════════════════════════════════════════════════════════════════

class TestVisitCRUD:
    def test_visit_numbers_are_sequential(self, client, admin, org, make_work_order, headers_for):
        _, _, wo, _ = make_work_order(org)
        h = headers_for(admin)

        first = _create_visit(client, h, wo.id)
        second = _create_visit(client, h, wo.id)

        assert first["visit_number"] == "V00001"
        assert second["visit_number"] == "V00002"
        assert first["status"] == "PLANNED"

    def test_numbering_is_per_org(
        self, client, admin, org, other_org, make_work_order, make_visit, headers_for,
    ):
        _, _, foreign_wo, _ = make_work_order(other_org)
        make_visit(foreign_wo, number="V00007")
        _, _, wo, _ = make_work_order(org)

        visit = _create_visit(client, headers_for(admin), wo.id)

        assert visit["visit_number"] == "V00001"

    def test_scheduled_for_parsed(self, client, admin, org, make_work_order, headers_for):
        _, _, wo, _ = make_work_order(org)

        visit = _create_visit(client, headers_for(admin), wo.id, scheduled_for="2026-03-02T08:30:00Z")

        assert visit["scheduled_for"].startswith("2026-03-02T08:30:00")

    def test_bad_datetime_is_400(self, client, admin, org, make_work_order, headers_for):
        _, _, wo, _ = make_work_order(org)

        res = client.post(
            "/api/v1/visits", json={"work_order_id": wo.id, "scheduled_for": "next tuesday"},
            headers=headers_for(admin),
        )
        assert res.status_code == 400

    def test_work_order_of_other_org_is_404(
        self, client, admin, other_org, make_work_order, headers_for,
    ):
        _, _, foreign_wo, _ = make_work_order(other_org)

        res = client.post("/api/v1/visits", json={"work_order_id": foreign_wo.id}, headers=headers_for(admin))
        assert res.status_code == 404

    def test_tech_from_other_org_rejected(
        self, client, admin, other_tech, org, make_work_order, headers_for,
    ):
        _, _, wo, _ = make_work_order(org)

        res = client.post(
            "/api/v1/visits", json={"work_order_id": wo.id, "assigned_tech_id": other_tech.id},
            headers=headers_for(admin),
        )
        assert res.status_code == 404
        assert res.get_json()["error"] == "Assigned technician not found."

    def test_update_and_unassign(self, client, dispatcher, tech, org, make_work_order, headers_for):
        _, _, wo, _ = make_work_order(org)
        h = headers_for(dispatcher)
        visit = _create_visit(client, h, wo.id, assigned_tech_id=tech.id)

        res = client.put(
            f"/api/v1/visits/{visit['id']}",
            json={"status": "IN_PROGRESS", "started_at": "2026-03-02T09:00:00+00:00", "assigned_tech_id": None},
            headers=h,
        )

        body = res.get_json()
        assert res.status_code == 200
        assert body["status"] == "IN_PROGRESS"
        assert body["assigned_tech_id"] is None
        assert body["started_at"] is not None

    def test_tech_cannot_update_visit(self, client, tech, field_data, headers_for):
        res = client.put(
            f"/api/v1/visits/{field_data['visit'].id}", json={"status": "COMPLETED"},
            headers=headers_for(tech),
        )
        assert res.status_code == 403


# ═════════════════════════════════════════════════════════════════════════════
# TECH VISIBILITY
# ═════════════════════════════════════════════════════════════════════════════

class TestTechVisitVisibility:
    def test_tech_lists_only_own_visits(
        self, client, tech, tech2, field_data, make_visit, headers_for,
    ):
        make_visit(field_data["work_order"], number="V00002", assigned_tech_id=tech2.id)

        body = client.get("/api/v1/visits", headers=headers_for(tech)).get_json()

        assert [v["id"] for v in body["items"]] == [field_data["visit"].id]

    def test_filter_by_work_order(self, client, admin, org, field_data, make_work_order, make_visit, headers_for):
        _, _, other_wo, _ = make_work_order(org, title="Other", number="WO00002")
        make_visit(other_wo, number="V00002")

        body = client.get(
            f"/api/v1/visits?work_order_id={field_data['work_order'].id}", headers=headers_for(admin),
        ).get_json()

        assert body["total"] == 1


# ═════════════════════════════════════════════════════════════════════════════
# CLOSEOUT GATE ENDPOINT
# ═════════════════════════════════════════════════════════════════════════════

class TestCloseoutGateEndpoint:
    def test_gate_shape(self, client, tech, field_data, make_task, headers_for):
        task = make_task(field_data["package"], title="Verify breaker", is_critical=True)

        res = client.get(
            f"/api/v1/visits/{field_data['visit'].id}/closeout-gate", headers=headers_for(tech),
        )

        assert res.status_code == 200
        assert res.get_json() == {
            "can_closeout": False,
            "blockers": [{
                "kind": "critical_task_incomplete",
                "task_id": task.id,
                "message": 'Critical task "Verify breaker" is not done.',
            }],
            "summary": {
                "visit_id": field_data["visit"].id,
                "critical_tasks": {"total": 1, "incomplete": 1},
                "evidence_required": {"total": 0, "missing": 0},
            },
        }

    def test_gate_clears_after_status_and_evidence(
        self, client, tech, field_data, make_task, headers_for,
    ):
        task = make_task(
            field_data["package"], is_critical=True, requires_evidence=True, assigned_to_id=tech.id,
        )
        h = headers_for(tech)
        url = f"/api/v1/visits/{field_data['visit'].id}/closeout-gate"
        assert len(client.get(url, headers=h).get_json()["blockers"]) == 2

        client.patch(f"/api/v1/tasks/{task.id}", json={"status": "DONE"}, headers=h)
        client.post(f"/api/v1/tasks/{task.id}/evidence", json={"note_text": "Torqued to 45 Nm"}, headers=h)

        assert client.get(url, headers=h).get_json()["can_closeout"] is True

    def test_other_tech_gets_404(self, client, tech2, field_data, headers_for):
        res = client.get(
            f"/api/v1/visits/{field_data['visit'].id}/closeout-gate", headers=headers_for(tech2),
        )

        assert res.status_code == 404
        assert res.get_json() == {"error": "Visit not found.", "code": "ERR_NOT_FOUND"}

    def test_other_org_admin_gets_404(self, client, other_org, field_data, headers_for):
        from app.models.auth import User

        outsider = User(org_id=other_org.id, email="boss@globex.com", role="ADMIN")
        db.session.add(outsider)
        db.session.commit()

        res = client.get(
            f"/api/v1/visits/{field_data['visit'].id}/closeout-gate", headers=headers_for(outsider),
        )
        assert res.status_code == 404

    def test_missing_visit_is_404(self, client, admin, headers_for):
        res = client.get("/api/v1/visits/424242/closeout-gate", headers=headers_for(admin))
        assert res.status_code == 404
