"""
Tests for app/services/access_scope.py

Scenarios covered:
  1. ADMIN / DISPATCHER see every row of their own organization and nothing else
  2. TECH sees a work order only through an assigned task, assigned visit or led package
  3. TECH customer/site/asset visibility follows work order reachability
  4. TECH package and task rules (lead vs. assignee)
  5. TECH visit visibility is direct assignment only
  6. get_visible: same NotFoundError for missing and out-of-scope rows
  7. Unknown roles and resource kinds are rejected
"""

import pytest
from sqlalchemy import select

from app.core.exceptions import InvalidRoleError, NotFoundError
from app.core.principal import Principal
from app.models import db
from app.services.access_scope import (
    MODEL_FOR_KIND,
    ResourceKind,
    get_visible,
    scope_filter,
    scoped_select,
)


def _ids(principal, kind):
    rows = db.session.execute(scoped_select(principal, kind)).scalars()
    return {r.id for r in rows}


# ── 1. Office roles: org isolation ──────────────────────────────────────────


class TestOfficeRoleScope:
    @pytest.mark.parametrize("kind", list(ResourceKind))
    def test_admin_sees_exactly_own_org(
        self, kind, org, other_org, admin, principal_for,
        make_work_order, make_task, make_visit, make_asset,
    ):
        _, site_a, wo_a, pkg_a = make_work_order(org, title="A")
        _, site_b, wo_b, pkg_b = make_work_order(other_org, title="B")
        make_asset(site_a)
        make_asset(site_b)
        make_task(pkg_a)
        make_task(pkg_b)
        make_visit(wo_a)
        make_visit(wo_b)

        ids = _ids(principal_for(admin), kind)

        model = MODEL_FOR_KIND[kind]
        own = set(db.session.execute(
            select(model.id).where(model.org_id == org.id)
        ).scalars())
        assert ids == own
        assert len(ids) == 1

    def test_dispatcher_matches_admin(self, org, admin, dispatcher, principal_for, make_work_order):
        make_work_order(org, title="One", number="WO00001")
        make_work_order(org, title="Two", number="WO00002")

        for kind in ResourceKind:
            assert _ids(principal_for(dispatcher), kind) == _ids(principal_for(admin), kind)

    def test_admin_of_other_org_sees_nothing(self, org, other_org, principal_for, make_work_order):
        make_work_order(org)
        outsider = Principal(org_id=other_org.id, user_id=999, role="ADMIN")

        for kind in ResourceKind:
            assert _ids(outsider, kind) == set()


# ── 2. TECH work order reachability ─────────────────────────────────────────


class TestTechWorkOrderScope:
    def test_no_relation_means_invisible(self, org, tech, principal_for, make_work_order, make_task):
        _, _, work_order, package = make_work_order(org)
        make_task(package, title="Someone else's")

        assert _ids(principal_for(tech), ResourceKind.WORK_ORDER) == set()

    def test_assigned_task_grants_access(self, org, tech, principal_for, make_work_order, make_task):
        _, _, work_order, package = make_work_order(org)
        make_task(package, assigned_to_id=tech.id)

        assert _ids(principal_for(tech), ResourceKind.WORK_ORDER) == {work_order.id}

    def test_assigned_visit_grants_access(self, org, tech, principal_for, make_work_order, make_visit):
        _, _, work_order, _ = make_work_order(org)
        make_visit(work_order, assigned_tech_id=tech.id)

        assert _ids(principal_for(tech), ResourceKind.WORK_ORDER) == {work_order.id}

    def test_led_package_grants_access(self, org, tech, principal_for, make_work_order):
        _, _, work_order, package = make_work_order(org)
        package.lead_tech_id = tech.id
        db.session.commit()

        assert _ids(principal_for(tech), ResourceKind.WORK_ORDER) == {work_order.id}

    def test_other_tech_relation_does_not_leak(
        self, org, tech, tech2, principal_for, make_work_order, make_visit,
    ):
        _, _, work_order, _ = make_work_order(org)
        make_visit(work_order, assigned_tech_id=tech2.id)

        assert _ids(principal_for(tech), ResourceKind.WORK_ORDER) == set()
        assert _ids(principal_for(tech2), ResourceKind.WORK_ORDER) == {work_order.id}

    def test_same_user_id_in_other_org_sees_nothing(
        self, org, other_org, tech, principal_for, make_work_order, make_task,
    ):
        _, _, _, package = make_work_order(org)
        make_task(package, assigned_to_id=tech.id)
        impostor = Principal(org_id=other_org.id, user_id=tech.id, role="TECH")

        for kind in ResourceKind:
            assert _ids(impostor, kind) == set()


# ── 3. TECH customer / site / asset ─────────────────────────────────────────


class TestTechCustomerSiteScope:
    def test_customer_and_site_follow_work_order(
        self, org, tech, principal_for, make_work_order, make_visit,
    ):
        customer, site, work_order, _ = make_work_order(org, title="Reachable", number="WO00001")
        make_work_order(org, title="Unrelated", number="WO00002")
        make_visit(work_order, assigned_tech_id=tech.id)

        p = principal_for(tech)
        assert _ids(p, ResourceKind.CUSTOMER) == {customer.id}
        assert _ids(p, ResourceKind.SITE) == {site.id}

    def test_customer_without_work_orders_is_invisible(self, org, tech, principal_for):
        from app.models.customer import Customer

        db.session.add(Customer(org_id=org.id, name="Prospect"))
        db.session.commit()

        assert _ids(principal_for(tech), ResourceKind.CUSTOMER) == set()

    def test_asset_follows_site(
        self, org, tech, principal_for, make_work_order, make_visit, make_asset,
    ):
        _, site, work_order, _ = make_work_order(org, title="Reachable", number="WO00001")
        _, hidden_site, _, _ = make_work_order(org, title="Unrelated", number="WO00002")
        make_visit(work_order, assigned_tech_id=tech.id)
        visible = make_asset(site)
        hidden = make_asset(hidden_site, name="Boiler B-2")

        p = principal_for(tech)
        assert _ids(p, ResourceKind.ASSET) == {visible.id}
        with pytest.raises(NotFoundError) as exc:
            get_visible(p, ResourceKind.ASSET, hidden.id)
        assert exc.value.public_message == "Asset not found."


# ── 4. TECH packages and tasks ──────────────────────────────────────────────


class TestTechPackageTaskScope:
    def test_package_visible_via_lead_or_assigned_task(
        self, org, tech, tech2, principal_for, make_work_order, make_task,
    ):
        _, _, _, led = make_work_order(org, title="Led", number="WO00001")
        _, _, _, with_task = make_work_order(org, title="Tasked", number="WO00002")
        _, _, _, unrelated = make_work_order(org, title="Other", number="WO00003")
        led.lead_tech_id = tech.id
        db.session.commit()
        make_task(with_task, assigned_to_id=tech.id)
        make_task(unrelated, assigned_to_id=tech2.id)

        assert _ids(principal_for(tech), ResourceKind.WORK_PACKAGE) == {led.id, with_task.id}

    def test_lead_sees_all_tasks_of_package(
        self, org, tech, tech2, principal_for, make_work_order, make_task,
    ):
        _, _, _, package = make_work_order(org)
        package.lead_tech_id = tech.id
        db.session.commit()
        t1 = make_task(package, title="Unassigned")
        t2 = make_task(package, title="Other tech's", assigned_to_id=tech2.id)

        assert _ids(principal_for(tech), ResourceKind.TASK) == {t1.id, t2.id}
        assert _ids(principal_for(tech2), ResourceKind.TASK) == {t2.id}

    def test_assignee_does_not_see_sibling_tasks(
        self, org, tech, principal_for, make_work_order, make_task,
    ):
        _, _, _, package = make_work_order(org)
        mine = make_task(package, title="Mine", assigned_to_id=tech.id)
        make_task(package, title="Sibling")

        assert _ids(principal_for(tech), ResourceKind.TASK) == {mine.id}


# ── 5. TECH visits ──────────────────────────────────────────────────────────


class TestTechVisitScope:
    def test_visit_requires_direct_assignment(
        self, org, tech, tech2, principal_for, make_work_order, make_task, make_visit,
    ):
        _, _, work_order, package = make_work_order(org)
        package.lead_tech_id = tech.id
        db.session.commit()
        make_task(package, assigned_to_id=tech.id)
        theirs = make_visit(work_order, number="V00001", assigned_tech_id=tech2.id)
        unassigned = make_visit(work_order, number="V00002")

        p = principal_for(tech)
        assert _ids(p, ResourceKind.WORK_ORDER) == {work_order.id}
        assert _ids(p, ResourceKind.VISIT) == set()
        with pytest.raises(NotFoundError):
            get_visible(p, ResourceKind.VISIT, theirs.id)
        with pytest.raises(NotFoundError):
            get_visible(p, ResourceKind.VISIT, unassigned.id)

    def test_assigned_visit_is_visible(self, field_data, tech, principal_for):
        visit = get_visible(principal_for(tech), ResourceKind.VISIT, field_data["visit"].id)
        assert visit.id == field_data["visit"].id


# ── 6. get_visible ──────────────────────────────────────────────────────────


class TestGetVisible:
    def test_missing_and_out_of_scope_are_indistinguishable(
        self, org, other_org, principal_for, make_work_order,
    ):
        _, _, foreign_wo, _ = make_work_order(other_org)
        p = Principal(org_id=org.id, user_id=1, role="ADMIN")

        with pytest.raises(NotFoundError) as missing:
            get_visible(p, ResourceKind.WORK_ORDER, 99999)
        with pytest.raises(NotFoundError) as foreign:
            get_visible(p, ResourceKind.WORK_ORDER, foreign_wo.id)

        assert missing.value.public_message == foreign.value.public_message == "Work order not found."

    def test_returns_row_in_scope(self, field_data, admin, principal_for):
        wo = get_visible(principal_for(admin), ResourceKind.WORK_ORDER, field_data["work_order"].id)
        assert wo.title == "Chiller overhaul"


# ── 7. Rejections ───────────────────────────────────────────────────────────


class TestScopeFilterRejections:
    def test_unknown_role_raises_invalid_role(self):
        p = Principal(org_id=1, user_id=1, role="SUPERVISOR")
        with pytest.raises(InvalidRoleError):
            scope_filter(p, ResourceKind.WORK_ORDER)

    def test_unknown_kind_raises_value_error(self):
        p = Principal(org_id=1, user_id=1, role="ADMIN")
        with pytest.raises(ValueError):
            scope_filter(p, "work_order")
