"""
Shared pytest fixtures for the Field Service Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - org / other_org: two organizations
    - admin / dispatcher / tech / tech2 / other_tech: users (other_tech in other_org)
    - principal_for / headers_for: build a Principal or dev auth headers for a user
    - field_data: customer → site → work order → package → visit in ``org``
    - make_work_order / make_task / make_visit / make_asset: factories for extra domain rows
"""

import pytest

from app import create_app
from app.core.principal import Principal
from app.models import db as _db
from app.models.auth import ROLE_ADMIN, ROLE_DISPATCHER, ROLE_TECH, Organization, User
from app.models.customer import Asset, Customer, Site
from app.models.work_order import Task, Visit, WorkOrder, WorkPackage


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Organizations & users ────────────────────────────────────────────────


def _make_org(name, slug):
    org = Organization(name=name, slug=slug)
    _db.session.add(org)
    _db.session.commit()
    return org


def _make_user(org, email, role, full_name=None):
    user = User(org_id=org.id, email=email, role=role, full_name=full_name)
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture()
def org():
    return _make_org("Acme Mechanical", "acme")


@pytest.fixture()
def other_org():
    return _make_org("Globex Services", "globex")


@pytest.fixture()
def admin(org):
    return _make_user(org, "admin@acme.com", ROLE_ADMIN, "Ada Admin")


@pytest.fixture()
def dispatcher(org):
    return _make_user(org, "dispatch@acme.com", ROLE_DISPATCHER, "Dee Dispatch")


@pytest.fixture()
def tech(org):
    return _make_user(org, "tech1@acme.com", ROLE_TECH, "Tom Tech")


@pytest.fixture()
def tech2(org):
    return _make_user(org, "tech2@acme.com", ROLE_TECH, "Tia Tech")


@pytest.fixture()
def other_tech(other_org):
    return _make_user(other_org, "tech@globex.com", ROLE_TECH, "Gus Globex")


@pytest.fixture()
def principal_for():
    def _principal(user):
        return Principal(org_id=user.org_id, user_id=user.id, role=user.role)
    return _principal


@pytest.fixture()
def headers_for():
    """Dev auth headers (DEV_AUTH_HEADERS is on in TestingConfig)."""
    def _headers(user):
        return {
            "X-Org-Id": str(user.org_id),
            "X-User-Id": str(user.id),
            "X-Role": user.role,
        }
    return _headers


# ── Domain data ──────────────────────────────────────────────────────────


def _make_work_order(org, *, title="Chiller overhaul", number="WO00001"):
    """Customer + site + work order with one unified package, all in ``org``."""
    customer = Customer(org_id=org.id, name=f"{title} customer")
    _db.session.add(customer)
    _db.session.flush()
    site = Site(org_id=org.id, customer_id=customer.id, name=f"{title} site")
    _db.session.add(site)
    _db.session.flush()
    work_order = WorkOrder(
        org_id=org.id, customer_id=customer.id, site_id=site.id,
        work_order_number=number, title=title,
    )
    _db.session.add(work_order)
    _db.session.flush()
    package = WorkPackage(
        org_id=org.id, work_order_id=work_order.id,
        package_type="MECH_ELEC_UNIFIED", name="Mech/Electrical Unified",
    )
    _db.session.add(package)
    _db.session.commit()
    return customer, site, work_order, package


def _make_task(package, *, title="Task", **kwargs):
    task = Task(
        org_id=package.org_id,
        work_order_id=package.work_order_id,
        work_package_id=package.id,
        title=title,
        **kwargs,
    )
    _db.session.add(task)
    _db.session.commit()
    return task


def _make_visit(work_order, *, number="V00001", **kwargs):
    visit = Visit(
        org_id=work_order.org_id,
        work_order_id=work_order.id,
        visit_number=number,
        **kwargs,
    )
    _db.session.add(visit)
    _db.session.commit()
    return visit


def _make_asset(site, *, name="Rooftop unit RTU-1", **kwargs):
    asset = Asset(
        org_id=site.org_id,
        customer_id=site.customer_id,
        site_id=site.id,
        name=name,
        **kwargs,
    )
    _db.session.add(asset)
    _db.session.commit()
    return asset


@pytest.fixture()
def field_data(org, tech):
    """One work order in ``org`` with a visit assigned to ``tech`` and no tasks."""
    customer, site, work_order, package = _make_work_order(org)
    visit = _make_visit(work_order, assigned_tech_id=tech.id)
    return {
        "customer": customer,
        "site": site,
        "work_order": work_order,
        "package": package,
        "visit": visit,
    }


@pytest.fixture()
def make_work_order():
    return _make_work_order


@pytest.fixture()
def make_task():
    return _make_task


@pytest.fixture()
def make_visit():
    return _make_visit


@pytest.fixture()
def make_asset():
    return _make_asset
