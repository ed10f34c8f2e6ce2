#!/usr/bin/env python3
"""
Field Service Platform — Demo Seed.

Creates one organization with an admin, a dispatcher and two technicians,
a customer/site with one asset, a MULTI_LANE work order with tasks on the
electrical lane, and a visit assigned to the first technician. The visit's
closeout gate starts blocked (one critical task open, one evidence note missing).

Usage:
    python scripts/seed_demo_data.py                 # Reset DB + seed
    python scripts/seed_demo_data.py --no-reset      # Keep existing rows
    python scripts/seed_demo_data.py --tokens        # Also print access tokens per user
"""

import argparse
import sys

sys.path.insert(0, ".")

from app import create_app
from app.core.principal import Principal
from app.models import db
from app.models.auth import ROLE_ADMIN, ROLE_DISPATCHER, ROLE_TECH, Organization, User
from app.services import customer_service, task_service, visit_service, work_order_service
from app.services.closeout_gate_service import evaluate_closeout_gate
from app.services.jwt_service import generate_access_token

DEMO_USERS = [
    ("admin@northwind-mech.com", "Ada Okafor", ROLE_ADMIN),
    ("dispatch@northwind-mech.com", "Dan Reyes", ROLE_DISPATCHER),
    ("sam.tech@northwind-mech.com", "Sam Lindqvist", ROLE_TECH),
    ("priya.tech@northwind-mech.com", "Priya Natarajan", ROLE_TECH),
]

ELECTRICAL_TASKS = [
    # title, sequence, critical, evidence
    ("Lock out / tag out panel MCC-2", 10, True, True),
    ("Megger test motor leads", 20, True, False),
    ("Photograph nameplate", 30, False, True),
    ("Clean enclosure", 40, False, False),
]


def seed_org(slug="northwind"):
    """Create the organization and its users."""
    org = Organization(name="Northwind Mechanical", slug=slug)
    db.session.add(org)
    db.session.flush()

    users = {}
    for email, full_name, role in DEMO_USERS:
        user = User(org_id=org.id, email=email, full_name=full_name, role=role)
        db.session.add(user)
        users.setdefault(role, []).append(user)
    db.session.commit()
    return org, users


def seed_field_work(org, users):
    """Customer → site → work order → tasks → visit, written through the services."""
    admin = users[ROLE_ADMIN][0]
    tech = users[ROLE_TECH][0]
    office = Principal(org_id=org.id, user_id=admin.id, role=ROLE_ADMIN)

    customer = customer_service.create_customer(office, {"name": "Harbor Foods"})
    site = customer_service.create_site(office, {
        "customer_id": customer.id, "name": "Cold storage #3",
        "address": "14 Dockside Rd", "city": "Tacoma", "state": "WA",
    })
    customer_service.create_asset(office, {
        "customer_id": customer.id, "site_id": site.id,
        "name": "Compressor C-3", "serial": "CPR-88213",
    })
    work_order = work_order_service.create_work_order(office, {
        "customer_id": customer.id, "site_id": site.id,
        "title": "Compressor motor replacement", "execution_mode": "MULTI_LANE",
    })

    electrical = next(p for p in work_order.packages if p.package_type == "ELECTRICAL")
    work_order_service.update_package(office, electrical.id, {"lead_tech_id": tech.id})

    tasks = [
        task_service.create_task(office, electrical.id, {
            "title": title, "sequence_number": seq,
            "is_critical": critical, "requires_evidence": evidence,
            "assigned_to_id": tech.id,
        })
        for title, seq, critical, evidence in ELECTRICAL_TASKS
    ]

    # First task done and documented, so only the rest block closeout
    first = tasks[0]
    task_service.update_task(office, first.id, {"status": "DONE"})
    task_service.add_evidence(office, first.id, {"note_text": "Panel locked, tag #0442"})

    visit = visit_service.create_visit(office, {
        "work_order_id": work_order.id, "assigned_tech_id": tech.id,
    })
    return work_order, visit


def seed_demo(slug="northwind", tokens=False):
    """Run the full demo seed pipeline."""
    print("═" * 60)
    print("  Field Service Platform — Demo Seed")
    print("═" * 60)

    org, users = seed_org(slug)
    print(f"  ✅ Organization: {org.name} (id={org.id}), {len(DEMO_USERS)} users")

    work_order, visit = seed_field_work(org, users)
    print(f"  ✅ Work order {work_order.work_order_number} with {len(work_order.packages)} packages")

    tech = users[ROLE_TECH][0]
    gate = evaluate_closeout_gate(Principal(org_id=org.id, user_id=tech.id, role=ROLE_TECH), visit.id)
    print(f"  ✅ Visit {visit.visit_number}: can_closeout={gate.can_closeout}, "
          f"{len(gate.blockers)} blockers")

    if tokens:
        print("\n  Access tokens:")
        for role_users in users.values():
            for user in role_users:
                token = generate_access_token(user.id, org.id, user.role)
                print(f"  {user.role:<11} {user.email:<32} {token}")

    print(f"{'═' * 60}\n")
    return org, visit


def main():
    parser = argparse.ArgumentParser(description="Field Service demo seed")
    parser.add_argument("--no-reset", action="store_true",
                        help="Don't clear existing data")
    parser.add_argument("--slug", default="northwind",
                        help="Organization slug (default: northwind)")
    parser.add_argument("--tokens", action="store_true",
                        help="Print an access token for every seeded user")
    args = parser.parse_args()

    app = create_app()
    print(f"  🎯 DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")

    with app.app_context():
        if not args.no_reset:
            db.drop_all()
            db.create_all()
            print("  ♻️  Database reset complete\n")

        seed_demo(slug=args.slug, tokens=args.tokens)


if __name__ == "__main__":
    main()
