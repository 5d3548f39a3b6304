"""Seed data script for the Project Tracker database.

Creates the schema if needed, an administrator account, a demo project with
a small task chain, the 28-step legacy milestone template, and version 1 of
the versioned template built from it (published).
The script is idempotent: it checks for existing records before inserting.

Usage (from the repository root):
    python seed_data.py
"""

from __future__ import annotations

import os
import sys
from datetime import date

# Ensure the package is importable when running from the repository root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from tracker.database import Base, SessionLocal, engine  # noqa: E402
from tracker.models import (  # noqa: E402
    MilestoneTemplate,
    Project,
    Task,
    TaskDependency,
    User,
)
from tracker.services.milestone_version_service import bootstrap_from_legacy  # noqa: E402
from tracker.utils.security import hash_password  # noqa: E402

# ---------------------------------------------------------------------------
# Legacy milestone template
# ---------------------------------------------------------------------------

# (phase, name, description, is_required, input_docs, output_docs)
LEGACY_TEMPLATE: list[tuple[str, str, str, bool, str, str]] = [
    ("Pre-engagement", "Collect baseline material", "Gather the feasibility study and the contract", True,
     "Feasibility study,Contract", ""),
    ("Pre-engagement", "Identify stakeholders", "List the client's owners and contacts", True,
     "", "Stakeholder register"),
    ("Pre-engagement", "Form the project team", "Staff the team for in-house or outsourced delivery", True,
     "", "Team roster"),
    ("Pre-engagement", "Risk and budget analysis", "Analyse the feasibility study and contract", True,
     "Feasibility study,Contract", "Risk register,Budget plan"),
    ("Pre-engagement", "Internal kick-off meeting", "Consolidate early material and minute the meeting", True,
     "", "Meeting minutes"),
    ("Initiation", "Prepare baseline documents", "Issue the authorisation letter and start-work request", True,
     "", "PM authorisation letter,Start-work request"),
    ("Initiation", "Break down the scope", "Produce the feature list and delivery plan", True,
     "", "Feature list,Delivery plan"),
    ("Initiation", "Schedule the work", "Produce the delivery schedule", True,
     "", "Delivery schedule"),
    ("Initiation", "Project kick-off meeting", "Agree agenda and attendees", True,
     "", "Start-work order,Meeting minutes"),
    ("Initiation", "Provision servers", "Request and confirm infrastructure", True,
     "", "Server inventory"),
    ("Initiation", "Order from suppliers", "Sign supplier contracts for the feature list", False,
     "Feature list", "Supplier contract"),
    ("Implementation", "Requirements survey", "Produce the full design document set", True,
     "", "Requirements specification,Database design,High-level design,Detailed design"),
    ("Implementation", "System deployment", "Deploy onto the provisioned servers", True,
     "", "Server inventory (updated)"),
    ("Implementation", "Third-party assessment", "Software testing and security assessments", True,
     "", "Test report,Security assessment report,Cryptography assessment report"),
    ("Implementation", "Training and self-check", "Train users and check every feature", True,
     "", "Training record,Feature checklist"),
    ("Implementation", "Supervisor review", "Supervisor verifies the delivered features", True,
     "", ""),
    ("Preliminary acceptance", "Compile acceptance documents", "Build the complete document index", True,
     "", "Document index"),
    ("Preliminary acceptance", "Preliminary acceptance meeting", "Submit the acceptance request", True,
     "", "Preliminary acceptance report"),
    ("Preliminary acceptance", "Address expert findings", "Report on remediation of open issues", True,
     "", "Remediation report"),
    ("Preliminary acceptance", "Go live for trial", "Submit the trial-run request", True,
     "", "Trial-run request"),
    ("Preliminary acceptance", "Supplier acceptance", "Handle supplier payments", False,
     "", "Payment voucher"),
    ("Trial run", "Trial-run support", "Monitor and log operations", True,
     "", "Operations log"),
    ("Trial run", "Settlement and final accounts", "Produce settlement then final accounts", True,
     "", "Settlement report,Final accounts report"),
    ("Final acceptance", "Trial-run summary", "Summarise the trial run", True,
     "", "Trial-run summary"),
    ("Final acceptance", "Final acceptance meeting", "Submit the final acceptance request", True,
     "", "Final acceptance report"),
    ("Final acceptance", "Final remediation", "Address the final expert findings", True,
     "", "Remediation report (updated)"),
    ("Final acceptance", "Supplier final acceptance", "Complete the final payment", False,
     "", "Final payment voucher"),
    ("Operations", "Project handover", "Hand over all project material", True,
     "", "Handover checklist"),
]


# ---------------------------------------------------------------------------
# Seed functions
# ---------------------------------------------------------------------------


def seed_admin(session) -> User:
    """Insert the administrator account if it does not exist."""
    admin = session.query(User).filter(User.username == "admin").first()
    if admin is not None:
        print("  [SKIP] admin user already exists.")
        return admin

    admin = User(
        username="admin",
        password_hash=hash_password("Admin123!"),
        real_name="System Administrator",
        role="SUPER_ADMIN",
        is_active=True,
    )
    session.add(admin)
    session.flush()
    print("  [OK] admin / Admin123! created.")
    return admin


def seed_legacy_templates(session) -> None:
    """Insert the flat legacy template rows if the table is empty."""
    if session.query(MilestoneTemplate).count() > 0:
        print("  [SKIP] MilestoneTemplate — table already has data.")
        return

    session.add_all(
        MilestoneTemplate(
            phase=phase,
            name=name,
            description=description,
            is_required=is_required,
            input_docs=input_docs,
            output_docs=output_docs,
            importance=5,
            order_index=index,
        )
        for index, (phase, name, description, is_required, input_docs, output_docs)
        in enumerate(LEGACY_TEMPLATE, start=1)
    )
    print(f"  [OK] {len(LEGACY_TEMPLATE)} legacy milestone templates.")


def seed_demo_project(session, admin: User) -> None:
    """Insert a demo project with a three-step task chain."""
    if session.query(Project).count() > 0:
        print("  [SKIP] Project — table already has data.")
        return

    project = Project(name="Demo delivery project", description="Seeded demo data")
    session.add(project)
    session.flush()

    survey = Task(
        project_id=project.id, name="Requirements survey", phase="Implementation",
        priority="HIGH", status="COMPLETED", progress=100, assigned_to=admin.id,
        start_date=date(2026, 3, 2), end_date=date(2026, 3, 13), duration=10,
    )
    build = Task(
        project_id=project.id, name="Build core modules", phase="Implementation",
        priority="HIGH", status="PENDING", progress=0, assigned_to=admin.id,
        start_date=date(2026, 3, 16), end_date=date(2026, 4, 24), duration=30,
    )
    deploy = Task(
        project_id=project.id, name="System deployment", phase="Implementation",
        priority="MEDIUM", status="PENDING", progress=0,
        start_date=date(2026, 4, 27), end_date=date(2026, 5, 1), duration=5,
    )
    session.add_all([survey, build, deploy])
    session.flush()

    session.add_all([
        TaskDependency(task_id=build.id, predecessor_id=survey.id),
        TaskDependency(task_id=deploy.id, predecessor_id=build.id),
    ])
    print("  [OK] demo project with 3 chained tasks.")


def main() -> None:
    """Run the seed process; the template version is published last."""
    print("=" * 60)
    print("  Project Tracker — Seed Data Script")
    print("=" * 60)

    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        print("\n[1/4] Users...")
        admin = seed_admin(session)

        print("\n[2/4] Legacy milestone template...")
        seed_legacy_templates(session)

        print("\n[3/4] Demo project...")
        seed_demo_project(session, admin)
        session.commit()

        print("\n[4/4] Template version 1...")
        version = bootstrap_from_legacy(session, admin)
        if version is None:
            print("  [SKIP] a template version already exists.")
        else:
            print(f"  [OK] v{version.version_number} '{version.version_name}' published.")

        print("\n" + "=" * 60)
        print("  Seed completed successfully.")
        print("=" * 60)

    except Exception as exc:
        session.rollback()
        print("\n[ERROR] Seed failed — rolled back.")
        print(f"  Detail: {exc}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
