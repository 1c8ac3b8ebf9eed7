"""
Escalation migration for the Firestore `issues` collection.

Usage:
  - Dry run (default): python scripts/migrate_escalation.py
  - Apply backfill: python scripts/migrate_escalation.py --apply
  - Also create an overdue demo issue: python scripts/migrate_escalation.py --apply --seed-demo

Behavior:
  - Backfills viewed_by_admin=false, escalation_active=false, last_reminder_sent=null
    (plus null viewed_at / escalation_reset_at)
    on issues missing them. Firestore cannot query a missing field, so issues
    without an explicit null are never picked up by the scheduler.
  - Prints the composite index and TTL policy commands (these are project
    configuration, not something the Admin SDK can create).

NOTE: Back up your database before running with --apply.
"""

import argparse
from datetime import timedelta
from typing import Any, Dict

from app.config.firebase import get_db
from app.core.settings import settings
from app.models.issue import IssueStatus
from app.services.escalation.store import ESCALATION_LOGS_COLLECTION, ISSUES_COLLECTION
from app.utils.firestore_helpers import utcnow

ESCALATION_DEFAULTS: Dict[str, Any] = {
    "viewed_by_admin": False,
    "viewed_at": None,
    "escalation_active": False,
    "last_reminder_sent": None,
    "escalation_reset_at": None,
}

DEMO_ISSUE_ID = "demo-escalation-issue"


def missing_escalation_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {field: default for field, default in ESCALATION_DEFAULTS.items() if field not in data}


def backfill(db, apply: bool = False) -> int:
    updated = 0
    for doc in db.collection(ISSUES_COLLECTION).stream():
        patch = missing_escalation_fields(doc.to_dict() or {})
        if not patch:
            continue
        print(f"Preparing: {ISSUES_COLLECTION}/{doc.id} <- {sorted(patch)}")
        if apply:
            doc.reference.update(patch)
        updated += 1
    return updated


def seed_demo_issue(db) -> None:
    demo_issue = {
        "title": "[DEMO] Streetlight outage at Main Gate",
        "description": "Demo issue for testing escalation calls",
        "status": IssueStatus.REPORTED.value,
        "severity_score": 9,
        "created_at": utcnow() - timedelta(hours=100),
        **ESCALATION_DEFAULTS,
    }
    db.collection(ISSUES_COLLECTION).document(DEMO_ISSUE_ID).set(demo_issue)
    print(f"Seeded demo issue {ISSUES_COLLECTION}/{DEMO_ISSUE_ID}")


def print_index_instructions() -> None:
    project = settings.FIREBASE_PROJECT_ID or "<project-id>"
    print("\nFirestore configuration (run once per project):")
    print(
        f"  gcloud firestore indexes composite create --project={project} "
        f"--collection-group={ISSUES_COLLECTION} "
        "--field-config=field-path=status,order=ascending "
        "--field-config=field-path=last_reminder_sent,order=ascending "
        "--field-config=field-path=created_at,order=ascending"
    )
    print(
        f"  gcloud firestore fields ttls update expire_at --project={project} "
        f"--collection-group={ESCALATION_LOGS_COLLECTION} --enable-ttl"
        f"  # {settings.ESCALATION_LOG_RETENTION_DAYS}-day retention"
    )


def main():
    parser = argparse.ArgumentParser(description="Backfill escalation fields on issues")
    parser.add_argument("--apply", action="store_true", help="Write changes (default is dry run)")
    parser.add_argument("--seed-demo", action="store_true", help="Create an overdue demo issue")
    args = parser.parse_args()

    db = get_db()
    count = backfill(db, apply=args.apply)
    action = "Updated" if args.apply else "Would update"
    print(f"{action} {count} issue(s)")

    if args.seed_demo:
        if args.apply:
            seed_demo_issue(db)
        else:
            print(f"Would seed demo issue {ISSUES_COLLECTION}/{DEMO_ISSUE_ID}")

    print_index_instructions()


if __name__ == "__main__":
    main()
