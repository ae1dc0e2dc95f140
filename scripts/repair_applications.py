#!/usr/bin/env python3
"""
Repair application documents.

Fills missing jobId/job and studentId/student references from each other,
backfills appliedAt and employer, and reports applications whose job no
longer exists.

Usage: python scripts/repair_applications.py [--dry-run]
"""
import argparse
import sys
sys.path.insert(0, '.')

from studentjobs.core.logging_config import configure_logging
from studentjobs.services.application_service import get_application_service


def main():
    parser = argparse.ArgumentParser(description="Repair application references")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    configure_logging()
    print("🔧 Repairing applications" + (" (dry run)" if args.dry_run else ""))
    try:
        report = get_application_service().repair_references(dry_run=args.dry_run)
    except Exception as e:
        print(f"❌ Repair failed: {e}")
        sys.exit(1)

    print(f"   Checked: {report.checked}")
    print(f"   job refs filled: {report.job_refs_filled}")
    print(f"   student refs filled: {report.student_refs_filled}")
    print(f"   mismatched refs (jobId kept): {report.mismatched_refs}")
    print(f"   appliedAt backfilled: {report.applied_at_backfilled}")
    print(f"   employer backfilled: {report.employer_backfilled}")
    if report.orphaned_jobs:
        print(f"   ⚠️  Applications reference {len(report.orphaned_jobs)} missing jobs:")
        for job_id in report.orphaned_jobs:
            print(f"      - {job_id}")
    verb = "Would repair" if args.dry_run else "Repaired"
    print(f"✅ {verb} {report.repaired} applications")


if __name__ == "__main__":
    main()
