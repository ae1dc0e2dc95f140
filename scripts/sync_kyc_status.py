#!/usr/bin/env python3
"""
KYC Status Sync

Copies each user's canonical KYC status (from their KYC record) onto the
user document: kycStatus, isVerified and the matching timestamp field.
Safe to run repeatedly; users that already match are left untouched.

Usage: python scripts/sync_kyc_status.py [--user-type student|employer] [--dry-run]
"""
import argparse
import sys
sys.path.insert(0, '.')

from studentjobs.core.logging_config import configure_logging
from studentjobs.schemas.schemas import UserType
from studentjobs.services.kyc_status import KYCStatusReconciler


def main():
    parser = argparse.ArgumentParser(description="Sync User.kycStatus with KYC records")
    parser.add_argument("--user-type", choices=["student", "employer", "all"], default="student")
    parser.add_argument("--dry-run", action="store_true", help="Report mismatches without writing")
    args = parser.parse_args()

    configure_logging()
    user_types = [UserType.student, UserType.employer] if args.user_type == "all" else [UserType(args.user_type)]

    print("🔄 Syncing KYC status" + (" (dry run)" if args.dry_run else ""))
    try:
        reconciler = KYCStatusReconciler()
        for user_type in user_types:
            report = reconciler.reconcile_all(user_type, dry_run=args.dry_run)
            print(f"\n📋 {user_type.value}: checked {report.checked} users")
            for result in report.results:
                arrow = "would set" if args.dry_run else "set"
                print(f"   ⚠️  {result.email}: {result.previous_status.value}/"
                      f"verified={result.previous_is_verified} -> {arrow} "
                      f"{result.status.value}/verified={result.is_verified}")
            print(f"   Issues found: {report.issues_found}")
            print(f"   Fixed: {report.fixed}")
    except Exception as e:
        print(f"❌ Sync failed: {e}")
        sys.exit(1)

    print("\n✅ KYC status sync complete")


if __name__ == "__main__":
    main()
