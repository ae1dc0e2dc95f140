#!/usr/bin/env python3
"""
Fix one user's KYC status.

Usage: python scripts/fix_user_kyc_status.py student@campus.edu [--dry-run]
"""
import argparse
import sys
sys.path.insert(0, '.')

from studentjobs.core.exceptions import StudentJobsException
from studentjobs.core.logging_config import configure_logging
from studentjobs.services.kyc_status import KYCStatusReconciler


def main():
    parser = argparse.ArgumentParser(description="Reconcile one user's KYC status")
    parser.add_argument("email")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    configure_logging()
    print(f"🔍 Checking {args.email}")
    try:
        result = KYCStatusReconciler().reconcile_email(args.email, dry_run=args.dry_run)
    except StudentJobsException as e:
        print(f"❌ {e.detail}")
        sys.exit(1)

    print(f"   Before: kycStatus={result.previous_status.value} isVerified={result.previous_is_verified}")
    print(f"   Record: status={result.status.value} isVerified={result.is_verified}")
    if result.consistent:
        print("✅ Already consistent, nothing to do")
    elif result.changed:
        print("✅ User updated")
    else:
        print("⚠️  Mismatch found (dry run, not written)")


if __name__ == "__main__":
    main()
