#!/usr/bin/env python3
"""
Create (or update) the admin account.

Running it again with the same email updates that admin instead of
creating a second one.

Usage:
    python scripts/create_admin.py --email admin@studentjobs.com --password secret
    python scripts/create_admin.py --email admin@studentjobs.com --password secret --demo-logins 10
"""
import argparse
import sys
sys.path.insert(0, '.')

from studentjobs.core.exceptions import StudentJobsException
from studentjobs.core.logging_config import configure_logging
from studentjobs.db.mongodb import init_mongo_indexes
from studentjobs.services.admin_login_service import get_admin_login_service
from studentjobs.services.user_service import get_user_service


def main():
    parser = argparse.ArgumentParser(description="Create or update an admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Admin User")
    parser.add_argument("--phone", default="9999999999")
    parser.add_argument("--keep-password", action="store_true",
                        help="Leave the password of an existing admin unchanged")
    parser.add_argument("--demo-logins", type=int, default=0,
                        help="Insert N synthetic login history rows")
    args = parser.parse_args()

    configure_logging()
    try:
        init_mongo_indexes()
        user, created = get_user_service().ensure_admin(
            args.email, args.password, name=args.name, phone=args.phone,
            reset_password=not args.keep_password,
        )
    except StudentJobsException as e:
        print(f"❌ Could not create admin: {e.detail}")
        sys.exit(1)

    print(f"✅ Admin {'created' if created else 'updated'}: {user['email']} ({user['_id']})")

    if args.demo_logins:
        count = get_admin_login_service().seed_demo(user, args.demo_logins)
        print(f"📊 Inserted {count} demo login records")


if __name__ == "__main__":
    main()
