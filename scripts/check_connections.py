#!/usr/bin/env python3
"""
Connection Check Script

Verifies MongoDB is reachable and the indexes can be created.
Usage: python scripts/check_connections.py [--retries N]
"""
import argparse
import re
import sys
sys.path.insert(0, '.')

from pymongo.errors import PyMongoError

from studentjobs.core.config import get_settings
from studentjobs.core.exceptions import retry_with_backoff
from studentjobs.core.logging_config import configure_logging
from studentjobs.db.mongodb import COLLECTIONS, get_mongo_client, get_mongo_db, init_mongo_indexes


def masked_uri(uri: str) -> str:
    return re.sub(r"://([^:/@]+):[^@]+@", r"://\1:****@", uri)


def main():
    parser = argparse.ArgumentParser(description="Check MongoDB connectivity")
    parser.add_argument("--retries", type=int, default=3)
    args = parser.parse_args()

    configure_logging("WARNING")
    settings = get_settings()
    print("=" * 50)
    print("STUDENTJOBS - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Testing MongoDB...")
    print(f"    URI: {masked_uri(settings.mongodb_uri)}")
    print(f"    Database: {settings.mongodb_db}")
    try:
        retry_with_backoff(lambda: get_mongo_client().admin.command("ping"), retries=args.retries)
        print("    ✅ MongoDB: CONNECTED")
    except PyMongoError as e:
        print(f"    ❌ MongoDB: FAILED ({e})")
        sys.exit(1)

    print("\n[2] Collections...")
    db = get_mongo_db()
    for name in COLLECTIONS.values():
        print(f"    {name}: {db[name].estimated_document_count()} documents")

    print("\n[3] Creating indexes...")
    init_mongo_indexes()
    print("    ✅ Indexes OK")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
