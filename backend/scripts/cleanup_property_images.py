"""Cleanup orphan property images in object storage.

Objects in the bucket that no listing references any more (for example after a
crash between a listing update and its storage cleanup) are reported, and
deleted with --apply.

Usage:
  python scripts/cleanup_property_images.py            # dry-run
  python scripts/cleanup_property_images.py --apply    # delete orphan objects
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal
from app.services import image_cleanup_service
from app.services.storage_client import get_storage


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Actually delete orphan objects")
    parser.add_argument("--grace-minutes", type=int, default=None, help="Skip objects newer than this (default: ORPHAN_GRACE_MINUTES)")
    args = parser.parse_args()

    storage = get_storage()
    if storage is None:
        print("Storage is not configured (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY).")
        sys.exit(1)

    db = SessionLocal()
    try:
        result = image_cleanup_service.cleanup_orphan_property_images(
            db, storage, dry_run=not args.apply, grace_minutes=args.grace_minutes
        )
    finally:
        db.close()

    print("Property image cleanup result")
    print(f"  bucket: {storage.bucket}")
    print(f"  dry_run: {result['dry_run']}")
    print(f"  referenced_count: {result['referenced_count']}")
    print(f"  existing_count: {result['existing_count']}")
    print(f"  orphan_count: {result['orphan_count']}")
    print(f"  recent_count: {result['recent_count']} (younger than {result['grace_minutes']} minutes, kept)")
    print(f"  deleted_count: {result['deleted_count']}")
    if result["orphan_keys"]:
        print("  orphan_keys:")
        for key in result["orphan_keys"]:
            print(f"    - {key}")
    if result["errors"]:
        print("  errors:")
        for error in result["errors"]:
            print(f"    - {error}")


if __name__ == "__main__":
    main()
