"""Initialize the listing database.

Usage:
  python scripts/init_db.py           # create missing tables
  python scripts/init_db.py --reset   # drop and recreate the properties table
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import engine, Base
import app.models  # noqa: F401 - registers all models


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="Drop existing tables first (storage objects are kept)")
    args = parser.parse_args()

    if args.reset:
        print("Dropping listing tables...")
        Base.metadata.drop_all(bind=engine)
    print("Creating listing tables...")
    Base.metadata.create_all(bind=engine)
    print(f"Database ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    main()
