#!/usr/bin/env python3
"""
Utility script to grant admin privileges to a user.

Usage:
    python scripts/make_admin.py <email>
    python scripts/make_admin.py --list

Example:
    python scripts/make_admin.py admin@example.com
"""

import sys
import os

# Add parent directory to path to import from judge_api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from judge_api.database import Database, get_database, unit_of_work
from judge_api.models import User, UserRole


def make_user_admin(email: str, database: Database = None) -> bool:
    """Grant admin privileges to the user with this email"""
    db = (database or get_database()).session()
    try:
        user = db.query(User).filter(User.email == email.strip()).first()
        if not user:
            print(f"❌ Error: User not found with email '{email}'")
            return False

        if user.is_admin:
            print(f"ℹ️  User '{user.name}' ({user.email}) is already an admin")
            return True

        with unit_of_work(db):
            user.role = UserRole.ADMIN

        print(f"✅ Success! User '{user.name}' ({user.email}) is now an admin")
        return True

    except Exception as e:
        print(f"❌ Error: {str(e)}")
        return False
    finally:
        db.close()


def list_admins(database: Database = None) -> list:
    """List all admin users"""
    db = (database or get_database()).session()
    try:
        admins = db.query(User).filter(User.role == UserRole.ADMIN).order_by(User.email).all()

        if not admins:
            print("No admin users found")
            return []

        print(f"\n📋 Admin Users ({len(admins)}):")
        print("-" * 60)
        for admin in admins:
            print(f"  • {admin.name} ({admin.email})")
        print()
        return [admin.email for admin in admins]
    finally:
        db.close()


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/make_admin.py <email>")
        print("       python scripts/make_admin.py --list")
        print("\nExamples:")
        print("  python scripts/make_admin.py admin@example.com")
        print("  python scripts/make_admin.py --list")
        sys.exit(1)

    if sys.argv[1] == "--list":
        list_admins()
    else:
        success = make_user_admin(sys.argv[1])
        sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
