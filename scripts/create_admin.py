#!/usr/bin/env python3
"""
Create an admin user, or promote an existing user to admin.
Run with: python -m scripts.create_admin --email admin@example.com --name "Site Admin"
The password is read from ADMIN_PASSWORD or prompted for.
"""

import argparse
import getpass
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.security import PasswordHasher
from app.services.user_service import UserStore


def create_admin(email: str, full_name: str, password: str) -> None:
    """Create the admin user, or flip an existing account to the admin role."""
    strength = PasswordHasher.assess_strength(password)
    if not strength.valid:
        raise SystemExit("Password too weak: " + "; ".join(strength.errors))

    db = SessionLocal()
    try:
        users = UserStore(db)
        existing = users.get_by_email(email)

        if existing:
            existing.role = "admin"
            existing.is_active = True
            db.commit()
            print(f"Promoted existing user to admin: {existing.email}")
            return

        hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
        user = users.create(
            email=email,
            password_hash=hasher.hash(password),
            full_name=full_name,
            role="admin",
        )
        db.commit()
        print(f"Created admin user: {user.email} ({user.id})")
    except Exception as e:
        db.rollback()
        print(f"Error creating admin: {e}")
        raise
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Create a dashboard admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()

    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    create_admin(args.email, args.name, password)


if __name__ == "__main__":
    main()
