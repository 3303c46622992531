#!/usr/bin/env python3
"""
Create or update an admin account. Only admin accounts can sign in.
Run with: python -m scripts.seed_admin admin@example.com --name "Site Admin"

The password is prompted for unless --password is given. Pass --no-password to
create a magic-link-only admin. Changing the password of an existing admin
revokes all of their refresh tokens.
"""

import argparse
import getpass
import os
import sys
from typing import Optional

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session

from app.core.database import SessionLocal
from app.core.sanitization import sanitize_email, sanitize_name, validate_email
from app.core.security import get_password_hash, revoke_all_user_tokens
from app.models.admin_user import AdminUser

MIN_PASSWORD_LENGTH = 12


def upsert_admin(
    db: Session,
    email: str,
    password: Optional[str] = None,
    name: Optional[str] = None,
    active: bool = True,
) -> tuple[AdminUser, bool]:
    """Create the admin, or update it if the email exists. Returns (admin, created)."""
    email = sanitize_email(email)
    if not validate_email(email):
        raise ValueError(f"Invalid email address: {email}")
    if password is not None and len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    admin = db.query(AdminUser).filter(AdminUser.email == email).first()
    created = admin is None
    if created:
        admin = AdminUser(email=email, name=sanitize_name(name or ""))
        db.add(admin)
    elif name is not None:
        admin.name = sanitize_name(name)

    admin.is_active = active
    if password is not None:
        admin.password_hash = get_password_hash(password)
    db.commit()
    db.refresh(admin)

    if not created and (password is not None or not active):
        revoke_all_user_tokens(db, admin.id)

    return admin, created


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Create or update an admin account.")
    parser.add_argument("email")
    parser.add_argument("--name", default=None)
    parser.add_argument("--password", default=None, help="Prompted for when omitted")
    parser.add_argument("--no-password", action="store_true", help="Magic-link-only admin")
    parser.add_argument("--deactivate", action="store_true", help="Block the account from signing in")
    args = parser.parse_args(argv)

    password = args.password
    if password is None and not args.no_password and not args.deactivate:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            print("Passwords do not match")
            return 1

    db = SessionLocal()
    try:
        admin, created = upsert_admin(
            db,
            args.email,
            password=password,
            name=args.name,
            active=not args.deactivate,
        )
        action = "Created" if created else "Updated"
        state = "active" if admin.is_active else "deactivated"
        print(f"{action} admin {admin.email} ({state})")
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    except Exception as e:
        db.rollback()
        print(f"Error saving admin: {e}")
        raise
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
