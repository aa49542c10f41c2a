"""Create an administrator account.

Usage:
    python -m backend.create_admin --email admin@example.com --fullname "Portal Admin"

The password is read from ADMIN_PASSWORD or prompted for.
"""
import argparse
import getpass
import os
import sys
from dataclasses import astuple

from backend.auth.errors import DuplicateIdentityError
from backend.auth.passwords import hash_password
from backend.auth.user_store import UserProfile, UserStore
from backend.database import Base, SessionLocal, engine, ensure_user_schema
from backend.models.user import UserRole


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--email", required=True)
    parser.add_argument("--fullname", default="Administrator")
    parser.add_argument("--phone", default="-")
    parser.add_argument("--cet-roll-number", default="-")
    parser.add_argument("--category", default="admin")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    profile = UserProfile(
        fullname=args.fullname.strip(),
        email=args.email.strip(),
        phone=args.phone.strip(),
        cet_roll_number=args.cet_roll_number.strip(),
        category=args.category.strip(),
    )
    if not all(astuple(profile)):
        print("All fields are required", file=sys.stderr)
        return 1

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    if not password.strip():
        print("Password cannot be empty", file=sys.stderr)
        return 1

    Base.metadata.create_all(bind=engine)
    ensure_user_schema()

    db = SessionLocal()
    try:
        user_id = UserStore(db).create(profile, hash_password(password), role=UserRole.ADMIN)
    except DuplicateIdentityError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"Created admin user {user_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
