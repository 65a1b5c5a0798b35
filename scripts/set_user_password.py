"""Create an account or reset its password for local development."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the project root is on sys.path so ``salonbook`` can be imported when the script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from salonbook import create_app
from salonbook.auth import set_password
from salonbook.extensions import db
from salonbook.models import User

ROLES = ("user", "admin")
DEFAULT_NAMES = {"user": "Test User", "admin": "Admin User"}


def set_user_password(email: str, password: str, role: str = "user") -> None:
    app = create_app()
    email = email.strip().lower()

    with app.app_context():
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(full_name=DEFAULT_NAMES[role], email=email, role=role)
            db.session.add(user)
            db.session.flush()
            print(f"Created new {role} account: {email}")
        elif user.role != role:
            print(f"Updating role from '{user.role}' to '{role}'")
            user.role = role

        set_password(user, password)
        db.session.commit()

        print(f"Password for {role} '{email}' has been set successfully.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Set an account password for local testing.")
    parser.add_argument("email", help="Account email address")
    parser.add_argument("password", help="Plain-text password to hash and store")
    parser.add_argument("--role", choices=ROLES, default="user", help="Account role (default: user)")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    set_user_password(args.email, args.password, args.role)


if __name__ == "__main__":
    main()
