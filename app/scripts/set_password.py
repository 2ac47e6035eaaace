"""
Set a user's password and revoke their sessions. Run from project root:
  python -m app.scripts.set_password EMAIL NEW_PASSWORD
"""
import argparse
import sys

from app.core.config import build_identity_options, get_settings
from app.core.database import SessionLocal
from app.core.security import password_policy_errors
from app.services import identity


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Set a Gatehouse user's password; outstanding sessions stop working."
    )
    parser.add_argument("email")
    parser.add_argument("password")
    args = parser.parse_args(argv)

    options = build_identity_options(get_settings())
    problems = password_policy_errors(args.password, options.password)
    if not args.password or problems:
        for p in problems or ["Password must not be empty."]:
            print(p, file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        user = identity.find_by_email(db, args.email)
        if user is None:
            print(f"User '{args.email}' not found.", file=sys.stderr)
            return 1
        identity.change_password(db, user, args.password)
        identity.reset_access_failed(db, user)
        print(f"Password updated for '{user.email}'; existing sessions revoked.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
