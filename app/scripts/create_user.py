"""
Create a user in a role from the shell. Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD FIRST LAST [role]
Example:
  python -m app.scripts.create_user admin@example.com s3cret Ada Lovelace admin
"""
import argparse
import sys

from pydantic import EmailStr, TypeAdapter, ValidationError

from app.core.config import build_identity_options, get_settings
from app.core.database import SessionLocal
from app.core.errors import IdentityError
from app.core.security import password_policy_errors
from app.services import identity


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Gatehouse user and assign a role.")
    parser.add_argument("email", help="Email address (also the user name)")
    parser.add_argument("password", help="Password")
    parser.add_argument("first_name", help="Given name")
    parser.add_argument("last_name", help="Surname")
    parser.add_argument("role", nargs="?", default="member", help="Role name (created if new)")
    args = parser.parse_args(argv)

    options = build_identity_options(get_settings())
    try:
        email = TypeAdapter(EmailStr).validate_python(args.email.strip())
    except ValidationError:
        print("Invalid email address.", file=sys.stderr)
        return 1
    problems = password_policy_errors(args.password, options.password)
    if not args.password or problems:
        for p in problems or ["Password must not be empty."]:
            print(p, file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if identity.find_by_email(db, email) is not None:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        user = identity.create_user(
            db,
            email=email,
            password=args.password,
            first_name=args.first_name,
            last_name=args.last_name,
            lockout=options.lockout,
        )
        role = identity.get_or_create_role(db, args.role)
        identity.add_to_role(db, user, role)
        print(f"Created user '{email}' (id {user.id}) with role '{role.name}'.")
        return 0
    except IdentityError as e:
        print(str(e), file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
