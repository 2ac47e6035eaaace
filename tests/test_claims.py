"""Unit tests for app.services.claims and the session token codec in app.core.security."""

import unittest
from dataclasses import fields
from datetime import timedelta

import jwt

from app.core.config import CookieOptions, PasswordOptions, build_identity_options
from app.core.security import encode_session_token, password_policy_errors, utcnow
from app.models import Role, User
from app.services.claims import (
    InvalidSession,
    build_principal,
    deserialize_principal,
    serialize_principal,
)
from support import make_settings


def _user(**kwargs: object) -> User:
    """Build a detached User with one role for tests."""
    defaults = {
        "id": "3f2b4c1e-0000-4000-8000-000000000001",
        "user_name": "ada@example.com",
        "email": "ada@example.com",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "password_hash": "x",
        "security_stamp": "STAMP1",
    }
    defaults.update(kwargs)
    user = User(**defaults)
    user.roles = [Role(name="admin", normalized_name="ADMIN")]
    return user


class TestBuildPrincipal(unittest.TestCase):
    """build_principal snapshots identity claims and a fixed 30-day window."""

    def setUp(self) -> None:
        self.options = build_identity_options(make_settings())
        self.now = utcnow()

    def test_claims_and_window(self) -> None:
        p = build_principal(_user(), self.now, self.options)
        self.assertEqual(p.user_id, "3f2b4c1e-0000-4000-8000-000000000001")
        self.assertEqual(p.user_name, "ada@example.com")
        self.assertEqual(p.given_name, "Ada")
        self.assertEqual(p.surname, "Lovelace")
        self.assertEqual(p.security_stamp, "STAMP1")
        self.assertEqual(p.roles, ["admin"])
        self.assertEqual(p.expires_at - p.issued_at, timedelta(days=30))

    def test_payload_uses_configured_claim_keys(self) -> None:
        token = serialize_principal(build_principal(_user(), self.now, self.options), self.options)
        payload = jwt.decode(token, options={"verify_signature": False})
        c = self.options.claims
        self.assertEqual(payload[c.user_id], "3f2b4c1e-0000-4000-8000-000000000001")
        self.assertEqual(payload[c.given_name], "Ada")
        self.assertEqual(payload[c.security_stamp], "STAMP1")
        self.assertEqual(payload[c.role], ["admin"])
        self.assertEqual(payload["exp"] - payload["iat"], 30 * 24 * 3600)


class TestDeserializePrincipal(unittest.TestCase):
    """Tokens verify only with the right key and before expiry."""

    def setUp(self) -> None:
        self.options = build_identity_options(make_settings())
        self.now = utcnow()
        self.principal = build_principal(_user(), self.now, self.options)
        self.token = serialize_principal(self.principal, self.options)

    def test_valid_token(self) -> None:
        p = deserialize_principal(self.token, self.options, self.now + timedelta(days=1))
        self.assertEqual(p.user_id, self.principal.user_id)
        self.assertEqual(p.roles, ["admin"])
        self.assertTrue(p.is_in_role("ADMIN"))

    def test_expired_token(self) -> None:
        with self.assertRaises(InvalidSession):
            deserialize_principal(self.token, self.options, self.now + timedelta(days=30))

    def test_wrong_key(self) -> None:
        other = build_identity_options(make_settings(SECRET_KEY="another-secret-key-of-sufficient-length!"))
        with self.assertRaises(InvalidSession):
            deserialize_principal(self.token, other, self.now)

    def test_garbage(self) -> None:
        with self.assertRaises(InvalidSession):
            deserialize_principal("not-a-token", self.options, self.now)

    def test_missing_claim(self) -> None:
        token = encode_session_token(
            {"sub": "1"}, self.now, self.now + timedelta(days=1), self.options
        )
        with self.assertRaises(InvalidSession):
            deserialize_principal(token, self.options, self.now)


class TestPasswordPolicy(unittest.TestCase):
    """password_policy_errors reports each enabled rule that fails."""

    def test_default_policy_accepts_anything(self) -> None:
        self.assertEqual(password_policy_errors("a", PasswordOptions()), [])

    def test_all_rules(self) -> None:
        policy = PasswordOptions(
            require_digit=True,
            require_lowercase=True,
            require_uppercase=True,
            require_non_alphanumeric=True,
            required_length=6,
            required_unique_chars=4,
        )
        self.assertEqual(len(password_policy_errors("aaa", policy)), 5)
        self.assertEqual(password_policy_errors("Abc1!x", policy), [])


class TestIdentityOptions(unittest.TestCase):
    """build_identity_options maps flat settings onto the option tree."""

    def test_lockout_not_enforced_by_default(self) -> None:
        self.assertFalse(build_identity_options(make_settings()).lockout.enforced)

    def test_lockout_enforced_from_settings(self) -> None:
        lockout = build_identity_options(make_settings(LOCKOUT_ENFORCED=True)).lockout
        self.assertTrue(lockout.enforced)
        self.assertEqual(lockout.max_failed_attempts, 5)

    def test_cookie_expiry_is_fixed(self) -> None:
        names = {f.name for f in fields(CookieOptions)}
        self.assertEqual(names, {"name", "http_only", "same_site", "expire_days"})
        cookie = build_identity_options(make_settings(SESSION_EXPIRE_DAYS=7)).cookie
        self.assertEqual(cookie.expire_days, 7)


if __name__ == "__main__":
    unittest.main()
