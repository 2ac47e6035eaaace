"""Unit tests for app.services.identity against an in-memory SQLite store."""

import unittest
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import LockoutOptions
from app.core.errors import IdentityError
from app.core.security import utcnow
from app.models import Base, Role
from app.services import identity


class StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        rounds = patch("app.core.security.BCRYPT_ROUNDS", 4)
        rounds.start()
        self.addCleanup(rounds.stop)
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.db = sessionmaker(bind=self.engine, autoflush=False)()
        self.lockout = LockoutOptions(max_failed_attempts=2, lockout_minutes=5)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _create(self, email: str = "ada@example.com", password: str = "secret"):
        return identity.create_user(
            self.db,
            email=email,
            password=password,
            first_name="Ada",
            last_name="Lovelace",
            lockout=self.lockout,
        )


class TestCreateUser(StoreTestCase):
    def test_user_name_is_email_and_password_hashed(self) -> None:
        user = self._create()
        self.assertEqual(user.user_name, "ada@example.com")
        self.assertEqual(user.normalized_email, "ADA@EXAMPLE.COM")
        self.assertNotEqual(user.password_hash, "secret")
        self.assertTrue(identity.check_password(user, "secret"))
        self.assertFalse(identity.check_password(user, "Secret"))
        self.assertTrue(user.security_stamp)
        self.assertTrue(user.lockout_enabled)

    def test_find_by_email_and_id(self) -> None:
        user = self._create()
        self.assertEqual(identity.find_by_email(self.db, " ADA@example.com").id, user.id)
        self.assertEqual(identity.find_by_id(self.db, user.id).email, "ada@example.com")
        self.assertIsNone(identity.find_by_id(self.db, "missing"))


class TestRoles(StoreTestCase):
    def test_get_or_create_is_idempotent_by_name(self) -> None:
        first = identity.get_or_create_role(self.db, "Admin")
        second = identity.get_or_create_role(self.db, "admin ")
        self.assertEqual(first.id, second.id)
        self.assertEqual(self.db.scalar(select(func.count()).select_from(Role)), 1)

    def test_add_to_role_twice_raises(self) -> None:
        user = self._create()
        role = identity.get_or_create_role(self.db, "member")
        identity.add_to_role(self.db, user, role)
        self.assertEqual(identity.get_roles(user), ["member"])
        with self.assertRaises(IdentityError):
            identity.add_to_role(self.db, user, role)


class TestLockoutAccounting(StoreTestCase):
    def test_access_failed_locks_at_threshold(self) -> None:
        user = self._create()
        now = utcnow()
        self.assertFalse(identity.access_failed(self.db, user, self.lockout, now))
        self.assertEqual(user.access_failed_count, 1)
        self.assertTrue(identity.access_failed(self.db, user, self.lockout, now))
        self.assertEqual(user.access_failed_count, 0)
        self.assertTrue(identity.is_locked_out(user, now + timedelta(minutes=4)))
        self.assertFalse(identity.is_locked_out(user, now + timedelta(minutes=5)))

    def test_reset_clears_lockout(self) -> None:
        user = self._create()
        now = utcnow()
        identity.access_failed(self.db, user, self.lockout, now)
        identity.access_failed(self.db, user, self.lockout, now)
        identity.reset_access_failed(self.db, user)
        self.assertFalse(identity.is_locked_out(user, now))


class TestSecurityStamp(StoreTestCase):
    def test_change_password_rotates_stamp(self) -> None:
        user = self._create()
        old = user.security_stamp
        identity.change_password(self.db, user, "new-secret")
        self.assertNotEqual(user.security_stamp, old)
        self.assertTrue(identity.check_password(user, "new-secret"))


if __name__ == "__main__":
    unittest.main()
