"""Unit and integration tests for refresh-token retention."""

import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from app.models import RefreshToken
from app.models.base import utcnow
from app.services.retention import run_retention
from support import ServiceTestCase, make_settings


class TestRetentionDisabled(unittest.TestCase):
    """When RETENTION_ENABLED is False, run_retention does nothing."""

    def test_returns_zero_and_does_not_query(self) -> None:
        settings = MagicMock()
        settings.RETENTION_ENABLED = False
        settings.RETENTION_HOURS = 48
        session = MagicMock()
        self.assertEqual(run_retention(session, settings), 0)
        session.query.assert_not_called()
        session.commit.assert_not_called()


class TestRetentionCommits(unittest.TestCase):
    def test_reports_deleted_count(self) -> None:
        settings = MagicMock()
        settings.RETENTION_ENABLED = True
        settings.RETENTION_HOURS = 48
        session = MagicMock()
        session.query.return_value.filter.return_value.delete.return_value = 3
        self.assertEqual(run_retention(session, settings), 3)
        session.commit.assert_called_once()


class TestRetentionAgainstStore(ServiceTestCase):
    """Seeded in-memory store: only tokens expired before the cutoff are removed."""

    def _token(self, expires_in: timedelta, revoked: bool = False) -> str:
        now = utcnow()
        with self.uow.transaction():
            record = self.tokens.issue_refresh_token(self.employee.id, now)
            record.expires_at = now + expires_in
            if revoked:
                record.revoke("test", now)
        return record.token

    def test_purges_only_long_dead_tokens(self) -> None:
        settings = make_settings(RETENTION_HOURS=24)
        long_expired = self._token(-timedelta(days=3))
        recently_expired = self._token(-timedelta(hours=1))
        revoked_but_unexpired = self._token(timedelta(days=5), revoked=True)
        active = self._token(timedelta(days=5))

        deleted = run_retention(self.session, settings)
        self.assertEqual(deleted, 1)

        remaining = {t.token for t in self.uow.refresh_tokens.get_all()}
        self.assertNotIn(long_expired, remaining)
        self.assertIn(recently_expired, remaining)
        self.assertIn(revoked_but_unexpired, remaining)
        self.assertIn(active, remaining)

    def test_idempotent(self) -> None:
        settings = make_settings(RETENTION_HOURS=24)
        self._token(-timedelta(days=3))
        self.assertEqual(run_retention(self.session, settings), 1)
        self.assertEqual(run_retention(self.session, settings), 0)


if __name__ == "__main__":
    unittest.main()
