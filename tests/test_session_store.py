import os
import sys
import unittest
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from resume_formatter.core.config import CREDENTIAL_ENV_NAMES, load_credential_pool  # noqa: E402
from resume_formatter.core.session_store import SessionStore  # noqa: E402
from resume_formatter.schemas.resume import ResumeFormat, ResumeRecord  # noqa: E402


class SessionStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = SessionStore(ttl_minutes=30)
        self.record = ResumeRecord(full_name="Jane Doe")

    def test_create_get_delete(self):
        session = self.store.create(self.record, ResumeFormat.MODERN_EXECUTIVE, filename="cv.pdf")
        self.assertGreaterEqual(len(session.session_id), 16)
        self.assertIs(self.store.get(session.session_id), session)
        self.assertIs(session.review.record, self.record)

        self.assertTrue(self.store.delete(session.session_id))
        self.assertIsNone(self.store.get(session.session_id))
        self.assertFalse(self.store.delete(session.session_id))

    def test_sessions_are_isolated(self):
        first = self.store.create(self.record, ResumeFormat.CLASSIC_PROFESSIONAL)
        second = self.store.create(self.record, ResumeFormat.CLASSIC_PROFESSIONAL)
        self.assertNotEqual(first.session_id, second.session_id)
        self.assertIsNot(first.review, second.review)
        self.assertIsNot(first.lock, second.lock)

    def test_idle_sessions_expire(self):
        session = self.store.create(self.record, ResumeFormat.CLASSIC_PROFESSIONAL)
        session.last_access -= timedelta(minutes=31)
        self.assertIsNone(self.store.get(session.session_id))
        self.assertEqual(len(self.store), 0)

    def test_purge_expired(self):
        stale = self.store.create(self.record, ResumeFormat.CLASSIC_PROFESSIONAL)
        fresh = self.store.create(self.record, ResumeFormat.CLASSIC_PROFESSIONAL)
        stale.last_access -= timedelta(hours=2)

        self.assertEqual(self.store.purge_expired(), 1)
        self.assertIsNone(self.store.get(stale.session_id))
        self.assertIs(self.store.get(fresh.session_id), fresh)


class CredentialPoolTests(unittest.TestCase):
    def _env(self, **values):
        cleared = {name: "" for name in CREDENTIAL_ENV_NAMES}
        cleared.update(values)
        return patch.dict(os.environ, cleared)

    def test_pool_keeps_order_and_skips_blanks_duplicates_and_placeholders(self):
        with self._env(
            OPENAI_API_KEY="sk-one",
            OPENAI_API_KEY_2="your_api_key_here",
            OPENAI_API_KEY_3="sk-three",
            OPENAI_API_KEY_4="sk-one",
        ):
            self.assertEqual(load_credential_pool(), ("sk-one", "sk-three"))

    def test_empty_pool(self):
        with self._env():
            self.assertEqual(load_credential_pool(), ())


if __name__ == "__main__":
    unittest.main()
