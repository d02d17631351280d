"""
Copyright 2024 Job Application Helper Contributors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
Tests for console session persistence.
"""

from datetime import datetime, timedelta
import sqlite3

from cryptography.fernet import Fernet
import pytest

from hiring_console.core.sessions import SessionDatabase, TokenCipher


@pytest.fixture
def key():
    return Fernet.generate_key().decode()


@pytest.fixture
def sessions(temp_dir, settings, key):
    return SessionDatabase(db_path=temp_dir / "sessions.db", settings=settings, encryption_key=key)


class TestTokenCipher:
    """Test token encryption."""

    def test_encrypted_value_differs_from_token(self, key):
        cipher = TokenCipher(key)

        encrypted = cipher.encrypt("secret-token")

        assert encrypted != "secret-token"
        assert cipher.decrypt(encrypted) == "secret-token"

    def test_without_key_tokens_are_prefixed(self):
        cipher = TokenCipher(None)

        assert cipher.encrypt("tok") == "plain:tok"
        assert cipher.decrypt("plain:tok") == "tok"
        assert cipher.encrypt(None) is None


class TestSessionDatabase:
    """Test session storage."""

    def test_create_and_get(self, sessions):
        created = sessions.create_session("user-1", "access", "refresh")

        loaded = sessions.get_session(created.session_id)

        assert loaded.user_id == "user-1"
        assert loaded.access_token == "access"
        assert loaded.refresh_token == "refresh"
        assert not loaded.is_expired

    def test_tokens_are_encrypted_at_rest(self, sessions):
        created = sessions.create_session("user-1", "access-token-value")

        with sqlite3.connect(sessions.db_path) as conn:
            stored = conn.execute(
                "SELECT access_token FROM console_sessions WHERE session_id = ?",
                (created.session_id,),
            ).fetchone()[0]

        assert "access-token-value" not in stored

    def test_unknown_or_empty_session(self, sessions):
        assert sessions.get_session("missing") is None
        assert sessions.get_session("") is None

    def test_expired_session_is_removed(self, sessions):
        created = sessions.create_session("user-1", "access")
        past = (datetime.now() - timedelta(minutes=1)).isoformat()
        with sessions.get_connection() as conn:
            conn.execute(
                "UPDATE console_sessions SET expires_at = ? WHERE session_id = ?",
                (past, created.session_id),
            )
            conn.commit()

        assert sessions.get_session(created.session_id) is None
        assert sessions.delete_session(created.session_id) is False

    def test_session_from_another_key_is_dropped(self, temp_dir, settings, sessions):
        created = sessions.create_session("user-1", "access")
        other = SessionDatabase(
            db_path=sessions.db_path, settings=settings, encryption_key=Fernet.generate_key().decode()
        )

        assert other.get_session(created.session_id) is None

    def test_touch_slides_expiry(self, sessions):
        created = sessions.create_session("user-1", "access")

        sessions.touch(created.session_id)

        loaded = sessions.get_session(created.session_id)
        assert loaded.expires_at >= created.expires_at
        assert loaded.last_activity >= created.last_activity

    def test_update_tokens(self, sessions):
        created = sessions.create_session("user-1", "old-access", "old-refresh")

        sessions.update_tokens(created.session_id, "new-access", "new-refresh")

        loaded = sessions.get_session(created.session_id)
        assert loaded.access_token == "new-access"
        assert loaded.refresh_token == "new-refresh"

    def test_cleanup_expired(self, sessions):
        live = sessions.create_session("user-1", "a")
        stale = sessions.create_session("user-2", "b")
        with sessions.get_connection() as conn:
            conn.execute(
                "UPDATE console_sessions SET expires_at = ? WHERE session_id = ?",
                ((datetime.now() - timedelta(hours=1)).isoformat(), stale.session_id),
            )
            conn.commit()

        assert sessions.cleanup_expired() == 1
        assert sessions.get_session(live.session_id) is not None
