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
Browser session persistence.

This module provides:
- A SQLite table of console sessions keyed by an opaque cookie value
- Encryption at rest for the backend access and refresh tokens
- Expiry handling and cleanup
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
import secrets
import sqlite3
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from hiring_console.utils.config import Settings, ensure_encryption_setup, get_settings
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ConsoleSession:
    """A signed-in browser session."""

    session_id: str
    user_id: str
    access_token: str
    refresh_token: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)
    expires_at: datetime = field(default_factory=lambda: datetime.now() + timedelta(hours=24))

    @property
    def is_expired(self) -> bool:
        return datetime.now() >= self.expires_at

    @property
    def idle_hours(self) -> float:
        """Get hours since last activity."""
        return (datetime.now() - self.last_activity).total_seconds() / 3600


class TokenCipher:
    """Fernet wrapper; a missing key stores tokens as plain text."""

    PLAIN_PREFIX = "plain:"

    def __init__(self, key: Optional[str]):
        self._fernet = Fernet(key.encode()) if key else None
        if self._fernet is None:
            logger.warning("Session token encryption disabled - tokens stored in plain text")

    def encrypt(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if self._fernet is None:
            return self.PLAIN_PREFIX + value
        return self._fernet.encrypt(value.encode()).decode()

    def decrypt(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if value.startswith(self.PLAIN_PREFIX):
            return value[len(self.PLAIN_PREFIX):]
        if self._fernet is None:
            raise InvalidToken()
        return self._fernet.decrypt(value.encode()).decode()


class SessionDatabase:
    """Database operations for console sessions."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        settings: Optional[Settings] = None,
        encryption_key: Optional[str] = None,
    ):
        """Initialize session database."""
        self.settings = settings or get_settings()
        self.db_path = db_path or self.settings.data_dir / "sessions.db"
        key = encryption_key if encryption_key is not None else ensure_encryption_setup(self.settings)
        self.cipher = TokenCipher(key)
        self.ttl = timedelta(hours=self.settings.session_ttl_hours)
        self._setup_database()

    def _setup_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS console_sessions (
                    session_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    access_token TEXT NOT NULL,
                    refresh_token TEXT,
                    created_at TEXT NOT NULL,
                    last_activity TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                )
            """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_console_sessions_expires ON console_sessions (expires_at)"
            )
            conn.commit()

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _row_to_session(self, row: sqlite3.Row) -> Optional[ConsoleSession]:
        try:
            access_token = self.cipher.decrypt(row["access_token"])
            refresh_token = self.cipher.decrypt(row["refresh_token"])
        except InvalidToken:
            logger.warning(f"Session {row['session_id'][:8]}... cannot be decrypted with the current key")
            return None
        return ConsoleSession(
            session_id=row["session_id"],
            user_id=row["user_id"],
            access_token=access_token,
            refresh_token=refresh_token,
            created_at=datetime.fromisoformat(row["created_at"]),
            last_activity=datetime.fromisoformat(row["last_activity"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )

    def create_session(
        self, user_id: str, access_token: str, refresh_token: Optional[str] = None
    ) -> ConsoleSession:
        now = datetime.now()
        session = ConsoleSession(
            session_id=secrets.token_urlsafe(32),
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            created_at=now,
            last_activity=now,
            expires_at=now + self.ttl,
        )
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO console_sessions
                (session_id, user_id, access_token, refresh_token, created_at, last_activity, expires_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    session.session_id,
                    session.user_id,
                    self.cipher.encrypt(access_token),
                    self.cipher.encrypt(refresh_token),
                    session.created_at.isoformat(),
                    session.last_activity.isoformat(),
                    session.expires_at.isoformat(),
                ),
            )
            conn.commit()
        logger.info(f"Created console session for user {user_id}")
        return session

    def get_session(self, session_id: str) -> Optional[ConsoleSession]:
        """Return a live session, deleting it if it has expired."""
        if not session_id:
            return None
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM console_sessions WHERE session_id = ?", (session_id,)
            ).fetchone()
        if row is None:
            return None
        session = self._row_to_session(row)
        if session is None or session.is_expired:
            self.delete_session(session_id)
            return None
        return session

    def touch(self, session_id: str) -> None:
        """Record activity and slide the expiry window."""
        now = datetime.now()
        with self.get_connection() as conn:
            conn.execute(
                "UPDATE console_sessions SET last_activity = ?, expires_at = ? WHERE session_id = ?",
                (now.isoformat(), (now + self.ttl).isoformat(), session_id),
            )
            conn.commit()

    def update_tokens(
        self, session_id: str, access_token: str, refresh_token: Optional[str] = None
    ) -> None:
        with self.get_connection() as conn:
            conn.execute(
                "UPDATE console_sessions SET access_token = ?, refresh_token = ? WHERE session_id = ?",
                (
                    self.cipher.encrypt(access_token),
                    self.cipher.encrypt(refresh_token),
                    session_id,
                ),
            )
            conn.commit()

    def delete_session(self, session_id: str) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM console_sessions WHERE session_id = ?", (session_id,)
            )
            conn.commit()
            return cursor.rowcount > 0

    def cleanup_expired(self) -> int:
        with self.get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM console_sessions WHERE expires_at <= ?",
                (datetime.now().isoformat(),),
            )
            conn.commit()
            removed = cursor.rowcount
        if removed:
            logger.info(f"🧹 Removed {removed} expired console sessions")
        return removed


# Global session database instance
_session_database = None


def get_session_database() -> SessionDatabase:
    """Get the global session database instance."""
    global _session_database
    if _session_database is None:
        _session_database = SessionDatabase()
    return _session_database
