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
Per-user UI preferences kept by the console.

This module provides:
- Table column visibility for the candidates and jobs tables
- A staging editor for the column customization panel
- Notification preferences from the settings screen
"""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
import json
from pathlib import Path
import sqlite3
from typing import Any, Dict, List, Optional

from hiring_console.core.errors import ValidationError
from hiring_console.utils.config import get_settings
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TableColumn:
    key: str
    label: str
    visible: bool = True


DEFAULT_COLUMNS: Dict[str, List[TableColumn]] = {
    "candidates": [
        TableColumn("checkbox", "Select"),
        TableColumn("id", "ID"),
        TableColumn("applied_date", "Applied Date"),
        TableColumn("candidate_name", "Candidate Name"),
        TableColumn("job_title", "Job"),
        TableColumn("company_name", "Company"),
        TableColumn("location", "Location"),
        TableColumn("status", "Status"),
        TableColumn("actions", "Actions"),
    ],
    "jobs": [
        TableColumn("job_title", "Job"),
        TableColumn("company_name", "Company"),
        TableColumn("salary", "Salary"),
        TableColumn("location", "Location"),
        TableColumn("deadline", "Deadline"),
        TableColumn("status", "Status"),
        TableColumn("actions", "Actions"),
    ],
}

# storage keys match the browser's localStorage names so exports line up
COLUMN_KEYS = {
    "candidates": "candidates-table-columns",
    "jobs": "jobs-table-columns",
}
NOTIFICATIONS_KEY = "notification-preferences"


@dataclass
class NotificationPreferences:
    applications: bool = True
    weekly_summary: bool = True
    product_updates: bool = False
    industry_updates: bool = True
    community_events: bool = False
    other_notifications: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationPreferences":
        names = {f.name for f in fields(cls)}
        return cls(**{k: bool(v) for k, v in data.items() if k in names})


def default_columns(table: str) -> List[TableColumn]:
    if table not in DEFAULT_COLUMNS:
        raise ValidationError(f"Unknown table: {table}")
    return [TableColumn(c.key, c.label, c.visible) for c in DEFAULT_COLUMNS[table]]


class PreferencesDatabase:
    """Key/value preference rows per user."""

    def __init__(self, db_path: Optional[Path] = None):
        self.settings = get_settings()
        self.db_path = db_path or self.settings.data_dir / "preferences.db"
        self._setup_database()

    def _setup_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS user_preferences (
                    user_id TEXT NOT NULL,
                    pref_key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, pref_key)
                )
            """
            )
            conn.commit()

    def get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, user_id: str, key: str) -> Optional[Any]:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM user_preferences WHERE user_id = ? AND pref_key = ?",
                (user_id, key),
            ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse saved preference {key}: {e}")
            return None

    def set(self, user_id: str, key: str, value: Any) -> None:
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO user_preferences (user_id, pref_key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (user_id, pref_key)
                DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
                (user_id, key, json.dumps(value), datetime.now().isoformat()),
            )
            conn.commit()

    def delete(self, user_id: str, key: str) -> None:
        with self.get_connection() as conn:
            conn.execute(
                "DELETE FROM user_preferences WHERE user_id = ? AND pref_key = ?",
                (user_id, key),
            )
            conn.commit()


class PreferencesManager:
    """Column and notification preferences for signed-in users."""

    def __init__(self, db: PreferencesDatabase):
        self.db = db

    # Table columns

    def get_columns(self, user_id: str, table: str) -> List[TableColumn]:
        defaults = default_columns(table)
        saved = self.db.get(user_id, COLUMN_KEYS[table])
        if not isinstance(saved, list):
            return defaults
        known = {c.key: c for c in defaults}
        columns = []
        for entry in saved:
            if isinstance(entry, dict) and entry.get("key") in known:
                base = known.pop(entry["key"])
                columns.append(TableColumn(base.key, base.label, bool(entry.get("visible", True))))
        # columns added since the preference was saved
        columns.extend(known.values())
        return columns

    def update_columns(self, user_id: str, table: str, columns: List[TableColumn]) -> List[TableColumn]:
        allowed = {c.key for c in default_columns(table)}
        unknown = [c.key for c in columns if c.key not in allowed]
        if unknown:
            raise ValidationError(f"Unknown columns: {', '.join(unknown)}")
        self.db.set(user_id, COLUMN_KEYS[table], [asdict(c) for c in columns])
        return self.get_columns(user_id, table)

    def toggle_column(self, user_id: str, table: str, column_key: str) -> List[TableColumn]:
        columns = self.get_columns(user_id, table)
        if column_key not in {c.key for c in columns}:
            raise ValidationError(f"Unknown column: {column_key}")
        for column in columns:
            if column.key == column_key:
                column.visible = not column.visible
        return self.update_columns(user_id, table, columns)

    def reset_columns(self, user_id: str, table: str) -> List[TableColumn]:
        return self.update_columns(user_id, table, default_columns(table))

    # Notifications

    def get_notifications(self, user_id: str) -> NotificationPreferences:
        saved = self.db.get(user_id, NOTIFICATIONS_KEY)
        if not isinstance(saved, dict):
            return NotificationPreferences()
        return NotificationPreferences.from_dict(saved)

    def save_notifications(
        self, user_id: str, preferences: NotificationPreferences
    ) -> NotificationPreferences:
        self.db.set(user_id, NOTIFICATIONS_KEY, asdict(preferences))
        logger.info(f"Saved notification preferences for user {user_id}")
        return preferences


class ColumnEditor:
    """
    Customization panel state: a temp copy of the columns that is only
    written back on apply.
    """

    def __init__(self, columns: List[TableColumn]):
        self.original = [TableColumn(c.key, c.label, c.visible) for c in columns]
        self.temp = [TableColumn(c.key, c.label, c.visible) for c in columns]
        self.search_term = ""

    def toggle(self, column_key: str) -> None:
        for column in self.temp:
            if column.key == column_key:
                column.visible = not column.visible
                return
        raise ValidationError(f"Unknown column: {column_key}")

    def search(self, term: str) -> List[TableColumn]:
        self.search_term = term or ""
        return self.visible_options()

    def visible_options(self) -> List[TableColumn]:
        needle = self.search_term.strip().lower()
        if not needle:
            return list(self.temp)
        return [c for c in self.temp if needle in c.label.lower()]

    def changed_keys(self) -> List[str]:
        original = {c.key: c.visible for c in self.original}
        return [c.key for c in self.temp if original.get(c.key) != c.visible]

    def apply(self) -> List[TableColumn]:
        return [TableColumn(c.key, c.label, c.visible) for c in self.temp]

    def cancel(self) -> List[TableColumn]:
        self.temp = [TableColumn(c.key, c.label, c.visible) for c in self.original]
        self.search_term = ""
        return self.original


# Global instance
_preferences_manager = None


def get_preferences_manager() -> PreferencesManager:
    global _preferences_manager
    if _preferences_manager is None:
        _preferences_manager = PreferencesManager(PreferencesDatabase())
    return _preferences_manager
