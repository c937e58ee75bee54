"""
Local key/value settings store backed by SQLite.

Holds operator preferences such as the default token or the last used
working directory. One small table, WAL mode, one connection per call.

Usage:
    from spacemig.core.settings import SettingsStore

    store = SettingsStore()
    store.set_setting("oauth_token", "...")
    token = store.get_setting("oauth_token")
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from spacemig.core.config.loader import get_xdg_data_home

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


def get_default_settings_path() -> Path:
    """Path to the settings database ($XDG_DATA_HOME/spacemig/settings.db)."""
    return get_xdg_data_home() / "spacemig" / "settings.db"


class SettingsStore:
    """
    Persistent string settings.

    The database file and its parent directory are created on first use.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_default_settings_path()
        self._initialized = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if not self._initialized:
            self.path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self.path)
        try:
            if not self._initialized:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute(SCHEMA)
                self._initialized = True
                logger.debug("Opened settings database at %s", self.path)
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_setting(self, key: str) -> str | None:
        """Return a setting's value, or None when it is not set."""
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_setting(self, key: str, value: str) -> None:
        """Insert or replace a setting."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )

    def delete_setting(self, key: str) -> None:
        """Remove a setting. Missing keys are ignored."""
        with self._connect() as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (key,))

    def all_settings(self) -> dict[str, str]:
        """Return every setting, sorted by key."""
        with self._connect() as conn:
            rows = conn.execute("SELECT key, value FROM settings ORDER BY key").fetchall()
        return {key: value for key, value in rows}
