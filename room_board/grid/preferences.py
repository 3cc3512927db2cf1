import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

import psycopg2

logger = logging.getLogger(__name__)

USE_UPCOMING_WINDOW = "useUpcomingWindow"
AUTO_ADVANCE = "autoAdvance"

DEFAULTS = {USE_UPCOMING_WINDOW: True, AUTO_ADVANCE: False}


class InMemoryPreferenceStore:
    """
    Process local key-value store. Used in development and tests, values are lost on restart.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str):
        self._values[key] = value


class DatabasePreferenceStore:
    """
    Key-value store persisted in the board_preferences table.
    Must include the DATABASE_URL environment variable when deploying to production.
    """

    def __init__(self, database_url: Optional[str] = None):
        self._database_url = database_url
        self._setup_schema()

    @contextmanager
    def _database_connect(self):
        """
        Internal function to manage the Postgres database connections.
        """
        if self._database_url:
            connection = psycopg2.connect(self._database_url)
        else:
            connection = psycopg2.connect(dbname='room_board')
        try:
            with connection:
                yield connection
        finally:
            connection.close()

    def get(self, key: str) -> Optional[str]:
        query = "SELECT value FROM board_preferences WHERE key = %s"
        logger.info("Executing query: %s", query)
        with self._database_connect() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, (key,))
                row = cursor.fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str):
        query = """INSERT INTO board_preferences (key, value) VALUES (%s, %s)
                   ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value"""
        logger.info("Executing query: %s", query)
        with self._database_connect() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, (key, value))

    def _setup_schema(self):
        """
        Internal function to set-up the table if it does not exist yet.
        """
        with self._database_connect() as conn:
            with conn.cursor() as cursor:
                cursor.execute("""
                    SELECT COUNT(*)
                    FROM information_schema.tables
                    WHERE table_schema = 'public' AND table_name = 'board_preferences';
                """)
                if cursor.fetchone()[0] == 0:
                    logger.info("Setting up the schema.")
                    cursor.execute("""
                        CREATE TABLE board_preferences (
                        key text PRIMARY KEY,
                        value text NOT NULL);
                    """)


class Preferences:
    """
    User toggles persisted across sessions: read once at startup with defaults, written on every change.
    Values are stored as JSON text.
    """

    def __init__(self, store):
        self._store = store
        self._values = {key: self._load(key, default) for key, default in DEFAULTS.items()}

    def _load(self, key: str, default: bool) -> bool:
        try:
            raw = self._store.get(key)
        except psycopg2.DatabaseError as e:
            logger.error("Reading preference %s failed: %s. Using default %s", key, e.args, default)
            return default
        if raw is None:
            return default
        try:
            return bool(json.loads(raw))
        except (TypeError, ValueError):
            logger.warning("Stored preference %s is not valid JSON: %r. Using default %s", key, raw, default)
            return default

    def _save(self, key: str, value: Any):
        self._values[key] = value
        try:
            self._store.set(key, json.dumps(value))
        except psycopg2.DatabaseError as e:
            # Keep the in-process value, it is retried on the next change
            logger.error("Saving preference %s failed: %s", key, e.args)

    @property
    def use_upcoming_window(self) -> bool:
        return self._values[USE_UPCOMING_WINDOW]

    @use_upcoming_window.setter
    def use_upcoming_window(self, value: bool):
        self._save(USE_UPCOMING_WINDOW, bool(value))

    @property
    def auto_advance(self) -> bool:
        return self._values[AUTO_ADVANCE]

    @auto_advance.setter
    def auto_advance(self, value: bool):
        self._save(AUTO_ADVANCE, bool(value))

    def to_dict(self):
        return dict(self._values)


def create_preference_store(database_url: Optional[str] = None):
    if database_url:
        return DatabasePreferenceStore(database_url)
    logger.info("No DATABASE_URL set, preferences are kept in memory.")
    return InMemoryPreferenceStore()
