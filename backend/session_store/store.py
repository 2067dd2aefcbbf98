from __future__ import annotations

import json
import os
import uuid
from typing import Any

from medassist_core.schemas import Medication

from .database import SQLiteSessionDB
from .guard import SessionStoreError, SessionStoreGuard
from .keys import Feature, SessionKey
from .time_utils import to_iso, utc_now


DEFAULT_SESSION_DB_PATH = "~/.medassist/session.sqlite"


def open_session_store(db_path: str | None = None) -> "SessionStore":
    path = db_path or os.getenv("MEDASSIST_SESSION_DB_PATH", "").strip() or DEFAULT_SESSION_DB_PATH
    return SessionStore(SQLiteSessionDB(path))


def _json_dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


class SessionStore:
    """Session-scoped local cache for chat history, analysis results and medications.

    Entries are addressed by typed ``SessionKey``s; each save overwrites the
    previous value and entries only disappear on explicit deletion, a new
    session, or pruning.
    """

    def __init__(self, db: SQLiteSessionDB) -> None:
        self._db = db
        self.guard = SessionStoreGuard()

    def current_session(self, feature: Feature) -> str | None:
        with self._db.connection() as conn:
            row = conn.execute(
                "SELECT session_id FROM current_sessions WHERE feature = ?",
                (feature.value,),
            ).fetchone()
        return row["session_id"] if row else None

    def set_current_session(self, feature: Feature, session_id: str) -> None:
        self.guard.ensure_session_id(session_id)
        now = to_iso(utc_now())
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO current_sessions (feature, session_id, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(feature) DO UPDATE SET
                  session_id = excluded.session_id,
                  updated_at = excluded.updated_at
                """,
                (feature.value, session_id, now),
            )

    def ensure_session(self, feature: Feature) -> str:
        """Resume the current session of ``feature`` or open one, dropping stale sessions."""
        session_id = self.current_session(feature)
        if session_id is None:
            session_id = f"{feature.value}-{uuid.uuid4().hex[:12]}"
            self.set_current_session(feature, session_id)
        self.prune(feature, keep=session_id)
        return session_id

    def start_session(self, feature: Feature) -> str:
        session_id = f"{feature.value}-{uuid.uuid4().hex[:12]}"
        with self._db.connection() as conn:
            conn.execute("DELETE FROM session_entries WHERE feature = ?", (feature.value,))
        self.set_current_session(feature, session_id)
        return session_id

    def prune(self, feature: Feature, *, keep: str) -> int:
        with self._db.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM session_entries WHERE feature = ? AND session_id != ?",
                (feature.value, keep),
            )
            return cursor.rowcount

    def save(self, key: SessionKey, value: Any) -> None:
        self.guard.ensure_key(key)
        now = to_iso(utc_now())
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO session_entries (
                  feature, session_id, kind, value_json, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(feature, session_id, kind) DO UPDATE SET
                  value_json = excluded.value_json,
                  updated_at = excluded.updated_at
                """,
                (key.feature.value, key.session_id, key.kind.value, _json_dumps(value), now, now),
            )

    def load(self, key: SessionKey, default: Any = None) -> Any:
        self.guard.ensure_key(key)
        with self._db.connection() as conn:
            row = conn.execute(
                """
                SELECT value_json
                FROM session_entries
                WHERE feature = ? AND session_id = ? AND kind = ?
                """,
                (key.feature.value, key.session_id, key.kind.value),
            ).fetchone()
        if row is None:
            return default
        return json.loads(row["value_json"])

    def delete(self, key: SessionKey) -> bool:
        self.guard.ensure_key(key)
        with self._db.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM session_entries WHERE feature = ? AND session_id = ? AND kind = ?",
                (key.feature.value, key.session_id, key.kind.value),
            )
            return cursor.rowcount > 0

    def add_medication(self, medication: Medication) -> list[Medication]:
        medication = self.guard.validate_medication(medication)
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO medications (
                  id, name, dosage, frequency, time_of_day_json, notes, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    uuid.uuid4().hex,
                    medication.name.strip(),
                    medication.dosage.strip(),
                    medication.frequency.strip(),
                    _json_dumps(medication.timeOfDay),
                    (medication.notes or "").strip() or None,
                    to_iso(utc_now()),
                ),
            )
        return self.medications()

    def medications(self) -> list[Medication]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT name, dosage, frequency, time_of_day_json, notes
                FROM medications
                ORDER BY rowid
                """
            ).fetchall()
        return [
            Medication(
                name=row["name"],
                dosage=row["dosage"],
                frequency=row["frequency"],
                timeOfDay=json.loads(row["time_of_day_json"]),
                notes=row["notes"],
            )
            for row in rows
        ]

    def delete_medication(self, index: int) -> list[Medication]:
        with self._db.connection() as conn:
            rows = conn.execute("SELECT id FROM medications ORDER BY rowid").fetchall()
            if index < 0 or index >= len(rows):
                raise SessionStoreError(f"No medication at position {index}.")
            conn.execute("DELETE FROM medications WHERE id = ?", (rows[index]["id"],))
        return self.medications()
