from __future__ import annotations

from datetime import datetime, timezone
import json
import os
from pathlib import Path
import sqlite3
from typing import Any, Protocol

from .errors import PersistenceError

TIMER_STATE_KEY = "timer_state"


class StateStore(Protocol):
    def load(self) -> dict[str, Any] | None:
        ...

    def save(self, record: dict[str, Any]) -> None:
        ...

    def get_json(self, key: str) -> Any | None:
        ...

    def set_json(self, key: str, value: Any) -> None:
        ...


class SQLiteStateStore:
    """Durable key/value store backed by a single SQLite file.

    Every value is a JSON document. ``load``/``save`` read and write the timer
    record; the block list and gate flag live under their own keys.
    """

    def __init__(self, db_path: Path, journal_mode: str | None = None) -> None:
        self.db_path = Path(db_path)
        raw_mode = (journal_mode or os.getenv("FOCUSGATE_JOURNAL_MODE") or "DELETE").strip()
        self.journal_mode = raw_mode.upper() if raw_mode else "DELETE"
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.init_schema()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(f"无法初始化状态库 {self.db_path}: {exc}") from exc

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=5.0)
        conn.row_factory = sqlite3.Row
        self._apply_journal_mode(conn)
        conn.execute("PRAGMA synchronous=FULL")
        return conn

    def _apply_journal_mode(self, conn: sqlite3.Connection) -> None:
        try:
            conn.execute(f"PRAGMA journal_mode={self.journal_mode}")
        except sqlite3.OperationalError:
            conn.execute("PRAGMA journal_mode=DELETE")

    def init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def load(self) -> dict[str, Any] | None:
        value = self.get_json(TIMER_STATE_KEY)
        if value is None:
            return None
        if not isinstance(value, dict):
            raise PersistenceError(f"{TIMER_STATE_KEY} 不是有效的 JSON 对象")
        return value

    def save(self, record: dict[str, Any]) -> None:
        self.set_json(TIMER_STATE_KEY, record)

    def get_json(self, key: str) -> Any | None:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"读取 {key} 失败: {exc}") from exc

        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"{key} 的内容已损坏: {exc}") from exc

    def set_json(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False, sort_keys=True)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO kv (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, payload, _utc_now_text()),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"写入 {key} 失败: {exc}") from exc


class MemoryStateStore:
    """In-process store; values are round-tripped through JSON like the SQLite one."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def load(self) -> dict[str, Any] | None:
        return self.get_json(TIMER_STATE_KEY)

    def save(self, record: dict[str, Any]) -> None:
        self.set_json(TIMER_STATE_KEY, record)

    def get_json(self, key: str) -> Any | None:
        raw = self._values.get(key)
        return None if raw is None else json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self._values[key] = json.dumps(value, ensure_ascii=False, sort_keys=True)


def _utc_now_text() -> str:
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


def default_db_path() -> Path:
    return Path(__file__).resolve().parent / "data" / "focusgate.sqlite"
