from __future__ import annotations

import json
import logging
import threading
import uuid
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from opsroom.config import get_settings
from opsroom.errors import NotFound

logger = logging.getLogger(__name__)

TABLE_PREFIXES = {
    "rooms": "room",
    "meetings": "mtg",
    "transcripts": "turn",
    "speaker_updates": "upd",
    "action_items": "act",
    "summaries": "sum",
}


class Repository:
    """JSON-file backed document store for rooms and everything a meeting owns.

    Every insert, patch and delete is a single read-modify-write under one
    lock, so each record-level operation is atomic within the process. There
    are no transactions spanning several records or tables.
    """

    def __init__(self, storage_path: Path | None = None):
        self.storage_path = Path(storage_path or get_settings().store_path)
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _read_raw(self) -> dict[str, list[dict]]:
        if not self.storage_path.exists():
            return {}
        try:
            payload = json.loads(self.storage_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Store file %s is not valid JSON; starting empty", self.storage_path)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _write_raw(self, payload: dict[str, list[dict]]) -> None:
        self.storage_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    @staticmethod
    def _check_table(table: str) -> None:
        if table not in TABLE_PREFIXES:
            raise ValueError(f"unknown table {table!r}")

    @staticmethod
    def _new_id(table: str) -> str:
        return f"{TABLE_PREFIXES[table]}-{uuid.uuid4().hex[:12]}"

    @staticmethod
    def _matches(item: dict, filters: dict[str, Any]) -> bool:
        return all(item.get(key) == value for key, value in filters.items())

    def insert(self, table: str, record: dict) -> str:
        return self.insert_many(table, [record])[0]

    def insert_many(self, table: str, records: Iterable[dict]) -> list[str]:
        self._check_table(table)
        with self._lock:
            data = self._read_raw()
            rows = data.setdefault(table, [])
            ids: list[str] = []
            for record in records:
                record_id = self._new_id(table)
                rows.append({**record, "id": record_id})
                ids.append(record_id)
            self._write_raw(data)
        return ids

    def get(self, table: str, record_id: str) -> dict | None:
        self._check_table(table)
        with self._lock:
            for item in self._read_raw().get(table, []):
                if item.get("id") == record_id:
                    return dict(item)
        return None

    def patch(self, table: str, record_id: str, **updates) -> dict:
        self._check_table(table)
        updates.pop("id", None)
        with self._lock:
            data = self._read_raw()
            for item in data.get(table, []):
                if item.get("id") == record_id:
                    item.update(updates)
                    self._write_raw(data)
                    return dict(item)
        raise NotFound(f"{table} record {record_id} not found")

    def delete(self, table: str, record_id: str) -> None:
        self._check_table(table)
        with self._lock:
            data = self._read_raw()
            rows = data.get(table, [])
            remaining = [item for item in rows if item.get("id") != record_id]
            if len(remaining) != len(rows):
                data[table] = remaining
                self._write_raw(data)

    def query(self, table: str, **filters) -> list[dict]:
        self._check_table(table)
        with self._lock:
            rows = self._read_raw().get(table, [])
        return [dict(item) for item in rows if self._matches(item, filters)]

    def count(self, table: str, **filters) -> int:
        return len(self.query(table, **filters))


@lru_cache
def get_repository() -> Repository:
    return Repository()
