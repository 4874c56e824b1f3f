from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from fastad.config import settings
from fastad.errors import PersistenceFailure

logger = logging.getLogger(__name__)

CONTENT_ITEMS = "content_items"
SUBSCRIPTIONS = "subscriptions"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sha256_bytes(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _safe_collection(name: str) -> str:
    # Collections map to file names; refuse anything that could escape records_dir.
    cleaned = os.path.basename(name).replace("..", "_")
    if not cleaned or cleaned != name:
        raise PersistenceFailure(f"invalid collection name {name!r}")
    return cleaned


def _matches(record: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(record.get(k) == v for k, v in filters.items())


class RecordStore(Protocol):
    async def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, collection: str, filters: dict[str, Any], partial: dict[str, Any]) -> int: ...

    async def query(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]: ...


class JsonRecordStore:
    """
    Local record store: one JSON array per collection under `<data_dir>/records`.

    Good enough for a single-process dev server. Writes are serialized with a
    process-wide lock; there is no cross-process locking.
    """

    def __init__(self, root_dir: Path | None = None) -> None:
        self.root_dir = Path(root_dir or settings.data_dir).resolve()
        self.records_dir = self.root_dir / "records"
        self.records_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    async def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        return await asyncio.to_thread(self._insert, collection, record)

    async def update(self, collection: str, filters: dict[str, Any], partial: dict[str, Any]) -> int:
        return await asyncio.to_thread(self._update, collection, filters, partial)

    async def query(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._query, collection, filters or {})

    def _insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        row = dict(record)
        row.setdefault("id", uuid.uuid4().hex)
        with self._lock:
            rows = self._read(collection)
            rows.append(row)
            self._write(collection, rows)
        return row

    def _update(self, collection: str, filters: dict[str, Any], partial: dict[str, Any]) -> int:
        changed = 0
        with self._lock:
            rows = self._read(collection)
            for row in rows:
                if _matches(row, filters):
                    row.update(partial)
                    changed += 1
            if changed:
                self._write(collection, rows)
        return changed

    def _query(self, collection: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        with self._lock:
            rows = self._read(collection)
        return [dict(r) for r in rows if _matches(r, filters)]

    def _path(self, collection: str) -> Path:
        return self.records_dir / f"{_safe_collection(collection)}.json"

    def _read(self, collection: str) -> list[dict[str, Any]]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text("utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"failed to read {collection}: {exc}") from exc
        if not isinstance(data, list):
            raise PersistenceFailure(f"{collection} payload is invalid")
        return data

    def _write(self, collection: str, rows: list[dict[str, Any]]) -> None:
        path = self._path(collection)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(json.dumps(rows, indent=2), encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise PersistenceFailure(f"failed to write {collection}: {exc}") from exc


class SupabaseRecordStore:
    """Record store backed by Supabase tables (collection name == table name)."""

    def __init__(self, url: str, key: str) -> None:
        from supabase import create_client  # type: ignore

        self.client = create_client(url, key)

    async def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        def _run() -> dict[str, Any]:
            result = self.client.table(collection).insert(record).execute()
            rows = result.data or []
            return rows[0] if rows else dict(record)

        return await self._call(collection, _run)

    async def update(self, collection: str, filters: dict[str, Any], partial: dict[str, Any]) -> int:
        def _run() -> int:
            q = self.client.table(collection).update(partial)
            for k, v in filters.items():
                q = q.eq(k, v)
            return len(q.execute().data or [])

        return await self._call(collection, _run)

    async def query(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        def _run() -> list[dict[str, Any]]:
            q = self.client.table(collection).select("*")
            for k, v in (filters or {}).items():
                q = q.eq(k, v)
            return list(q.execute().data or [])

        return await self._call(collection, _run)

    async def _call(self, collection: str, fn: Any) -> Any:
        try:
            return await asyncio.to_thread(fn)
        except Exception as exc:
            raise PersistenceFailure(f"supabase {collection}: {exc}") from exc


class MediaStore:
    """Keeps generated bytes for providers that do not hand back a hosted URL."""

    url_prefix = "/media"

    def __init__(self, root_dir: Path | None = None) -> None:
        self.root_dir = Path(root_dir or settings.data_dir).resolve()
        self.media_dir = self.root_dir / "media"
        self.media_dir.mkdir(parents=True, exist_ok=True)

    def save(self, content: bytes, suffix: str = ".png") -> str:
        # Content-addressed, so regenerating identical bytes reuses the file.
        name = f"{_sha256_bytes(content)[:24]}{suffix}"
        path = self.media_dir / name
        if not path.exists():
            path.write_bytes(content)
        return f"{self.url_prefix}/{name}"

    def resolve(self, name: str) -> Path | None:
        safe = os.path.basename(name)
        path = self.media_dir / safe
        if safe != name or not path.is_file():
            return None
        return path


def build_record_store() -> RecordStore:
    if settings.record_store == "supabase":
        if not (settings.supabase_url and settings.supabase_key):
            raise ValueError("record_store=supabase requires SUPABASE_URL and SUPABASE_KEY")
        return SupabaseRecordStore(settings.supabase_url, settings.supabase_key)
    if settings.record_store != "json":
        raise ValueError(f"unknown record_store {settings.record_store!r}")
    logger.info("using local JSON record store under %s", settings.data_dir)
    return JsonRecordStore()
