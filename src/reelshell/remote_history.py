"""Remote History Service adapters.

Records cross this boundary in the service's snake_case wire shape; the rest
of the package only ever sees ``HistoryEntry``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

import httpx

from .media import (
    HISTORY_LIMIT,
    HistoryEntry,
    MediaRef,
    MediaType,
    parse_media_type,
)

logger = logging.getLogger(__name__)


class RemoteCallError(RuntimeError):
    pass


class RemoteHistoryService(Protocol):
    async def get_watch_history(self) -> list[HistoryEntry]: ...

    async def add_watch_history_item(self, entry: HistoryEntry) -> None: ...

    async def remove_watch_history_item(self, media_id: int, media_type: MediaType) -> None: ...

    async def clear_watch_history(self) -> None: ...

    async def aclose(self) -> None: ...


def record_from_entry(entry: HistoryEntry) -> dict[str, Any]:
    media = entry.media
    return {
        "id": media.id,
        "media_type": media.media_type.value,
        "title": media.title,
        "poster_path": media.poster_path,
        "backdrop_path": media.backdrop_path,
        "release_date": media.release_date,
        "vote_average": media.vote_average,
        "watched_at": entry.watched_at,
        "current_season": entry.current_season,
        "current_episode": entry.current_episode,
        "current_timestamp": entry.current_timestamp,
    }


def entry_from_record(record: Any) -> HistoryEntry | None:
    if not isinstance(record, dict):
        return None
    media_id = record.get("id")
    media_type = parse_media_type(record.get("media_type"))
    if isinstance(media_id, bool) or not isinstance(media_id, int) or media_type is None:
        return None
    watched_at = record.get("watched_at")
    return HistoryEntry(
        media=MediaRef(
            id=media_id,
            media_type=media_type,
            title=_opt_str(record.get("title")) or "",
            poster_path=_opt_str(record.get("poster_path")),
            backdrop_path=_opt_str(record.get("backdrop_path")),
            release_date=_opt_str(record.get("release_date")),
            vote_average=_opt_number(record.get("vote_average")),
        ),
        watched_at=int(watched_at) if isinstance(watched_at, (int, float)) else 0,
        current_season=_opt_int(record.get("current_season")),
        current_episode=_opt_int(record.get("current_episode")),
        current_timestamp=_opt_number(record.get("current_timestamp")),
    )


def entries_from_records(records: Any) -> list[HistoryEntry]:
    if not isinstance(records, list):
        raise RemoteCallError("Watch history response must be a list")
    entries = [entry_from_record(record) for record in records]
    dropped = sum(1 for entry in entries if entry is None)
    if dropped:
        logger.warning("Dropped %d malformed watch history records", dropped)
    return [entry for entry in entries if entry is not None]


class HttpHistoryService:
    """Calls a history service exposing ``POST {base_url}/invoke/{command}``.

    The service owns its client, including one passed in: ``aclose()`` closes it.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def get_watch_history(self) -> list[HistoryEntry]:
        return entries_from_records(await self._invoke("get_watch_history", {}))

    async def add_watch_history_item(self, entry: HistoryEntry) -> None:
        await self._invoke("add_watch_history_item", {"item": record_from_entry(entry)})

    async def remove_watch_history_item(self, media_id: int, media_type: MediaType) -> None:
        await self._invoke(
            "remove_watch_history_item",
            {"media_id": media_id, "media_type": media_type.value},
        )

    async def clear_watch_history(self) -> None:
        await self._invoke("clear_watch_history", {})

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _invoke(self, command: str, args: dict[str, Any]) -> Any:
        url = f"{self.base_url}/invoke/{command}"
        try:
            response = await self._client.post(url, json=args)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RemoteCallError(f"{command} failed: {exc}") from exc
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise RemoteCallError(f"{command} returned invalid JSON") from exc


class JsonFileHistoryService:
    """Durable history kept in a ``{"items": [...]}`` JSON file.

    Same contract as the desktop backend: one entry per title, newest first,
    at most ``HISTORY_LIMIT`` entries. File access runs in a worker thread
    under the lock so the event loop never blocks on disk.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    async def get_watch_history(self) -> list[HistoryEntry]:
        async with self._lock:
            records = await asyncio.to_thread(self._read_records)
        return entries_from_records(records)

    async def add_watch_history_item(self, entry: HistoryEntry) -> None:
        async with self._lock:
            await asyncio.to_thread(self._add_record, entry)

    async def remove_watch_history_item(self, media_id: int, media_type: MediaType) -> None:
        async with self._lock:
            await asyncio.to_thread(self._remove_record, media_id, media_type)

    async def clear_watch_history(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write_records, [])

    async def aclose(self) -> None:
        return None

    def _add_record(self, entry: HistoryEntry) -> None:
        records = [
            record
            for record in self._read_records()
            if not _same_media(record, entry.media.id, entry.media.media_type)
        ]
        records.insert(0, record_from_entry(entry))
        self._write_records(records[:HISTORY_LIMIT])

    def _remove_record(self, media_id: int, media_type: MediaType) -> None:
        records = [
            record
            for record in self._read_records()
            if not _same_media(record, media_id, media_type)
        ]
        self._write_records(records)

    def _read_records(self) -> list[Any]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise RemoteCallError(f"Failed to read {self.path} ({exc})") from exc
        except json.JSONDecodeError:
            logger.warning("History file %s is not valid JSON, starting empty", self.path)
            return []
        items = data.get("items") if isinstance(data, dict) else None
        return list(items) if isinstance(items, list) else []

    def _write_records(self, records: list[Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps({"items": records}, ensure_ascii=True, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise RemoteCallError(f"Failed to write {self.path} ({exc})") from exc


def _same_media(record: Any, media_id: int, media_type: MediaType) -> bool:
    return (
        isinstance(record, dict)
        and record.get("id") == media_id
        and record.get("media_type") == media_type.value
    )


def _opt_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _opt_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _opt_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
