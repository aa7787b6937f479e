from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

HISTORY_LIMIT = 20


class MediaType(Enum):
    MOVIE = "movie"
    TV = "tv"


@dataclass(frozen=True)
class MediaRef:
    """Identifies a piece of content. Equality is ``(id, media_type)`` only."""

    id: int
    media_type: MediaType
    title: str = field(default="", compare=False)
    poster_path: str | None = field(default=None, compare=False)
    backdrop_path: str | None = field(default=None, compare=False)
    release_date: str | None = field(default=None, compare=False)
    vote_average: float | None = field(default=None, compare=False)

    @property
    def key(self) -> tuple[int, MediaType]:
        return (self.id, self.media_type)


@dataclass(frozen=True)
class EpisodeData:
    season: int | None = None
    episode: int | None = None
    timestamp: float | None = None


@dataclass(frozen=True)
class HistoryEntry:
    media: MediaRef
    watched_at: int
    current_season: int | None = None
    current_episode: int | None = None
    current_timestamp: float | None = None

    @property
    def key(self) -> tuple[int, MediaType]:
        return self.media.key


@dataclass(frozen=True)
class ProgressUpdate:
    position: float
    duration: float | None = None
    season: int | None = None
    episode: int | None = None


@dataclass(frozen=True)
class ProgressEntry:
    position: float
    duration: float | None
    updated_at: int
    season: int | None = None
    episode: int | None = None


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_media_type(value: Any) -> MediaType | None:
    if isinstance(value, MediaType):
        return value
    if isinstance(value, str):
        try:
            return MediaType(value.strip().lower())
        except ValueError:
            return None
    return None


def progress_key(media_id: int, media_type: MediaType) -> str:
    return f"{media_id}-{media_type.value}"


def episode_progress_key(
    media_id: int, media_type: MediaType, season: int, episode: int
) -> str:
    return f"{progress_key(media_id, media_type)}-s{season}e{episode}"


def media_to_dict(ref: MediaRef) -> dict[str, Any]:
    return {
        "id": ref.id,
        "mediaType": ref.media_type.value,
        "title": ref.title,
        "posterPath": ref.poster_path,
        "backdropPath": ref.backdrop_path,
        "releaseDate": ref.release_date,
        "voteAverage": ref.vote_average,
    }


def media_from_dict(data: Any) -> MediaRef | None:
    """Parse a stored media record.

    Older records were written with the provider's snake_case names
    (``media_type``, ``poster_path``) and ``name`` instead of ``title`` for
    shows, so both spellings are accepted.
    """
    if not isinstance(data, dict):
        return None
    media_id = _as_int(data.get("id"))
    media_type = parse_media_type(_pick(data, "mediaType", "media_type"))
    if media_id is None or media_type is None:
        return None
    return MediaRef(
        id=media_id,
        media_type=media_type,
        title=_as_str(data.get("title")) or _as_str(data.get("name")) or "",
        poster_path=_as_str(_pick(data, "posterPath", "poster_path")),
        backdrop_path=_as_str(_pick(data, "backdropPath", "backdrop_path")),
        release_date=_as_str(
            _pick(data, "releaseDate", "release_date") or data.get("first_air_date")
        ),
        vote_average=_as_float(_pick(data, "voteAverage", "vote_average")),
    )


def history_entry_to_dict(entry: HistoryEntry) -> dict[str, Any]:
    data = media_to_dict(entry.media)
    data["watchedAt"] = entry.watched_at
    _set_if(data, "currentSeason", entry.current_season)
    _set_if(data, "currentEpisode", entry.current_episode)
    _set_if(data, "currentTimestamp", entry.current_timestamp)
    return data


def history_entry_from_dict(data: Any) -> HistoryEntry | None:
    media = media_from_dict(data)
    if media is None:
        return None
    watched_at = _as_int(_pick(data, "watchedAt", "watched_at"))
    return HistoryEntry(
        media=media,
        watched_at=watched_at if watched_at is not None else 0,
        current_season=_as_int(_pick(data, "currentSeason", "current_season")),
        current_episode=_as_int(_pick(data, "currentEpisode", "current_episode")),
        current_timestamp=_as_float(_pick(data, "currentTimestamp", "current_timestamp")),
    )


def progress_to_dict(entry: ProgressEntry) -> dict[str, Any]:
    data: dict[str, Any] = {"position": entry.position, "updatedAt": entry.updated_at}
    _set_if(data, "duration", entry.duration)
    _set_if(data, "season", entry.season)
    _set_if(data, "episode", entry.episode)
    return data


def progress_from_dict(data: Any) -> ProgressEntry | None:
    if not isinstance(data, dict):
        return None
    position = _as_float(data.get("position"))
    if position is None:
        return None
    updated_at = _as_int(_pick(data, "updatedAt", "updated_at"))
    return ProgressEntry(
        position=position,
        duration=_as_float(data.get("duration")),
        updated_at=updated_at if updated_at is not None else 0,
        season=_as_int(data.get("season")),
        episode=_as_int(data.get("episode")),
    )


def _pick(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _set_if(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


def _as_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@dataclass(frozen=True)
class PlaybackParams:
    media: MediaRef
    season: int | None = None
    episode: int | None = None
    auto_play: bool = False
    resume_progress: bool = False
