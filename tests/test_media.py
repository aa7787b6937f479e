from __future__ import annotations

from reelshell.media import (
    HistoryEntry,
    MediaRef,
    MediaType,
    episode_progress_key,
    history_entry_from_dict,
    history_entry_to_dict,
    media_from_dict,
    progress_key,
)


def test_media_equality_uses_id_and_type_only() -> None:
    a = MediaRef(1, MediaType.MOVIE, title="Heat")
    b = MediaRef(1, MediaType.MOVIE, title="Heat (Remastered)", vote_average=8.3)
    c = MediaRef(1, MediaType.TV, title="Heat")
    assert a == b
    assert hash(a) == hash(b)
    assert a != c


def test_media_from_dict_accepts_provider_spelling() -> None:
    media = media_from_dict(
        {
            "id": 1399,
            "media_type": "tv",
            "name": "Game of Thrones",
            "poster_path": "/poster.jpg",
            "first_air_date": "2011-04-17",
            "vote_average": 8.4,
        }
    )
    assert media is not None
    assert media.media_type is MediaType.TV
    assert media.title == "Game of Thrones"
    assert media.poster_path == "/poster.jpg"
    assert media.release_date == "2011-04-17"


def test_media_from_dict_rejects_missing_identity() -> None:
    assert media_from_dict({"title": "No id"}) is None
    assert media_from_dict({"id": 3, "mediaType": "podcast"}) is None
    assert media_from_dict("not a record") is None


def test_history_entry_dict_uses_camel_case() -> None:
    entry = HistoryEntry(
        media=MediaRef(7, MediaType.TV, title="Show"),
        watched_at=1000,
        current_season=2,
        current_episode=5,
    )
    data = history_entry_to_dict(entry)
    assert data["mediaType"] == "tv"
    assert data["watchedAt"] == 1000
    assert data["currentSeason"] == 2
    assert "currentTimestamp" not in data
    assert history_entry_from_dict(data) == entry


def test_progress_keys() -> None:
    assert progress_key(5, MediaType.MOVIE) == "5-movie"
    assert episode_progress_key(5, MediaType.TV, 1, 2) == "5-tv-s1e2"
