"""Shared fixtures: an in-memory database and a HypeStream facade on top of it."""

import datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy.pool import StaticPool

from hypestream.config import Settings
from hypestream.db import Database
from hypestream.hype import HypeStream
from hypestream.services.storage import StorageService

FEATURED_UPLOADER = "featured-uploader"


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the developer's environment."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        SPOTIFY_CLIENT_ID="client-id",
        SPOTIFY_CLIENT_SECRET="client-secret",
        FEATURED_UPLOADER_ID=FEATURED_UPLOADER,
        FEATURED_ARTIST_ID="featured-artist",
        FEED_LIMIT=20,
    )


@pytest.fixture
def database() -> Database:
    database = Database()
    database.init(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield database
    database.dispose()


@pytest.fixture
def spotify() -> MagicMock:
    return MagicMock(name="SpotifyAPI")


@pytest.fixture
def app(settings: Settings, database: Database, spotify: MagicMock) -> HypeStream:
    return HypeStream(settings, database=database, spotify=spotify)


@pytest.fixture
def make_user(app: HypeStream):
    def _make_user(user_id: str, **profile):
        return app.upsert_user({"id": user_id, **profile})

    return _make_user


@pytest.fixture
def make_track(database: Database):
    """Insert a track directly, with optional preset counters and timestamp."""

    def _make_track(
        title: str = "Track",
        uploaded_by: str | None = None,
        created_at: datetime.datetime | None = None,
        plays: int = 0,
        likes: int = 0,
        shares: int = 0,
        spotify_track_id: str | None = None,
    ) -> int:
        with database.session() as session:
            track = StorageService(session).create_track(
                title=title,
                artist="Artist",
                uploaded_by=uploaded_by,
                created_at=created_at,
                spotify_track_id=spotify_track_id,
                duration=180,
            )
            track.plays = plays
            track.likes = likes
            track.shares = shares
            session.flush()
            return track.id

    return _make_track
