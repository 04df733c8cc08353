"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime

import pytest

from podserve.config import PathSettings, Settings
from podserve.models import Episode, Podcast
from podserve.storage import FeedStore

BASE_URL = "http://podcast.example.com:8080"


def make_episode(
    episode_id: str = "ep-20240115-first-episode",
    title: str = "First Episode",
    pub_date: datetime | None = None,
    audio_url: str = "/audio/first-episode-20240115-103000.mp3",
    **kwargs,
) -> Episode:
    """Build an episode with sensible defaults."""
    return Episode(
        id=episode_id,
        title=title,
        description=kwargs.pop("description", f"Show notes for {title}."),
        pub_date=pub_date or datetime(2024, 1, 15, 10, 30, tzinfo=UTC),
        audio_url=audio_url,
        audio_length=kwargs.pop("audio_length", 1234567),
        **kwargs,
    )


@pytest.fixture
def sample_episode() -> Episode:
    """A single fully-populated episode."""
    return make_episode(
        duration="00:42:10",
        explicit="no",
        episode_number=1,
        season_number=2,
        episode_type="full",
    )


@pytest.fixture
def sample_podcast() -> Podcast:
    """Podcast metadata without episodes."""
    return Podcast(
        title="Test Podcast",
        link="https://podcast.example.com",
        description="A podcast used in tests.",
        language="en-us",
        pub_date=datetime(2024, 1, 1, 9, 0, tzinfo=UTC),
        author="Test Author",
        subtitle="Testing, weekly",
        summary="A longer summary of the test podcast.",
        image_url="/static/artwork/cover.jpg",
        explicit="no",
        category="Technology",
    )


@pytest.fixture
def feed_path(tmp_path):
    return tmp_path / "data" / "podcast.xml"


@pytest.fixture
def store(feed_path) -> FeedStore:
    """A store backed by a fresh feed file under tmp_path."""
    return FeedStore.load(feed_path, BASE_URL)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with every path under tmp_path."""
    data_dir = tmp_path / "data"
    return Settings(
        base_url=BASE_URL,
        paths=PathSettings(
            data_dir=data_dir,
            audio_dir=data_dir / "audio",
            artwork_dir=data_dir / "artwork",
            rss_file=data_dir / "podcast.xml",
        ),
    )


@pytest.fixture
def episode_factory():
    """Factory for episodes; keyword arguments override the defaults."""
    return make_episode
