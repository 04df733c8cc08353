"""Tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from podserve.config import Settings


class TestSettings:
    """Tests for the Settings model."""

    def test_trailing_slash_removed(self):
        settings = Settings(base_url="https://podcast.example.com/")

        assert settings.base_url == "https://podcast.example.com"
        assert settings.feed_url == "https://podcast.example.com/feed.xml"

    def test_port_kept(self):
        settings = Settings(base_url="http://localhost:8080")
        assert settings.feed_url == "http://localhost:8080/feed.xml"

    @pytest.mark.parametrize(
        "base_url",
        ["", "localhost:8080", "ftp://example.com", "http://", "example.com"],
    )
    def test_invalid_base_url(self, base_url):
        with pytest.raises(ValidationError):
            Settings(base_url=base_url)

    def test_base_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("BASE_URL", "https://env.example.com")
        assert Settings().base_url == "https://env.example.com"

    def test_section_defaults(self, monkeypatch):
        for name in ("SERVER_PORT", "UPLOAD_MAX_FILE_SIZE_MB", "PATHS_RSS_FILE"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(base_url="http://localhost:8080")

        assert settings.server.port == 8080
        assert settings.upload.max_file_size_mb == 500
        assert settings.upload.max_artwork_size_mb == 5
        assert settings.upload.allowed_extensions == [".mp3"]
        assert settings.paths.rss_file == Path("./data/podcast.xml")

    def test_section_from_environment(self, monkeypatch):
        monkeypatch.setenv("SERVER_PORT", "9090")
        monkeypatch.setenv("PATHS_AUDIO_DIR", "/srv/audio")

        settings = Settings(base_url="http://localhost:8080")

        assert settings.server.port == 9090
        assert settings.paths.audio_dir == Path("/srv/audio")
