"""Tests for CLI commands."""

from unittest.mock import MagicMock, patch

import pytest

from podserve.cli import main
from podserve.feed import decode_feed
from podserve.storage import FeedStore


@pytest.fixture
def cli_settings(settings):
    with patch("podserve.cli.get_settings", return_value=settings):
        yield settings


class TestMain:
    """Tests for the main CLI entry point."""

    def test_no_command_shows_help(self, capsys):
        """No subcommand should print help and return 1."""
        with patch("sys.argv", ["podserve"]):
            result = main()

        assert result == 1
        assert "serve" in capsys.readouterr().out

    def test_unknown_command_exits(self):
        """Unknown subcommand should cause argparse to exit."""
        with patch("sys.argv", ["podserve", "unknown-cmd"]):
            with pytest.raises(SystemExit):
                main()


class TestInfo:
    """Tests for the info command."""

    @patch("podserve.cli.setup_logging")
    def test_default_podcast(self, _mock_logging, cli_settings, capsys):
        with patch("sys.argv", ["podserve", "info"]):
            result = main()

        assert result == 0
        out = capsys.readouterr().out
        assert "Podcast: My Podcast" in out
        assert "Episodes: 0" in out
        assert cli_settings.paths.rss_file.exists()

    @patch("podserve.cli.setup_logging")
    def test_lists_episodes(self, _mock_logging, cli_settings, sample_episode, capsys):
        store = FeedStore.load(cli_settings.paths.rss_file, cli_settings.base_url)
        store.add_episode(sample_episode)

        with patch("sys.argv", ["podserve", "info"]):
            result = main()

        assert result == 0
        out = capsys.readouterr().out
        assert "1. First Episode" in out
        assert f"ID: {sample_episode.id}" in out
        assert "Duration: 00:42:10" in out

    @patch("podserve.cli.setup_logging")
    def test_corrupt_feed(self, _mock_logging, cli_settings, capsys):
        cli_settings.paths.rss_file.parent.mkdir(parents=True)
        cli_settings.paths.rss_file.write_text("not xml")

        with patch("sys.argv", ["podserve", "info"]):
            result = main()

        assert result == 1
        assert "Error:" in capsys.readouterr().err


class TestFeed:
    """Tests for the feed command."""

    @patch("podserve.cli.setup_logging")
    def test_prints_feed(self, _mock_logging, cli_settings, capsys):
        with patch("sys.argv", ["podserve", "feed"]):
            result = main()

        assert result == 0
        assert "<title>My Podcast</title>" in capsys.readouterr().out

    @patch("podserve.cli.setup_logging")
    def test_writes_feed(self, _mock_logging, cli_settings, tmp_path, capsys):
        output = tmp_path / "out.xml"

        with patch("sys.argv", ["podserve", "feed", "-o", str(output)]):
            result = main()

        assert result == 0
        assert decode_feed(output.read_bytes()).title == "My Podcast"
        assert "Saved feed to" in capsys.readouterr().out


class TestServe:
    """Tests for the serve command."""

    @patch("podserve.cli.setup_logging_from_settings")
    def test_runs_uvicorn(self, mock_logging, cli_settings):
        with (
            patch("uvicorn.run") as mock_run,
            patch("podserve.api.create_app", return_value=MagicMock()) as mock_create_app,
            patch("sys.argv", ["podserve", "serve", "--port", "9000"]),
        ):
            result = main()

        assert result == 0
        mock_logging.assert_called_once_with(cli_settings)
        mock_create_app.assert_called_once_with(cli_settings)
        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["host"] == "0.0.0.0"
        assert mock_run.call_args.kwargs["port"] == 9000
