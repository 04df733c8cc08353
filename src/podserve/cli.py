"""Command-line interface for Podserve.

Runs the server and inspects the persisted feed.
"""

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from podserve.config import get_settings
from podserve.errors import PodserveError
from podserve.logging import setup_logging, setup_logging_from_settings
from podserve.storage import FeedStore


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP server."""
    import uvicorn

    from podserve.api import create_app

    settings = get_settings()
    setup_logging_from_settings(settings)

    host = args.host or settings.server.host
    port = args.port or settings.server.port

    app = create_app(settings)
    print(f"\nServing {settings.base_url} on {host}:{port}")
    print(f"RSS Feed: {settings.feed_url}")
    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Show podcast metadata and episodes from the feed file."""
    setup_logging(log_level="WARNING")
    settings = get_settings()

    store = FeedStore.load(settings.paths.rss_file, settings.base_url)
    podcast = store.snapshot()

    print(f"\nPodcast: {podcast.title}")
    print(f"Author: {podcast.author}")
    print(f"Link: {podcast.link}")
    print(f"Language: {podcast.language}")
    print(f"Feed: {settings.feed_url}")
    print(f"Episodes: {len(podcast.episodes)}\n")

    for i, ep in enumerate(podcast.episodes, 1):
        print(f"{i}. {ep.title}")
        print(f"   ID: {ep.id}")
        print(f"   Published: {ep.pub_date.isoformat()}")
        print(f"   Duration: {ep.duration or 'N/A'}")
        print(f"   Audio: {ep.audio_url}")
        print()

    return 0


def cmd_feed(args: argparse.Namespace) -> int:
    """Print or save the generated RSS feed."""
    setup_logging(log_level="WARNING")
    settings = get_settings()

    store = FeedStore.load(settings.paths.rss_file, settings.base_url)
    xml = store.serve_xml()

    if args.output:
        output_path = Path(args.output)
        output_path.write_bytes(xml)
        print(f"Saved feed to: {output_path}")
    else:
        sys.stdout.write(xml.decode("utf-8"))

    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="podserve",
        description="Podcast hosting server - episode uploads and RSS feed",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    sv_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    sv_parser.add_argument("--host", help="Host to bind (default: SERVER_HOST)")
    sv_parser.add_argument("--port", "-p", type=int, help="Port (default: SERVER_PORT)")
    sv_parser.set_defaults(func=cmd_serve)

    # info command
    info_parser = subparsers.add_parser("info", help="Show podcast and episodes")
    info_parser.set_defaults(func=cmd_info)

    # feed command
    feed_parser = subparsers.add_parser("feed", help="Print the generated RSS feed")
    feed_parser.add_argument("--output", "-o", help="Write the feed to this file")
    feed_parser.set_defaults(func=cmd_feed)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except (OSError, PodserveError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
