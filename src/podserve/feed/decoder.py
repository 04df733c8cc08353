"""RSS feed parsing back into the podcast model.

Reads the persisted feed on startup. Parsing is strict about the XML
itself but tolerant about content: feeds written by other generators
decode as far as their fields allow, and a bad date never fails the
whole document.
"""

from datetime import datetime
from email.utils import parsedate_to_datetime

import structlog
from lxml import etree

from podserve.errors import FeedParseError
from podserve.models import (
    Episode,
    Podcast,
    ensure_utc,
    generate_episode_id,
    normalize_episode_type,
    normalize_explicit,
    utcnow,
)

logger = structlog.get_logger(__name__)

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"


def _itunes(tag: str) -> str:
    return f"{{{ITUNES_NS}}}{tag}"


class FeedReader:
    """Parses RSS 2.0 + iTunes feeds into Podcast models."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="feed_reader")
        self._parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)

    def parse(self, data: bytes) -> Podcast:
        """Parse feed markup.

        Args:
            data: Raw feed bytes.

        Returns:
            Podcast: Decoded podcast with episodes in document order.

        Raises:
            FeedParseError: If the bytes are not well-formed XML, have no
                ``<rss><channel>`` structure or the channel has no title.
        """
        try:
            root = etree.fromstring(data, parser=self._parser)
        except etree.XMLSyntaxError as e:
            raise FeedParseError(f"Failed to parse RSS XML: {e}") from e

        if etree.QName(root).localname != "rss":
            raise FeedParseError(f"Expected <rss> root element, got <{root.tag}>")

        channel = root.find("channel")
        if channel is None:
            raise FeedParseError("Feed has no <channel> element")

        if not self._text(channel, "title"):
            raise FeedParseError("Feed channel has no <title>")

        podcast = Podcast(
            title=self._text(channel, "title"),
            link=self._text(channel, "link"),
            description=self._text(channel, "description"),
            language=self._text(channel, "language"),
            pub_date=self._parse_date(self._text(channel, "pubDate"), "channel"),
            author=self._text(channel, _itunes("author")),
            subtitle=self._text(channel, _itunes("subtitle")),
            summary=self._text(channel, _itunes("summary")),
            image_url=self._extract_image_url(channel),
            explicit=normalize_explicit(self._text(channel, _itunes("explicit"))),
            category=self._extract_category(channel),
            episodes=[],
        )

        for item in channel.iterfind("item"):
            podcast.episodes.append(self._parse_episode(item))

        self.logger.debug("Parsed feed", podcast=podcast.title, episode_count=len(podcast.episodes))
        return podcast

    def _parse_episode(self, item: etree._Element) -> Episode:
        """Parse a single ``<item>``."""
        title = self._text(item, "title")
        pub_date = self._parse_date(self._text(item, "pubDate"), "item")
        guid = self._text(item, "guid")

        audio_url = ""
        audio_length = 0
        audio_type = "audio/mpeg"
        enclosure = item.find("enclosure")
        if enclosure is not None:
            audio_url = (enclosure.get("url") or "").strip()
            audio_length = self._safe_int(enclosure.get("length"))
            audio_type = (enclosure.get("type") or "").strip() or audio_type

        return Episode(
            # Identity survives a round trip through the guid
            id=guid or generate_episode_id(title, pub_date),
            title=title,
            description=self._text(item, "description"),
            pub_date=pub_date,
            guid=guid,
            audio_url=audio_url,
            audio_length=audio_length,
            audio_type=audio_type,
            duration=self._text(item, _itunes("duration")),
            explicit=normalize_explicit(self._text(item, _itunes("explicit"))),
            episode_number=self._safe_int(self._text(item, _itunes("episode"))),
            season_number=self._safe_int(self._text(item, _itunes("season"))),
            episode_type=normalize_episode_type(self._text(item, _itunes("episodeType"))),
        )

    def _parse_date(self, value: str, context: str) -> datetime:
        """Parse an RFC 822 feed date, falling back to the current time."""
        if not value:
            return utcnow()
        try:
            return ensure_utc(parsedate_to_datetime(value))
        except (TypeError, ValueError):
            self.logger.warning("Unparseable date, using current time", value=value, context=context)
            return utcnow()

    def _extract_image_url(self, channel: etree._Element) -> str:
        """Artwork from itunes:image, falling back to the RSS image block."""
        itunes_image = channel.find(_itunes("image"))
        if itunes_image is not None and itunes_image.get("href"):
            return itunes_image.get("href").strip()
        return self._text(channel, "image/url")

    def _extract_category(self, channel: etree._Element) -> str:
        itunes_category = channel.find(_itunes("category"))
        if itunes_category is not None and itunes_category.get("text"):
            return itunes_category.get("text").strip()
        return self._text(channel, "category")

    @staticmethod
    def _text(element: etree._Element, path: str) -> str:
        return (element.findtext(path) or "").strip()

    @staticmethod
    def _safe_int(value: str | None) -> int:
        """Convert to int, treating missing or malformed values as 0."""
        if not value:
            return 0
        try:
            return int(value.strip())
        except ValueError:
            return 0


def decode_feed(data: bytes) -> Podcast:
    """Parse feed markup into a Podcast."""
    return FeedReader().parse(data)
