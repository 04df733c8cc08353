"""Feed codec: RSS generation, parsing and URL resolution."""

from podserve.feed.decoder import FeedReader, decode_feed
from podserve.feed.encoder import FeedWriter, encode_feed
from podserve.feed.resolver import resolve_url

__all__ = ["FeedReader", "FeedWriter", "decode_feed", "encode_feed", "resolve_url"]
