"""Feed persistence and media file placement."""

from podserve.storage.feed_store import FeedStore
from podserve.storage.locks import ReadWriteLock

__all__ = ["FeedStore", "ReadWriteLock"]
