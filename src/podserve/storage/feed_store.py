"""The feed store: the single authoritative copy of the podcast.

Holds the podcast in memory behind a reader/writer lock and writes the
rendered feed to disk after every mutation. The file on disk is the
same RSS document served to subscribers.
"""

import os
import tempfile
from collections.abc import Callable
from pathlib import Path

import structlog

from podserve.errors import (
    DuplicateEpisodeError,
    EpisodeNotFoundError,
    FeedValidationError,
    ResolutionError,
)
from podserve.feed import decode_feed, encode_feed, resolve_url
from podserve.models import (
    Episode,
    Podcast,
    default_podcast,
    ensure_utc,
    validate_episode,
    validate_metadata,
)
from podserve.storage.locks import ReadWriteLock

logger = structlog.get_logger(__name__)

FEED_FILE_MODE = 0o644


class FeedStore:
    """Thread-safe owner of the podcast with write-through persistence.

    Readers get deep copies; mutations hold the write lock through the
    disk write and rename, so a returned mutation is already durable.
    If persisting fails, the in-memory change is rolled back and the
    error re-raised.
    """

    def __init__(self, path: str | Path, base_url: str, podcast: Podcast) -> None:
        """Wrap an already-loaded podcast. Use :meth:`load` instead.

        Args:
            path: Location of the persisted feed.
            base_url: Base URL for resolving relative references.
            podcast: Initial podcast state.
        """
        self._path = Path(path)
        self._base_url = base_url
        self._podcast = podcast
        self._lock = ReadWriteLock()
        self.logger = logger.bind(component="feed_store", path=str(self._path))

    @classmethod
    def load(cls, path: str | Path, base_url: str) -> "FeedStore":
        """Load the feed at ``path``, creating a default podcast if absent.

        Args:
            path: Location of the persisted feed.
            base_url: Base URL retained for serving.

        Returns:
            FeedStore: Store holding the decoded or default podcast.

        Raises:
            OSError: If the file cannot be read or the default cannot be written.
            FeedParseError: If the existing file is not a valid feed.
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            store = cls(path, base_url, default_podcast())
            path.parent.mkdir(parents=True, exist_ok=True)
            store._persist()
            store.logger.info("Created default podcast feed")
            return store

        store = cls(path, base_url, decode_feed(data))
        store.logger.info(
            "Loaded podcast feed",
            podcast=store._podcast.title,
            episode_count=len(store._podcast.episodes),
        )
        return store

    @property
    def path(self) -> Path:
        return self._path

    @property
    def base_url(self) -> str:
        return self._base_url

    def snapshot(self) -> Podcast:
        """Return an independent deep copy of the current podcast."""
        with self._lock.read_locked():
            return self._podcast.model_copy(deep=True)

    def serve_xml(self) -> bytes:
        """Render the current podcast as feed markup.

        Raises:
            FeedEncodeError: If the channel cannot be rendered.
        """
        with self._lock.read_locked():
            return encode_feed(self._podcast, self._base_url)

    def add_episode(self, episode: Episode) -> None:
        """Append an episode and persist.

        Raises:
            FeedValidationError: If the episode cannot be written to the feed
                or its id is already present.
            OSError: If the feed cannot be written.
        """
        validate_episode(episode)
        if episode.audio_url:
            try:
                resolve_url(self._base_url, episode.audio_url)
            except ResolutionError as e:
                raise FeedValidationError(f"Invalid audio URL: {e}") from e

        def apply(podcast: Podcast) -> None:
            if podcast.find_episode(episode.id) is not None:
                raise DuplicateEpisodeError(f"Episode already exists: {episode.id}")

            podcast.episodes.append(episode.model_copy(deep=True))
            # Only ever moves forward
            if ensure_utc(episode.pub_date) > ensure_utc(podcast.pub_date):
                podcast.pub_date = ensure_utc(episode.pub_date)

        self._mutate(apply)
        self.logger.info("Added episode", episode_id=episode.id, title=episode.title)

    def delete_episode(self, episode_id: str) -> None:
        """Remove the episode with ``episode_id`` and persist.

        Raises:
            EpisodeNotFoundError: If no episode has that id; nothing changes.
            OSError: If the feed cannot be written.
        """

        def apply(podcast: Podcast) -> None:
            episode = podcast.find_episode(episode_id)
            if episode is None:
                raise EpisodeNotFoundError(f"Episode not found: {episode_id}")
            podcast.episodes.remove(episode)

        self._mutate(apply)
        self.logger.info("Deleted episode", episode_id=episode_id)

    def update_podcast(self, metadata: Podcast) -> None:
        """Replace channel metadata, keeping the current episodes.

        Args:
            metadata: New podcast values; its ``episodes`` are ignored.

        Raises:
            FeedValidationError: If the metadata is invalid.
            OSError: If the feed cannot be written.
        """
        validate_metadata(metadata)
        fields = metadata.model_dump(exclude={"episodes"})

        def apply(podcast: Podcast) -> None:
            for name, value in fields.items():
                setattr(podcast, name, value)

        self._mutate(apply)
        self.logger.info("Updated podcast settings", title=metadata.title)

    def _mutate(self, apply: Callable[[Podcast], None]) -> None:
        """Apply a change under the write lock and persist it.

        ``apply`` works on a copy; the copy replaces the live podcast and
        the old state is restored if persisting fails.
        """
        with self._lock.write_locked():
            previous = self._podcast
            updated = previous.model_copy(deep=True)
            apply(updated)

            self._podcast = updated
            try:
                self._persist()
            except Exception:
                self._podcast = previous
                self.logger.error("Failed to persist feed, rolled back change")
                raise

    def _persist(self) -> None:
        """Write the feed atomically: temp file in the same directory, then rename."""
        data = encode_feed(self._podcast, self._base_url)

        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                # mkstemp creates the file 0600
                os.fchmod(f.fileno(), FEED_FILE_MODE)
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        self.logger.debug("Persisted feed", size_bytes=len(data))
