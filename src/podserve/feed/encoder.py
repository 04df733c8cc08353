"""RSS 2.0 + iTunes feed generation.

Renders a Podcast into feed markup with feedgen. Stored URI-references
are resolved against the public base URL here, at render time, and never
written back into the model.
"""

from collections.abc import Callable

import structlog
from feedgen.feed import FeedGenerator

from podserve import __version__
from podserve.errors import FeedEncodeError, FeedValidationError
from podserve.feed.resolver import resolve_url
from podserve.models import Episode, Podcast, ensure_utc, utcnow, validate_episode

logger = structlog.get_logger(__name__)

SkipCallback = Callable[[Episode, Exception], None]


class FeedWriter:
    """Renders podcasts as RSS feeds with absolute URLs."""

    def __init__(self, base_url: str, on_skip: SkipCallback | None = None) -> None:
        """Initialize the feed writer.

        Args:
            base_url: Absolute URL relative references are resolved against.
            on_skip: Called with the episode and the error whenever an
                episode is left out of the feed.
        """
        self.base_url = base_url
        self.on_skip = on_skip
        self.logger = logger.bind(component="feed_writer")

    def render(self, podcast: Podcast) -> bytes:
        """Generate feed markup for a podcast.

        Args:
            podcast: Podcast snapshot to render.

        Returns:
            UTF-8 encoded RSS document.

        Raises:
            FeedEncodeError: If the channel itself cannot be rendered.
        """
        fg = FeedGenerator()
        fg.load_extension("podcast")

        try:
            self._add_channel(fg, podcast)
        except ValueError as e:
            raise FeedEncodeError(f"Failed to build channel: {e}") from e

        # Newest first; the podcast's own list keeps upload order
        episodes = sorted(podcast.episodes, key=lambda ep: ensure_utc(ep.pub_date), reverse=True)

        rendered = 0
        for episode in episodes:
            if self._add_episode(fg, episode):
                rendered += 1

        try:
            xml = fg.rss_str(pretty=True)
        except ValueError as e:
            raise FeedEncodeError(f"Failed to generate RSS XML: {e}") from e

        self.logger.debug(
            "Rendered feed",
            podcast=podcast.title,
            episodes=rendered,
            skipped=len(episodes) - rendered,
        )
        return xml

    def _add_channel(self, fg: FeedGenerator, podcast: Podcast) -> None:
        """Set channel-level fields. Required fields raise ValueError."""
        fg.title(podcast.title)
        # Feeds from other generators may leave these empty; RSS requires them
        fg.link(href=podcast.link or self.base_url, rel="alternate")
        fg.description(podcast.description or podcast.title)
        fg.language(podcast.language)
        fg.pubDate(ensure_utc(podcast.pub_date))
        fg.lastBuildDate(utcnow())
        fg.generator("podserve", version=__version__)

        if podcast.author:
            fg.podcast.itunes_author(podcast.author)
        if podcast.subtitle:
            fg.podcast.itunes_subtitle(podcast.subtitle)
        if podcast.summary:
            fg.podcast.itunes_summary(podcast.summary)
        if podcast.explicit:
            self._optional(fg.podcast.itunes_explicit, podcast.explicit, "explicit")
        if podcast.category:
            fg.category(term=podcast.category)
            self._optional(
                lambda value: fg.podcast.itunes_category(cat=value), podcast.category, "category"
            )
        if podcast.image_url:
            self._add_image(fg, podcast)

    def _add_image(self, fg: FeedGenerator, podcast: Podcast) -> None:
        """Add channel artwork, or leave it out if the reference is unusable."""
        try:
            image_url = resolve_url(self.base_url, podcast.image_url)
        except ValueError as e:
            self.logger.warning(
                "Failed to convert podcast image URL", image_url=podcast.image_url, error=str(e)
            )
            return

        fg.image(url=image_url, title=podcast.title, link=podcast.link)
        self._optional(fg.podcast.itunes_image, image_url, "image")

    def _optional(self, setter: Callable[[str], object], value: str, field: str) -> None:
        """Apply an optional channel field, dropping values feedgen rejects."""
        try:
            setter(value)
        except ValueError as e:
            self.logger.warning("Omitting channel field", field=field, value=value, error=str(e))

    def _add_episode(self, fg: FeedGenerator, episode: Episode) -> bool:
        """Append one item to the feed.

        Returns:
            True if the episode was rendered, False if it was skipped.
        """
        try:
            validate_episode(episode)
        except FeedValidationError as e:
            self._skip(episode, e)
            return False

        audio_url = ""
        if episode.audio_url:
            try:
                audio_url = resolve_url(self.base_url, episode.audio_url)
            except ValueError as e:
                self._skip(episode, e)
                return False

        fe = fg.add_entry(order="append")
        try:
            if episode.title:
                fe.title(episode.title)
            if episode.description:
                fe.description(episode.description)
            fe.pubDate(ensure_utc(episode.pub_date))
            fe.guid(episode.guid or episode.id, permalink=False)

            if audio_url:
                fe.enclosure(audio_url, str(episode.audio_length), episode.audio_type or "audio/mpeg")

            if episode.duration:
                fe.podcast.itunes_duration(episode.duration)
            if episode.explicit:
                fe.podcast.itunes_explicit(episode.explicit)
            if episode.episode_number:
                fe.podcast.itunes_episode(episode.episode_number)
            if episode.season_number:
                fe.podcast.itunes_season(episode.season_number)
            if episode.episode_type:
                fe.podcast.itunes_episode_type(episode.episode_type)
        except ValueError as e:
            fg.remove_entry(fe)
            self._skip(episode, e)
            return False

        return True

    def _skip(self, episode: Episode, error: Exception) -> None:
        self.logger.warning(
            "Skipping episode",
            episode_id=episode.id,
            audio_url=episode.audio_url,
            error=str(error),
        )
        if self.on_skip is not None:
            self.on_skip(episode, error)


def encode_feed(
    podcast: Podcast, base_url: str, on_skip: SkipCallback | None = None
) -> bytes:
    """Render ``podcast`` as RSS with URLs resolved against ``base_url``."""
    return FeedWriter(base_url, on_skip=on_skip).render(podcast)
