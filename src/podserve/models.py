"""Podcast and episode models.

The in-memory representation of the podcast held by the feed store,
plus episode id generation and channel metadata validation.
"""

import re
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from podserve.errors import FeedValidationError

SLUG_MAX_LENGTH = 50
EXPLICIT_VALUES = ("", "yes", "no", "clean")
EPISODE_TYPES = ("", "full", "trailer", "bonus")
LANGUAGE_PATTERN = re.compile(r"^[a-z]{2}(-[a-z]{2})?$")
DURATION_PATTERN = re.compile(r"^\d+(:\d+){0,2}$")

# iTunes moved from yes/no to true/false
EXPLICIT_ALIASES = {"true": "yes", "false": "no", "explicit": "yes"}

# Anything outside the XML 1.0 Char production
_XML_INVALID = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Episode(BaseModel):
    """A single podcast episode with RSS 2.0 + iTunes metadata."""

    id: str = Field(description="Unique episode identifier")
    title: str = Field(description="Episode title")
    description: str = Field(default="", description="Episode description/show notes")
    pub_date: datetime = Field(default_factory=utcnow, description="Publication date")
    guid: str = Field(default="", description="Feed GUID, defaults to the id")

    # Enclosure
    audio_url: str = Field(default="", description="Audio URI-reference, possibly relative")
    audio_length: int = Field(default=0, description="Audio size in bytes")
    audio_type: str = Field(default="audio/mpeg", description="Audio MIME type")

    # iTunes
    duration: str = Field(default="", description="HH:MM:SS or seconds")
    explicit: str = Field(default="", description="yes, no or clean")
    episode_number: int = Field(default=0, description="Episode number, 0 if unset")
    season_number: int = Field(default=0, description="Season number, 0 if unset")
    episode_type: str = Field(default="", description="full, trailer or bonus")

    # Internal
    filename: str = Field(default="", description="Audio filename on disk")
    upload_date: datetime | None = Field(default=None, description="When the episode was added")

    @model_validator(mode="after")
    def default_guid(self) -> "Episode":
        if not self.guid:
            self.guid = self.id
        return self


class Podcast(BaseModel):
    """The podcast show: channel-level metadata and its episodes."""

    # RSS 2.0
    title: str = Field(description="Podcast title")
    link: str = Field(description="Podcast website")
    description: str = Field(description="Podcast description")
    language: str = Field(default="en-us", description="Language code")
    pub_date: datetime = Field(default_factory=utcnow, description="Publication date")

    # iTunes
    author: str = Field(default="", description="Podcast author/host")
    subtitle: str = Field(default="", description="Short tagline")
    summary: str = Field(default="", description="Long-form summary")
    image_url: str = Field(default="", description="Artwork URI-reference, possibly relative")
    explicit: str = Field(default="", description="yes, no or clean")
    category: str = Field(default="", description="iTunes category")

    # Insertion order; the feed sorts by pub_date when rendering
    episodes: list[Episode] = Field(default_factory=list, description="Episodes in upload order")

    def find_episode(self, episode_id: str) -> Episode | None:
        """Return the episode with this id, or None."""
        for episode in self.episodes:
            if episode.id == episode_id:
                return episode
        return None


class AudioFile(BaseModel):
    """An uploaded audio file as placed on disk."""

    filename: str = Field(description="Stored filename (unique, URL-safe)")
    original_name: str = Field(description="Filename as uploaded")
    file_path: Path = Field(description="Full path on disk")
    size: int = Field(description="Size in bytes")
    mime_type: str = Field(default="audio/mpeg", description="MIME type")
    duration: str = Field(default="", description="Duration HH:MM:SS, if known")
    upload_date: datetime = Field(default_factory=utcnow, description="When the file was saved")


def default_podcast() -> Podcast:
    """Placeholder podcast used when no feed file exists yet."""
    return Podcast(
        title="My Podcast",
        link="https://example.com",
        description="A podcast about interesting topics",
        language="en-us",
        # Feed dates carry whole seconds only
        pub_date=utcnow().replace(microsecond=0),
        author="Podcast Creator",
        subtitle="Interesting conversations",
        summary="A podcast about interesting topics",
        image_url="",
        explicit="no",
        category="Technology",
        episodes=[],
    )


def slugify(title: str) -> str:
    """Lowercase, hyphen-separated slug of at most 50 characters."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH]


def generate_episode_id(title: str, pub_date: datetime) -> str:
    """Build an episode id of the form ``ep-YYYYMMDD-<slug>``."""
    return f"ep-{pub_date.strftime('%Y%m%d')}-{slugify(title)}"


def normalize_explicit(value: str) -> str:
    """Lowercase an explicit flag and map true/false onto yes/no."""
    value = value.strip().lower()
    return EXPLICIT_ALIASES.get(value, value)


def normalize_episode_type(value: str) -> str:
    return value.strip().lower()


def invalid_xml_fields(model: BaseModel) -> list[str]:
    """Names of text fields holding characters that cannot appear in XML."""
    return [
        name
        for name, value in model
        if isinstance(value, str) and _XML_INVALID.search(value)
    ]


def validate_episode(episode: Episode) -> None:
    """Check that an episode can be written to the feed as given.

    Raises:
        FeedValidationError: If the id is missing or a field holds a value
            the feed cannot carry.
    """
    if not episode.id:
        raise FeedValidationError("Episode id is required")

    invalid = invalid_xml_fields(episode)
    if invalid:
        raise FeedValidationError(f"Fields contain invalid characters: {', '.join(invalid)}")

    if not (episode.title or episode.description):
        raise FeedValidationError("Episode needs a title or a description")

    if episode.explicit not in EXPLICIT_VALUES:
        raise FeedValidationError("Explicit must be one of 'yes', 'no' or 'clean'")

    if episode.episode_type not in EPISODE_TYPES:
        raise FeedValidationError("Episode type must be one of 'full', 'trailer' or 'bonus'")

    if episode.duration and not DURATION_PATTERN.match(episode.duration):
        raise FeedValidationError("Duration must be seconds or [HH:]MM:SS")


def validate_metadata(podcast: Podcast) -> None:
    """Check channel metadata before it replaces the current podcast.

    Raises:
        FeedValidationError: If a required field is missing or malformed.
    """
    missing = [
        name
        for name in ("title", "link", "description", "language")
        if not getattr(podcast, name).strip()
    ]
    if missing:
        raise FeedValidationError(f"Required fields missing: {', '.join(missing)}")

    invalid = invalid_xml_fields(podcast)
    if invalid:
        raise FeedValidationError(f"Fields contain invalid characters: {', '.join(invalid)}")

    if not podcast.link.startswith(("http://", "https://")):
        raise FeedValidationError("Link must be a valid HTTP(S) URL")

    if not LANGUAGE_PATTERN.match(podcast.language):
        raise FeedValidationError(
            "Language must be a valid language code (e.g., 'en-us', 'es')"
        )

    if podcast.explicit not in EXPLICIT_VALUES:
        raise FeedValidationError("Explicit must be one of 'yes', 'no' or 'clean'")
