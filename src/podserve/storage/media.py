"""Placement of uploaded audio and artwork files on disk."""

import re
from datetime import datetime
from pathlib import Path, PurePosixPath

import structlog

from podserve.models import AudioFile, utcnow

logger = structlog.get_logger(__name__)

FILENAME_MAX_LENGTH = 50
AUDIO_URL_PREFIX = "/audio/"
ARTWORK_URL_PREFIX = "/static/artwork/"


def generate_unique_filename(original_name: str, now: datetime | None = None) -> str:
    """Create a URL-safe, timestamped filename from an uploaded name.

    Args:
        original_name: Filename as sent by the client.
        now: Timestamp to embed (defaults to the current time).

    Returns:
        ``<sanitized-base>-<YYYYMMDD-HHMMSS><ext>``
    """
    # Browsers on Windows may send a full path
    name = PurePosixPath(original_name.replace("\\", "/")).name
    suffix = PurePosixPath(name).suffix
    base = name[: -len(suffix)] if suffix else name

    sanitized = re.sub(r"[^a-zA-Z0-9_-]", "-", base).strip("-")[:FILENAME_MAX_LENGTH]
    timestamp = (now or utcnow()).strftime("%Y%m%d-%H%M%S")

    return f"{sanitized}-{timestamp}{suffix}"


def save_audio_file(original_name: str, data: bytes, audio_dir: Path) -> AudioFile:
    """Write an uploaded audio file under a unique name.

    Args:
        original_name: Filename as uploaded.
        data: File contents.
        audio_dir: Destination directory, created if missing.

    Returns:
        AudioFile: Description of the stored file.
    """
    file_path = _write(audio_dir, generate_unique_filename(original_name), data)
    filename = file_path.name

    logger.info(
        "Saved audio file",
        filename=filename,
        size_mb=round(len(data) / (1024 * 1024), 2),
    )

    return AudioFile(
        filename=filename,
        original_name=original_name,
        file_path=file_path,
        size=file_path.stat().st_size,
        mime_type="audio/mpeg",
    )


def save_artwork_file(original_name: str, data: bytes, artwork_dir: Path) -> str:
    """Write uploaded artwork under a unique name and return the filename."""
    filename = _write(artwork_dir, generate_unique_filename(original_name), data).name
    logger.info("Saved artwork file", filename=filename)
    return filename


def delete_audio_file(filename: str, audio_dir: Path) -> None:
    """Remove an audio file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    (Path(audio_dir) / filename).unlink()
    logger.info("Deleted audio file", filename=filename)


def delete_artwork_file(filename: str, artwork_dir: Path) -> None:
    """Remove an artwork file, ignoring one that is already gone."""
    (Path(artwork_dir) / filename).unlink(missing_ok=True)
    logger.info("Deleted artwork file", filename=filename)


def audio_url_for(filename: str) -> str:
    """Server-relative reference stored in the episode for an audio file."""
    return f"{AUDIO_URL_PREFIX}{filename}"


def artwork_url_for(filename: str) -> str:
    """Server-relative reference stored in the podcast for artwork."""
    return f"{ARTWORK_URL_PREFIX}{filename}"


def filename_from_audio_url(audio_url: str, base_url: str = "") -> str:
    """Recover the stored filename from an ``/audio/...`` reference, or ''.

    Episodes decoded from the feed file carry the absolute URL, so a
    ``base_url`` prefix is stripped first.
    """
    if base_url and audio_url.startswith(base_url + "/"):
        audio_url = audio_url[len(base_url) :]
    if audio_url.startswith(AUDIO_URL_PREFIX):
        return audio_url[len(AUDIO_URL_PREFIX) :]
    return ""


def _write(directory: Path, filename: str, data: bytes) -> Path:
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    # Two uploads of the same name within one second get the same timestamp
    file_path = directory / filename
    counter = 1
    while True:
        try:
            with open(file_path, "xb") as f:
                f.write(data)
            return file_path
        except FileExistsError:
            file_path = directory / f"{Path(filename).stem}-{counter}{Path(filename).suffix}"
            counter += 1
