"""FastAPI application: dashboard, episode management and the feed itself.

One FeedStore is created at startup (or passed in) and shared through
``app.state``; handlers only touch podcast state through its methods.
"""

from datetime import datetime
from pathlib import Path

import structlog
from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from podserve import __version__
from podserve.config import Settings, get_settings
from podserve.errors import EpisodeNotFoundError, FeedEncodeError, FeedValidationError
from podserve.middleware import LoggingMiddleware
from podserve.models import (
    AudioFile,
    Episode,
    Podcast,
    ensure_utc,
    generate_episode_id,
    normalize_episode_type,
    normalize_explicit,
    utcnow,
    validate_metadata,
)
from podserve.storage import FeedStore, media

logger = structlog.get_logger(__name__)

PACKAGE_DIR = Path(__file__).parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

ARTWORK_EXTENSIONS = (".jpg", ".jpeg", ".png")
MB = 1024 * 1024

router = APIRouter()


def get_store(request: Request) -> FeedStore:
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


@router.get("/", response_class=HTMLResponse)
def dashboard(
    request: Request,
    store: FeedStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Render the dashboard."""
    podcast = store.snapshot()
    episodes = sorted(podcast.episodes, key=lambda ep: ensure_utc(ep.pub_date), reverse=True)
    return templates.TemplateResponse(
        request,
        "index.html",
        {"podcast": podcast, "episodes": episodes, "feed_url": settings.feed_url},
    )


@router.get("/api/episodes")
def list_episodes(store: FeedStore = Depends(get_store)):
    """List episodes in upload order."""
    return [episode.model_dump(mode="json") for episode in store.snapshot().episodes]


@router.post("/api/episodes", status_code=201)
def upload_episode(
    audio: UploadFile | None = File(None),
    title: str = Form(""),
    description: str = Form(""),
    pub_date: str = Form(""),
    explicit: str = Form(""),
    episode_number: str = Form(""),
    season_number: str = Form(""),
    episode_type: str = Form(""),
    store: FeedStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """Upload an audio file and publish it as a new episode."""
    if audio is None or not audio.filename:
        raise HTTPException(status_code=400, detail="Audio file required")

    extension = Path(audio.filename).suffix.lower()
    allowed = [ext.lower() for ext in settings.upload.allowed_extensions]
    if extension not in allowed:
        raise HTTPException(
            status_code=415, detail=f"Only {', '.join(allowed)} files are supported"
        )

    title = title.strip()
    description = description.strip()
    if not title or not description:
        raise HTTPException(status_code=400, detail="Title and description required")

    max_size = settings.upload.max_file_size_mb * MB
    data = audio.file.read(max_size + 1)
    if len(data) > max_size:
        raise HTTPException(
            status_code=413, detail=f"File too large (max {settings.upload.max_file_size_mb} MB)"
        )

    try:
        audio_file = media.save_audio_file(audio.filename, data, settings.paths.audio_dir)
    except OSError as e:
        logger.error("Failed to save audio file", filename=audio.filename, error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to save audio file: {e}") from e

    published = _parse_rfc3339(pub_date)
    episode_id = generate_episode_id(title, published)
    episode = Episode(
        id=episode_id,
        title=title,
        description=description,
        pub_date=published,
        guid=episode_id,
        audio_url=media.audio_url_for(audio_file.filename),
        audio_length=audio_file.size,
        audio_type=audio_file.mime_type,
        duration=audio_file.duration,
        explicit=normalize_explicit(explicit),
        episode_number=_safe_int(episode_number),
        season_number=_safe_int(season_number),
        episode_type=normalize_episode_type(episode_type),
        filename=audio_file.filename,
        upload_date=audio_file.upload_date,
    )

    try:
        store.add_episode(episode)
    except FeedValidationError as e:
        _discard_audio(audio_file, settings)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (OSError, FeedEncodeError) as e:
        _discard_audio(audio_file, settings)
        raise HTTPException(status_code=500, detail=f"Failed to add episode: {e}") from e

    return JSONResponse(status_code=201, content=episode.model_dump(mode="json"))


@router.delete("/api/episodes/{episode_id}")
def delete_episode(
    episode_id: str,
    store: FeedStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """Remove an episode from the feed, then its audio file."""
    episode = store.snapshot().find_episode(episode_id)
    if episode is None:
        raise HTTPException(status_code=404, detail="Episode not found")

    try:
        store.delete_episode(episode_id)
    except EpisodeNotFoundError as e:
        raise HTTPException(status_code=404, detail="Episode not found") from e
    except (OSError, FeedEncodeError) as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete episode: {e}") from e

    # Filenames are not part of the feed, so reloaded episodes only have the URL
    filename = episode.filename or media.filename_from_audio_url(
        episode.audio_url, settings.base_url
    )
    if filename and _is_safe_filename(filename):
        try:
            media.delete_audio_file(filename, settings.paths.audio_dir)
        except OSError as e:
            # The episode is already gone from the feed
            logger.warning("Failed to delete audio file", filename=filename, error=str(e))

    return Response(status_code=200)


@router.get("/api/podcast/settings", response_class=HTMLResponse)
def get_podcast_settings(
    request: Request,
    store: FeedStore = Depends(get_store),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Render the podcast settings form."""
    return templates.TemplateResponse(request, "settings_form.html", {"podcast": store.snapshot()})


@router.post("/api/podcast/settings", response_class=HTMLResponse)
def update_podcast_settings(
    title: str = Form(""),
    link: str = Form(""),
    description: str = Form(""),
    language: str = Form(""),
    author: str = Form(""),
    subtitle: str = Form(""),
    summary: str = Form(""),
    explicit: str = Form(""),
    category: str = Form(""),
    artwork: UploadFile | None = File(None),
    store: FeedStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """Update channel metadata and optionally replace the artwork."""
    current = store.snapshot()
    podcast = Podcast(
        title=title.strip(),
        link=link.strip(),
        description=description.strip(),
        language=language.strip(),
        author=author.strip(),
        subtitle=subtitle.strip(),
        summary=summary.strip(),
        explicit=normalize_explicit(explicit),
        category=category.strip(),
        pub_date=current.pub_date,
        image_url=current.image_url,
    )

    try:
        validate_metadata(podcast)
    except FeedValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    artwork_filename = ""
    if artwork is not None and artwork.filename:
        artwork_filename = _save_artwork(artwork, settings)
        podcast.image_url = media.artwork_url_for(artwork_filename)

    try:
        store.update_podcast(podcast)
    except (FeedValidationError, OSError, FeedEncodeError) as e:
        if artwork_filename:
            media.delete_artwork_file(artwork_filename, settings.paths.artwork_dir)
        status_code = 400 if isinstance(e, FeedValidationError) else 500
        raise HTTPException(status_code=status_code, detail=f"Failed to update settings: {e}") from e

    return HTMLResponse(
        '<div class="success-message">Settings saved successfully! '
        '<a href="/">Back to Dashboard</a></div>'
    )


@router.get("/feed.xml")
def feed(store: FeedStore = Depends(get_store)):
    """Serve the RSS feed."""
    try:
        xml = store.serve_xml()
    except FeedEncodeError as e:
        logger.error("Failed to generate RSS feed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to generate RSS feed") from e
    return Response(content=xml, media_type="application/rss+xml; charset=utf-8")


@router.get("/audio/{filename}")
def audio(filename: str, settings: Settings = Depends(get_app_settings)):
    """Serve an uploaded audio file."""
    if not _is_safe_filename(filename):
        raise HTTPException(status_code=400, detail="Invalid filename")

    file_path = Path(settings.paths.audio_dir) / filename
    if not file_path.is_file():
        raise HTTPException(status_code=404, detail="Audio file not found")

    return FileResponse(file_path, media_type="audio/mpeg")


def _save_artwork(artwork: UploadFile, settings: Settings) -> str:
    """Validate and store uploaded artwork, returning the stored filename."""
    extension = Path(artwork.filename).suffix.lower()
    if extension not in ARTWORK_EXTENSIONS:
        raise HTTPException(status_code=415, detail="Artwork must be JPG or PNG")

    max_size = settings.upload.max_artwork_size_mb * MB
    data = artwork.file.read(max_size + 1)
    if len(data) > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"Artwork too large (max {settings.upload.max_artwork_size_mb} MB)",
        )

    try:
        return media.save_artwork_file(artwork.filename, data, settings.paths.artwork_dir)
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save artwork: {e}") from e


def _discard_audio(audio_file: AudioFile, settings: Settings) -> None:
    """Compensating action when the store rejects an uploaded episode."""
    try:
        media.delete_audio_file(audio_file.filename, settings.paths.audio_dir)
    except OSError as e:
        logger.warning("Failed to clean up audio file", filename=audio_file.filename, error=str(e))


def _parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp, defaulting to now."""
    value = value.strip()
    if not value:
        return utcnow()
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        logger.warning("Ignoring invalid pub_date", value=value)
        return utcnow()


def _safe_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def _is_safe_filename(filename: str) -> bool:
    return bool(filename) and ".." not in filename and "/" not in filename and "\\" not in filename


def create_app(settings: Settings | None = None, store: FeedStore | None = None) -> FastAPI:
    """Build the application around a single feed store.

    Args:
        settings: Application settings (loaded from the environment if None).
        store: Feed store to serve (loaded from ``settings.paths.rss_file`` if None).

    Returns:
        FastAPI: Configured application.
    """
    settings = settings or get_settings()
    if store is None:
        store = FeedStore.load(settings.paths.rss_file, settings.base_url)

    app = FastAPI(
        title="Podserve",
        description="Podcast hosting - episode uploads and RSS feed",
        version=__version__,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

    app.add_middleware(LoggingMiddleware)
    app.include_router(router)

    artwork_dir = Path(settings.paths.artwork_dir)
    artwork_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/static/artwork", StaticFiles(directory=artwork_dir), name="artwork")
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    logger.info("Application ready", base_url=settings.base_url, feed=str(store.path))
    return app
