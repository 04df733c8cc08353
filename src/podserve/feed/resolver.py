"""Resolution of stored URI-references into absolute URLs.

Audio and artwork references are stored as the server produced them
(``/audio/episode.mp3``); the feed needs absolute URLs, so references
are resolved against the configured base URL when the feed is rendered.
"""

import re
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

from podserve.errors import ResolutionError

ABSOLUTE_PREFIXES = ("http://", "https://")

# RFC 3986 reserved and unreserved characters, plus "%" so existing
# escapes are not double-encoded
_PATH_SAFE = "/:@!$&'()*+,;=-._~%"
_QUERY_SAFE = _PATH_SAFE + "?"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def resolve_url(base: str, candidate: str) -> str:
    """Resolve ``candidate`` against ``base``.

    Args:
        base: Absolute base URL, e.g. ``http://example.com:8080``.
        candidate: Absolute URL or URI-reference relative to ``base``.

    Returns:
        The absolute URL, percent-encoded.

    Raises:
        ResolutionError: If either string cannot be parsed.
    """
    if candidate.startswith(ABSOLUTE_PREFIXES):
        return candidate

    base_parts = _parse(base, "base URL")
    ref_parts = _parse(candidate, "relative path")

    reference = urlunsplit(
        (
            ref_parts.scheme,
            ref_parts.netloc,
            quote(ref_parts.path, safe=_PATH_SAFE),
            quote(ref_parts.query, safe=_QUERY_SAFE),
            quote(ref_parts.fragment, safe=_QUERY_SAFE),
        )
    )
    return urljoin(urlunsplit(base_parts), reference)


def _parse(value: str, label: str):
    if _CONTROL_CHARS.search(value):
        raise ResolutionError(f"invalid {label} {value!r}: contains control characters")
    if _BAD_ESCAPE.search(value):
        raise ResolutionError(f"invalid {label} {value!r}: invalid URL escape")
    if value.startswith(":"):
        raise ResolutionError(f"invalid {label} {value!r}: missing protocol scheme")

    try:
        parts = urlsplit(value)
        # Port validation is lazy in urllib
        _ = parts.port
    except ValueError as e:
        raise ResolutionError(f"invalid {label} {value!r}: {e}") from e

    return parts
