"""Custom exceptions for Podserve."""


class PodserveError(Exception):
    """Base exception for all Podserve errors."""

    pass


class FeedParseError(PodserveError):
    """Feed markup is not well-formed or lacks the channel/item shape."""

    pass


class FeedEncodeError(PodserveError):
    """Channel-level feed generation failed."""

    pass


class ResolutionError(PodserveError, ValueError):
    """A URI-reference or base URL could not be parsed."""

    pass


class FeedValidationError(PodserveError, ValueError):
    """Invalid podcast metadata or episode."""

    pass


class DuplicateEpisodeError(FeedValidationError):
    """An episode with the same id already exists."""

    pass


class EpisodeNotFoundError(FeedValidationError):
    """No episode with the requested id."""

    pass
