from __future__ import annotations


class MapBoardError(Exception):
    """Base class for recoverable client-side failures."""


class FetchError(MapBoardError):
    """The feature collection could not be fetched (network or HTTP error)."""


class MalformedCollectionError(MapBoardError):
    """The payload is not a FeatureCollection with a ``features`` array."""


class AuthenticationError(MapBoardError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ShareError(MapBoardError):
    """A share link could not be produced or delivered."""


class EventRejectedError(MapBoardError):
    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []
