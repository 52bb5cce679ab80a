"""Exception types raised while building and querying the library."""

from __future__ import annotations


class LibraryError(Exception):
    """Base class for all M3U library failures."""


class PlaylistError(LibraryError):
    """The playlist could not be turned into entries."""


class FetchError(PlaylistError):
    """Transport or HTTP status failure while downloading the playlist."""


class FormatError(PlaylistError):
    """The downloaded document does not look like an M3U playlist."""


class ResolutionError(LibraryError):
    """A TMDb lookup failed before it could produce an answer."""

    def __init__(self, message: str, *, tmdb_id: str | None = None) -> None:
        super().__init__(message)
        self.tmdb_id = tmdb_id


class NotFound(LibraryError, KeyError):
    """No catalog item exists for the requested identifier."""

    def __str__(self) -> str:
        # KeyError.__str__ wraps the message in quotes.
        return str(self.args[0]) if self.args else "not found"


class StreamUnavailable(LibraryError):
    """The playlist has no usable direct URL for the requested video."""
