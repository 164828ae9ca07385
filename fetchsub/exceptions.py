"""Domain exceptions raised by services and translated to HTTP errors by routers."""

from typing import Optional


class CoinError(Exception):
    """Base class for coin ledger failures."""


class InsufficientCoinsError(CoinError):
    """Raised when a user's balance does not cover the requested amount."""

    def __init__(self, required: float, available: float):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient coins: required {required}, available {available}")


class CoinRecordError(CoinError):
    """Raised when a user_coins row cannot be read, created or updated."""


class YtdlpError(Exception):
    """
    Raised when yt-dlp could not produce a transcript.

    `kind` is one of the labels returned by classify_ytdlp_error():
    timeout, subtitles_disabled, private, unavailable, auth, no_subtitles, unknown.
    """

    def __init__(self, kind: str, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or kind)


class PlaylistError(Exception):
    """Raised when no video IDs could be listed for a playlist or channel."""
