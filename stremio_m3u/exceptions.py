"""
Exception classes for stremio-m3u.

Exception Hierarchy:
    StremioM3UError (base)
        ConfigError - Configuration file issues
        ContentFetchError - Addon content could not be fetched
        PlaylistWriteError - Playlist file could not be written
        LogoCacheError - Logo cache metadata could not be read or written

Only ContentFetchError and PlaylistWriteError ever reach callers of the
playlist driver. Logo lookups degrade to a fallback instead of raising.
"""

from typing import Optional


class StremioM3UError(Exception):
    """
    Base exception for all stremio-m3u errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g. URLs, paths).
    """

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(StremioM3UError):
    """
    Raised when the configuration cannot be loaded or is invalid.

    Example:
        raise ConfigError(
            "Invalid batch size: 0",
            details={'section': 'logos', 'field': 'batch_size'}
        )
    """
    pass


class ContentFetchError(StremioM3UError):
    """
    Raised when no content could be fetched from the configured addons.

    This is propagated out of phase 1 of playlist generation so that the
    caller (CLI, scheduler) can surface it and decide whether to retry.
    """
    pass


class PlaylistWriteError(StremioM3UError):
    """
    Raised when the playlist file cannot be written.

    Common causes:
        - Output directory is not writable
        - Disk full
    """
    pass


class LogoCacheError(StremioM3UError):
    """
    Raised when the logo cache metadata file cannot be read or written.

    The cache catches and logs this itself; it never reaches the resolver.
    """
    pass
