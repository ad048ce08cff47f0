"""
Defines custom exceptions for the application to allow for more specific error handling.

Download failures form a closed family under `LoadError` so the orchestrator can
decide between retrying, skipping, and aborting by exception type alone.
"""


class OggifyError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(OggifyError):
    """Raised for issues related to configuration loading or validation."""


class AuthenticationError(OggifyError):
    """Raised when the remote session cannot be established."""


class InvalidIdentifierError(OggifyError):
    """Raised when a recognized identifier does not decode to a valid catalog ID."""


class LoadError(OggifyError):
    """Base class for every failure that can occur while loading a single item."""


class RemoteError(LoadError):
    """Raised when a network, session, or catalog request fails."""


class KeyDeniedError(RemoteError):
    """
    Raised when the remote service refuses to hand out a decryption key.

    The service uses this as its rate-limiting signal, so it is retried with
    an escalating penalty delay instead of being skipped.
    """


class UnavailableError(LoadError):
    """Raised when an item, and every alternative for it, cannot be played."""


class UnsupportedFormatError(LoadError):
    """Raised when an item offers no encoding that can be downloaded."""


class LocalIOError(LoadError):
    """Raised when reading, decrypting, or writing audio data fails locally."""


class PackagingError(OggifyError):
    """Raised when the external packaging step is unavailable or fails."""


class PenaltyCeilingError(OggifyError):
    """Raised when the accumulated penalty delay exceeds its ceiling. Fatal."""
