"""
Plugin loading errors.

Every error raised for a plugin file carries the file's key and, where there
is one, the underlying exception as ``cause``.
"""


class LoaderError(Exception):
    """Base class for plugin loading errors."""

    def __init__(self, message: str, key: str | None = None, cause: BaseException | None = None) -> None:
        self.key = key
        self.cause = cause

        if key is not None:
            message = f"[{key}] {message}"
        if cause is not None:
            message = f"{message}: {cause}"

        super().__init__(message)


class ConfigurationError(LoaderError):
    """Missing or invalid plugin file configuration."""


class TransferError(LoaderError):
    """The transport failed to fetch the plugin payload."""


class ActivationError(LoaderError):
    """Materializing the payload or calling its register() failed."""


class NamespaceCollisionError(ActivationError):
    """The namespace slot for a key already holds an unrelated value."""


class InvalidStateError(LoaderError):
    """An operation was called in a state that does not allow it."""
