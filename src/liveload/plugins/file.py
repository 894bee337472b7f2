"""
Plugin file: one plugin load request and its lifecycle.

Lifecycle:
    PENDING -> LOADING -> PROCESSING -> COMPLETE
    transfer or activation failure -> ERRORED
    destroy() from any state -> DESTROYED

A plugin passed in as an already-loaded class, function or module skips the
transfer and goes PENDING -> COMPLETE during construction.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any

from ..config.schema import XHRSettings
from ..logging_config import get_logger
from .errors import ActivationError, ConfigurationError, InvalidStateError, LoaderError, TransferError
from .file_config import (
    DEFAULT_EXTENSION,
    derive_url,
    is_inline_plugin,
    merge_xhr_settings,
    normalize_file_config,
    resolve_url,
)
from .transport import TransferHandle

if TYPE_CHECKING:
    from .loader import PluginLoader

logger = get_logger(__name__)


class FileState(Enum):
    """Plugin file states."""

    PENDING = "pending"
    LOADING = "loading"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERRORED = "errored"
    DESTROYED = "destroyed"


_TRANSITIONS: dict[FileState, frozenset[FileState]] = {
    FileState.PENDING: frozenset({FileState.LOADING, FileState.COMPLETE, FileState.ERRORED}),
    FileState.LOADING: frozenset({FileState.PROCESSING, FileState.ERRORED}),
    FileState.PROCESSING: frozenset({FileState.COMPLETE, FileState.ERRORED}),
    FileState.COMPLETE: frozenset(),
    FileState.ERRORED: frozenset(),
    FileState.DESTROYED: frozenset(),
}

FINISHED_STATES = frozenset({FileState.COMPLETE, FileState.ERRORED, FileState.DESTROYED})


class PluginFile:
    """
    A single plugin file queued on a PluginLoader.

    Usually created through ``PluginLoader.plugin``.
    """

    def __init__(
        self,
        loader: "PluginLoader",
        key: Any,
        url: Any = None,
        xhr_settings: XHRSettings | dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize plugin file.

        Args:
            loader: Owning loader (the queue driver)
            key: Unique key, or a config record with key/url/extension/xhrSettings
            url: Locator; defaults to ``<key>.<extension>``. May be an
                already-loaded class, function or module instead
            xhr_settings: Transfer options merged over the loader defaults

        Raises:
            ConfigurationError: If key is missing or empty, or already in use
                by the loader
        """
        config = normalize_file_config(key, url, xhr_settings)

        # Checked before an in-process plugin gets registered
        if config.key in loader.keys():
            raise ConfigurationError("key already in use by this loader", key=config.key)

        self.loader = loader
        self.key: str = config.key

        if "extension" in config.model_fields_set:
            self.extension = config.extension
        else:
            self.extension = getattr(loader, "extension", None) or DEFAULT_EXTENSION

        self.xhr_settings = merge_xhr_settings(getattr(loader, "xhr", None), config.xhr_settings)
        self.state = FileState.PENDING
        self.data: Any = None
        self.error: LoaderError | None = None

        self._payload: str | bytes | None = None
        self._transfer: TransferHandle | None = None
        self._activated = False

        if is_inline_plugin(config.url):
            self.url: str | None = None
            self.src: str | None = None
            self._activate_inline(config.url)
            return

        self.url = config.url or derive_url(self.key, self.extension)
        self.src = resolve_url(self.url, getattr(loader, "base_url", ""), getattr(loader, "path", ""))

    def __repr__(self) -> str:
        return f"PluginFile(key={self.key!r}, url={self.url!r}, state={self.state.value})"

    @property
    def payload(self) -> str | bytes | None:
        """Raw payload from the transport."""
        return self._payload

    @property
    def finished(self) -> bool:
        return self.state in FINISHED_STATES

    def _set_state(self, state: FileState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise InvalidStateError(
                f"cannot move from {self.state.value} to {state.value}",
                key=self.key,
            )

        logger.debug(f"{self.key}: {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, error: LoaderError) -> None:
        self.error = error
        self._set_state(FileState.ERRORED)
        logger.error(str(error))

    def _activate(self, value: Any) -> None:
        # Activation, namespace bind and register() run once per file
        self._activated = True
        self.data = self.loader.extensions.activate(self.key, value)

    def _activate_inline(self, value: Any) -> None:
        try:
            self._activate(value)
        except ActivationError as e:
            self._fail(e)
            return

        self._set_state(FileState.COMPLETE)
        logger.debug(f"{self.key}: registered in-process plugin, no transfer needed")

    def start_transfer(self) -> None:
        """
        Start fetching the payload.

        Returns immediately; the transport reports back through
        on_transfer_complete, which then notifies the loader.

        Raises:
            InvalidStateError: If the file is not pending
        """
        if self.state == FileState.DESTROYED:
            return

        if self.state != FileState.PENDING:
            raise InvalidStateError(f"transfer already started ({self.state.value})", key=self.key)

        self._set_state(FileState.LOADING)

        try:
            self._transfer = self.loader.transport.fetch(self.src, self.xhr_settings, self.on_transfer_complete)
        except Exception as e:
            self.on_transfer_complete(None, e)

    def on_transfer_complete(self, payload: str | bytes | None, error: BaseException | None = None) -> None:
        """
        Transport callback.

        Late or repeated completions are ignored.

        Args:
            payload: Raw payload on success
            error: Transport error on failure
        """
        if self.state != FileState.LOADING or self._payload is not None:
            logger.debug(f"{self.key}: ignoring transfer completion in state {self.state.value}")
            return

        self._transfer = None

        if error is not None or payload is None:
            cause = error or ValueError("empty response")
            self._fail(TransferError(f"failed to fetch {self.src}", key=self.key, cause=cause))
            self.loader.next_file(self, False)
            return

        self._payload = payload
        self.loader.next_file(self, True)

    def process(self) -> bool:
        """
        Activate the fetched payload and register it.

        Runs to completion without suspending. Only the first call after a
        successful transfer has any effect.

        Returns:
            True if the plugin was activated and registered

        Raises:
            InvalidStateError: If called before the transfer succeeded
        """
        if self.finished or self._activated:
            logger.debug(f"{self.key}: process() ignored in state {self.state.value}")
            return False

        if self.state != FileState.LOADING or self._payload is None:
            raise InvalidStateError(f"nothing to process in state {self.state.value}", key=self.key)

        self._set_state(FileState.PROCESSING)

        try:
            value = self.loader.extensions.materialize(self.key, self._payload, self.src)
            self._activate(value)
        except ActivationError as e:
            self._fail(e)
            self.loader.file_process_complete(self)
            return False

        self._set_state(FileState.COMPLETE)
        self.loader.file_process_complete(self)

        return True

    def destroy(self) -> None:
        """
        Cancel this file.

        Aborts an in-flight transfer and releases the payload. A destroyed
        file never activates. The loader is told, so a run waiting on this
        file's transfer moves on.
        """
        if self.state == FileState.DESTROYED:
            return

        if self._transfer is not None:
            self._transfer.cancel()
            self._transfer = None

        logger.debug(f"{self.key}: {self.state.value} -> destroyed")

        self.state = FileState.DESTROYED
        self._payload = None

        self.loader.file_destroyed(self)
