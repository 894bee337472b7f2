"""
Plugin payload transport.

Fetches plugin source over HTTP(S) or from the local filesystem without
blocking the event loop, and reports the result through a callback.
"""

import asyncio
import base64
from collections.abc import Callable
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

import requests

from ..config.schema import XHRSettings
from ..logging_config import get_logger

logger = get_logger(__name__)

CompletionCallback = Callable[[str | bytes | None, BaseException | None], None]


class TransferHandle:
    """Handle to an in-flight fetch."""

    def __init__(self, task: asyncio.Task | None = None) -> None:
        self.task = task
        self.cancelled = False

    def cancel(self) -> None:
        """Abort the fetch; its callback will not fire."""
        self.cancelled = True

        if self.task is not None and not self.task.done():
            self.task.cancel()

    @property
    def done(self) -> bool:
        return self.task is None or self.task.done()


class Transport(Protocol):
    """Asynchronous fetch collaborator."""

    def fetch(self, locator: str, options: XHRSettings, on_complete: CompletionCallback) -> TransferHandle: ...


class HttpTransport:
    """
    Fetches payloads with requests (http/https) or pathlib (file:// and paths).

    Each fetch runs as an asyncio task on the running loop; the blocking read
    happens in a worker thread. The callback fires at most once.
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()

    def fetch(self, locator: str, options: XHRSettings, on_complete: CompletionCallback) -> TransferHandle:
        """
        Start fetching locator.

        Must be called from inside a running event loop.

        Args:
            locator: URL or filesystem path
            options: Transfer options
            on_complete: Called with (payload, None) or (None, error)

        Returns:
            TransferHandle
        """
        loop = asyncio.get_running_loop()
        handle = TransferHandle()
        handle.task = loop.create_task(self._run(locator, options, on_complete, handle))

        logger.debug(f"Fetch started: {locator}")

        return handle

    async def _run(
        self,
        locator: str,
        options: XHRSettings,
        on_complete: CompletionCallback,
        handle: TransferHandle,
    ) -> None:
        try:
            payload = await asyncio.to_thread(self.read, locator, options)
        except asyncio.CancelledError:
            logger.debug(f"Fetch cancelled: {locator}")
            raise
        except Exception as e:
            logger.debug(f"Fetch failed: {locator}: {e}")
            if not handle.cancelled:
                on_complete(None, e)
            return

        if not handle.cancelled:
            on_complete(payload, None)

    def read(self, locator: str, options: XHRSettings) -> str | bytes:
        """
        Read locator synchronously.

        Raises:
            requests.RequestException: HTTP failures, including timeouts
            OSError: Local file failures
        """
        parsed = urlparse(locator)

        if parsed.scheme in ("http", "https"):
            return self._read_http(locator, options)

        if parsed.scheme == "data":
            return self._read_data(locator, options)

        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
        else:
            path = Path(locator)

        if options.response_type == "bytes":
            return path.read_bytes()

        return path.read_text(encoding="utf-8")

    def _read_http(self, url: str, options: XHRSettings) -> str | bytes:
        auth = None
        if options.username is not None:
            auth = (options.username, options.password or "")

        response = self.session.get(
            url,
            headers=options.headers or None,
            auth=auth,
            timeout=options.timeout or None,
        )
        response.raise_for_status()

        if options.response_type == "bytes":
            return response.content

        return response.text

    @staticmethod
    def _read_data(url: str, options: XHRSettings) -> str | bytes:
        header, _, body = url.partition(",")

        if header.endswith(";base64"):
            raw = base64.b64decode(body)
        else:
            raw = unquote(body).encode("utf-8")

        if options.response_type == "bytes":
            return raw

        return raw.decode("utf-8")
