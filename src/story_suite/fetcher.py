"""Download article pages with a hard deadline."""

from __future__ import annotations

import logging
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

import requests
from bs4 import UnicodeDammit
from urllib3.exceptions import ReadTimeoutError

from .errors import FetchError, FetchTimeoutError
from .models import FetchedPage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
DEFAULT_USER_AGENT = "SmartStorySuiteBot/1.0 (+https://smartstorysuite.app/bot-info)"
ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
CHUNK_SIZE = 64 * 1024


def _is_read_timeout(exc: requests.RequestException) -> bool:
    # requests re-raises urllib3 read timeouts during streaming as ConnectionError.
    return any(isinstance(arg, ReadTimeoutError) for arg in exc.args)


def _response_socket(response) -> socket.socket | None:
    raw = getattr(response, "raw", None)
    connection = getattr(raw, "_connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        # http.client keeps the socket behind the buffered reader.
        reader = getattr(getattr(raw, "_fp", None), "fp", None)
        sock = getattr(getattr(reader, "raw", None), "_sock", None)
    return sock if isinstance(sock, socket.socket) else None


class _Download:
    """State shared between the caller and the thread doing the GET."""

    def __init__(self) -> None:
        self.response = None
        self.aborted = threading.Event()
        self._lock = threading.Lock()

    def attach(self, response) -> None:
        with self._lock:
            self.response = response
            aborted = self.aborted.is_set()
        if aborted:
            self._interrupt(response)

    def abort(self) -> None:
        with self._lock:
            self.aborted.set()
            response = self.response
        if response is not None:
            self._interrupt(response)

    @staticmethod
    def _interrupt(response) -> None:
        # close() alone does not wake a thread blocked in recv(); shutdown() does.
        sock = _response_socket(response)
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        response.close()


def _decode_body(body: bytes, content_type: str | None, declared: str | None) -> str:
    encodings = []
    if declared and content_type and "charset" in content_type.lower():
        encodings.append(declared)
    dammit = UnicodeDammit(body, encodings, is_html=True)
    if dammit.unicode_markup is None:
        return body.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def _download(
    http: requests.Session,
    url: str,
    headers: dict,
    timeout: float,
    deadline: float,
    state: _Download,
) -> FetchedPage:
    try:
        response = http.get(url, headers=headers, timeout=timeout, stream=True)
    except requests.Timeout as exc:
        raise FetchTimeoutError(url, timeout) from exc
    except requests.RequestException as exc:
        if state.aborted.is_set():
            raise FetchTimeoutError(url, timeout) from exc
        logger.error("Fetch failed for %s: %s", url, exc)
        raise FetchError(f"Failed to fetch article: {exc}") from exc
    state.attach(response)

    try:
        if not response.ok:
            logger.error(
                "Fetch failed for %s with status %s %s",
                url,
                response.status_code,
                response.reason,
            )
            raise FetchError.from_status(response.status_code, response.reason or "")

        content_type = response.headers.get("content-type")
        if not content_type or "text/html" not in content_type.lower():
            logger.warning(
                "Content type for %s is not HTML (%s). Attempting parse anyway.",
                url,
                content_type,
            )

        chunks: list[bytes] = []
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if state.aborted.is_set() or time.monotonic() > deadline:
                    raise FetchTimeoutError(url, timeout)
                chunks.append(chunk)
        except requests.Timeout as exc:
            raise FetchTimeoutError(url, timeout) from exc
        except requests.RequestException as exc:
            if state.aborted.is_set() or _is_read_timeout(exc):
                raise FetchTimeoutError(url, timeout) from exc
            raise FetchError(f"Failed to fetch article: {exc}") from exc
        # An interrupted socket can also look like a clean end of body.
        if state.aborted.is_set() or time.monotonic() > deadline:
            raise FetchTimeoutError(url, timeout)
    finally:
        response.close()

    body = b"".join(chunks)
    logger.debug("Fetched %d bytes from %s", len(body), url)
    return FetchedPage(
        url=url,
        html=_decode_body(body, content_type, response.encoding),
        status_code=response.status_code,
        content_type=content_type,
    )


def fetch_page(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str | None = None,
    session: requests.Session | None = None,
) -> FetchedPage:
    """
    GET ``url`` and return the decoded page.

    ``timeout`` is a deadline for the whole fetch: connect, headers, and body.
    The GET runs on a worker thread; when the deadline passes the caller gets
    FetchTimeoutError at once and the connection is shut down so the worker
    stops reading. Raises FetchError for non-2xx statuses or other transport
    failures.
    """
    headers = {"User-Agent": user_agent or DEFAULT_USER_AGENT, "Accept": ACCEPT_HEADER}
    http = session or requests.Session()
    deadline = time.monotonic() + timeout
    state = _Download()
    logger.info("Fetching %s", url)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="story-fetch")
    future = executor.submit(_download, http, url, headers, timeout, deadline, state)
    try:
        return future.result(timeout=max(deadline - time.monotonic(), 0.0))
    except FetchTimeoutError:
        raise
    except FutureTimeout:
        logger.error("Fetch of %s exceeded the %ss deadline", url, timeout)
        state.abort()
        raise FetchTimeoutError(url, timeout) from None
    finally:
        # A worker still in connect() ends after its own socket timeout.
        executor.shutdown(wait=False)
        if session is None:
            future.add_done_callback(lambda _: http.close())
