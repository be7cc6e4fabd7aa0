"""
HTTP access to vendor servers.
"""

import logging
import time
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Callable, Iterator, Optional, TypeVar

import requests

from ..config import settings
from .models import TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Fetcher:
    """Issues GET requests against one vendor and surfaces failures as TransportError."""

    def __init__(
        self,
        vendor: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        chunk_size: Optional[int] = None,
    ):
        """
        Initialize fetcher.

        Args:
            vendor: Human readable vendor name used in error messages
            session: HTTP session to use, a new one is created if omitted
            timeout: Request timeout in seconds
            chunk_size: Size of the chunks read from response bodies
        """
        self.vendor = vendor
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.chunk_size = chunk_size or settings.http_chunk_size
        self.request_count = 0

        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = settings.http_user_agent
        self.session = session

    def _error(self, cause: object, status_code: Optional[int] = None) -> TransportError:
        return TransportError(
            f"There was an error while attempting to contact {self.vendor} servers: {cause}",
            status_code,
        )

    def open(self, url: str) -> requests.Response:
        """
        Send the request and check the status without reading the body.

        The caller owns the returned response and must close it.

        Args:
            url: Absolute URL

        Returns:
            Streaming response with a successful status
        """
        logger.info(f"request: {url}")
        self.request_count += 1

        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise self._error(e) from e

        if not 200 <= response.status_code < 300:
            response.close()
            message = f"Server error (HTTP {response.status_code}: {response.reason})."
            logger.error(f"{url}: {message}")
            raise self._error(message, response.status_code)

        return response

    def read_body(self, response: requests.Response) -> bytes:
        """Buffer the whole body of an opened response."""
        buffer = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if chunk:
                    buffer.extend(chunk)
        except requests.RequestException as e:
            raise self._error(e) from e
        return bytes(buffer)

    def fetch(self, url: str) -> bytes:
        """Download the full body of ``url``."""
        with self.open(url) as response:
            return self.read_body(response)

    def iter_chunks(self, url: str) -> Iterator[bytes]:
        """
        Stream the body of ``url`` chunk by chunk.

        The connection is opened when iteration starts and closed when the
        iterator is exhausted or discarded.
        """
        with self.open(url) as response:
            try:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        yield chunk
            except requests.RequestException as e:
                raise self._error(e) from e

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()


def last_modified(response: requests.Response) -> Optional[datetime]:
    """Parse the ``Last-Modified`` header as an aware datetime, if present."""
    header = response.headers.get("Last-Modified")
    if not header:
        return None
    try:
        return parsedate_to_datetime(header)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable Last-Modified header: {header!r}")
        return None


def retry_call(
    func: Callable[[], T],
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    description: str = "request",
) -> T:
    """
    Call ``func`` until it stops raising TransportError.

    Only transient failures (network errors, throttling and 5xx statuses)
    are retried. Any other status is raised on the first attempt.

    Args:
        func: Zero argument callable performing the network work
        attempts: Retries allowed after the first failure
        delay: Seconds to wait between attempts

    Returns:
        Whatever ``func`` returns
    """
    attempts = settings.retry_attempts if attempts is None else attempts
    delay = settings.retry_delay if delay is None else delay

    left = attempts
    while True:
        try:
            return func()
        except TransportError as e:
            if not e.transient:
                raise
            if left <= 0:
                raise TransportError(
                    f"Too many failed attempts to retrieve the data ({e})", e.status_code
                ) from e
            left -= 1
            logger.warning(
                f"Error during fetching attempt for {description} ({e}). "
                f"Retrying (left {left})..."
            )
            if delay > 0:
                time.sleep(delay)
