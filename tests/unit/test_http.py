"""Tests for HTTP access and retries."""

import pytest
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import requests

from conftest import make_response
from mdproviders.data.http import Fetcher, last_modified, retry_call
from mdproviders.data.models import TransportError

URL = "https://example.com/data/file.zip"


class TestFetcher:
    """Test Fetcher functionality."""

    def test_default_session_user_agent(self):
        """Test that a default session identifies the client."""
        fetcher = Fetcher("Vendor")

        assert isinstance(fetcher.session, requests.Session)
        assert fetcher.session.headers["User-Agent"].startswith("mdproviders/")
        fetcher.close()

    def test_fetch_reads_whole_body(self, fetcher, fake_session):
        """Test that a body streamed in small chunks is reassembled."""
        body = b"0123456789" * 5
        fake_session.routes[URL] = make_response(body)

        assert fetcher.fetch(URL) == body
        assert fetcher.request_count == 1
        assert fake_session.calls == [URL]

    def test_iter_chunks(self, fetcher, fake_session):
        """Test chunked streaming."""
        fake_session.routes[URL] = make_response(b"abcdefghij")

        assert list(fetcher.iter_chunks(URL)) == [b"abcdefg", b"hij"]

    def test_iter_chunks_is_lazy(self, fetcher, fake_session):
        """Test that no request is sent before iteration starts."""
        fake_session.routes[URL] = make_response(b"abc")

        chunks = fetcher.iter_chunks(URL)
        assert fake_session.calls == []
        next(chunks)
        assert fake_session.calls == [URL]

    def test_iter_chunks_closes_response(self, fetcher, fake_session):
        """Test that discarding the iterator releases the connection."""
        response = make_response(b"abcdefghijklmn")
        fake_session.routes[URL] = response

        chunks = fetcher.iter_chunks(URL)
        next(chunks)
        chunks.close()

        response.__exit__.assert_called_once()

    def test_http_error_status(self, fetcher):
        """Test the message of a server error."""
        with pytest.raises(TransportError) as exc_info:
            fetcher.fetch(URL)

        message = str(exc_info.value)
        assert message.startswith("There was an error while attempting to contact Test vendor servers")
        assert "Server error (HTTP 404: Not Found)." in message
        assert exc_info.value.status_code == 404
        assert not exc_info.value.transient

    def test_http_error_closes_response(self, fetcher, fake_session):
        """Test that a failed response is closed before raising."""
        response = make_response(b"", 500, "Internal Server Error")
        fake_session.routes[URL] = response

        with pytest.raises(TransportError):
            fetcher.open(URL)
        response.close.assert_called_once()

    def test_connection_error(self, fetcher, fake_session):
        """Test that request exceptions are wrapped."""
        fake_session.routes[URL] = requests.ConnectionError("connection refused")

        with pytest.raises(TransportError, match="connection refused") as exc_info:
            fetcher.fetch(URL)
        assert exc_info.value.status_code is None

    def test_error_while_reading_body(self, fetcher, fake_session):
        """Test that a broken stream is a transport error."""
        response = make_response(b"")
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError("broken")
        fake_session.routes[URL] = response

        with pytest.raises(TransportError, match="broken"):
            fetcher.fetch(URL)

    def test_close(self, fetcher, fake_session):
        """Test that closing the fetcher closes the session."""
        fetcher.close()
        assert fake_session.closed


class TestLastModified:
    """Test Last-Modified header parsing."""

    def test_valid_header(self):
        """Test an RFC 1123 date."""
        response = make_response(headers={"Last-Modified": "Mon, 31 Jan 2011 10:00:00 GMT"})

        assert last_modified(response) == datetime(2011, 1, 31, 10, 0, tzinfo=timezone.utc)

    def test_missing_header(self):
        """Test a response without the header."""
        assert last_modified(make_response()) is None

    def test_invalid_header(self):
        """Test an unparseable header."""
        response = make_response(headers={"Last-Modified": "yesterday"})
        assert last_modified(response) is None


class TestRetryCall:
    """Test retry_call functionality."""

    def test_success_first_time(self):
        """Test a call that succeeds immediately."""
        func = Mock(return_value=b"data")

        assert retry_call(func, attempts=3, delay=0) == b"data"
        func.assert_called_once()

    def test_success_after_failures(self):
        """Test a call that recovers before running out of attempts."""
        func = Mock(side_effect=[TransportError("down"), TransportError("down"), b"data"])

        assert retry_call(func, attempts=3, delay=0) == b"data"
        assert func.call_count == 3

    def test_too_many_failures(self):
        """Test that the last error is wrapped once attempts are exhausted."""
        func = Mock(side_effect=TransportError("down"))

        with pytest.raises(TransportError, match="Too many failed attempts"):
            retry_call(func, attempts=2, delay=0)
        assert func.call_count == 3

    def test_client_error_status_not_retried(self):
        """Test that a missing resource fails on the first attempt."""
        func = Mock(side_effect=TransportError("not found", 404))

        with pytest.raises(TransportError, match="not found") as exc_info:
            retry_call(func, attempts=5, delay=0)
        func.assert_called_once()
        assert exc_info.value.status_code == 404

    def test_server_error_status_retried(self):
        """Test that 5xx answers are retried."""
        func = Mock(side_effect=[TransportError("unavailable", 503), b"data"])

        assert retry_call(func, attempts=3, delay=0) == b"data"
        assert func.call_count == 2

    def test_exhausted_keeps_status(self):
        """Test that the final error carries the last status code."""
        func = Mock(side_effect=TransportError("bad gateway", 502))

        with pytest.raises(TransportError, match="Too many failed attempts") as exc_info:
            retry_call(func, attempts=1, delay=0)
        assert exc_info.value.status_code == 502

    def test_other_errors_not_retried(self):
        """Test that only transport errors are retried."""
        func = Mock(side_effect=ValueError("bad"))

        with pytest.raises(ValueError):
            retry_call(func, attempts=5, delay=0)
        func.assert_called_once()

    @patch("mdproviders.data.http.time.sleep")
    def test_delay_between_attempts(self, mock_sleep):
        """Test the wait between attempts."""
        func = Mock(side_effect=[TransportError("down"), b"data"])

        retry_call(func, attempts=1, delay=2.5)

        mock_sleep.assert_called_once_with(2.5)

    @patch("mdproviders.data.http.time.sleep")
    @patch("mdproviders.data.http.settings")
    def test_defaults_from_settings(self, mock_settings, mock_sleep):
        """Test that the policy defaults come from settings."""
        mock_settings.retry_attempts = 1
        mock_settings.retry_delay = 0.5
        func = Mock(side_effect=TransportError("down"))

        with pytest.raises(TransportError):
            retry_call(func)

        assert func.call_count == 2
        mock_sleep.assert_called_once_with(0.5)
