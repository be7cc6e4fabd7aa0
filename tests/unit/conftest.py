"""Shared fixtures for unit tests."""

import io
import zipfile
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

from mdproviders.data.http import Fetcher


def make_response(
    body: bytes = b"",
    status_code: int = 200,
    reason: str = "OK",
    headers: Optional[Dict[str, str]] = None,
) -> MagicMock:
    """Build a streaming response double."""
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.headers = CaseInsensitiveDict(headers or {})
    response.iter_content.side_effect = lambda chunk_size=1: iter(
        [body[i:i + chunk_size] for i in range(0, len(body), chunk_size)]
    )
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


class FakeSession:
    """Session double serving canned responses by URL.

    A route is a response, an exception to raise, or a list of those
    answered in turn.
    """

    def __init__(self, routes: Optional[Dict[str, object]] = None):
        self.routes = routes or {}
        self.calls: List[str] = []
        self.headers: Dict[str, str] = {}
        self.closed = False

    def get(self, url, stream=False, timeout=None):
        self.calls.append(url)
        route = self.routes.get(url)
        if isinstance(route, list):
            # Successive answers, the last one repeats
            route = route.pop(0) if len(route) > 1 else route[0]
        if route is None:
            return make_response(b"", 404, "Not Found")
        if isinstance(route, Exception):
            raise route
        return route

    def close(self):
        self.closed = True


def make_zip(entries: Dict[str, str]) -> bytes:
    """Build an in-memory ZIP archive from name -> text entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, text in entries.items():
            archive.writestr(name, text.encode("ascii"))
    return buffer.getvalue()


def meff_line(
    session_date: str,
    contract_code: str,
    settle: str = "9,125400",
    cfi_code: str = "ESXXXA",
    group: str = "C2",
) -> str:
    """Current format MEFF row with a configurable key and settlement price."""
    return (
        f'"{session_date}";"{group}";"{contract_code}";"12";"{cfi_code}";0,000000;'
        f'"20301231";6,789500;9,147000;12,254200;1,874500;9,125400;{settle};0;1,00;0;0;0'
    )


def meff_legacy_line(session_date: str, contract_code: str, settle: str = "34.44") -> str:
    """Legacy format MEFF row with a configurable key and settlement price."""
    return (
        f"{session_date},AAB ,F,040702,    0.00,{contract_code:<11},    0.00,    0.00,"
        f"    0.00,    0.00,    0.00,       0,{settle:>8},           0, 15.75,"
    )


@pytest.fixture
def fake_session():
    """Empty FakeSession; tests register routes on it."""
    return FakeSession()


@pytest.fixture
def fetcher(fake_session):
    """Fetcher bound to the fake session."""
    return Fetcher("Test vendor", session=fake_session, timeout=5, chunk_size=7)
