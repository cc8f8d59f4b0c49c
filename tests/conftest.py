from __future__ import annotations

from typing import Self

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers


class FakeResponse:
    """Stand-in for ``requests.Response`` that decodes ``text`` the way requests does."""

    def __init__(
        self,
        body: str | bytes = "",
        status_code: int = 200,
        reason: str = "OK",
        headers: dict[str, str] | None = None,
        apparent_encoding: str | None = "utf-8",
    ) -> None:
        self.content = body.encode("utf-8") if isinstance(body, str) else body
        self.status_code = status_code
        self.reason = reason
        self.headers = CaseInsensitiveDict(headers or {})
        self.apparent_encoding = apparent_encoding

    @property
    def ok(self) -> bool:
        return self.status_code < 400  # noqa: PLR2004

    @property
    def encoding(self) -> str | None:
        return get_encoding_from_headers(self.headers)

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or self.apparent_encoding or "utf-8", errors="replace")


class FakeSession:
    """Stand-in for ``requests.Session`` serving canned responses by URL.

    Values may be a body string (200), a ``(status, body)`` tuple, a
    :class:`FakeResponse`, or an exception instance to raise. Unknown URLs
    answer 404.
    """

    def __init__(self, pages: dict[str, str | tuple[int, str] | FakeResponse | Exception]) -> None:
        self.pages = pages
        self.requested: list[str] = []
        self.closed = False

    def get(self, url: str) -> FakeResponse:
        self.requested.append(url)
        value = self.pages.get(url)
        if value is None:
            return FakeResponse("", 404, "Not Found")
        if isinstance(value, Exception):
            raise value
        if isinstance(value, FakeResponse):
            return value
        if isinstance(value, tuple):
            status, body = value
            return FakeResponse(body, status, "Forbidden" if status == 403 else "Error")  # noqa: PLR2004
        return FakeResponse(value)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


@pytest.fixture
def fake_session() -> type[FakeSession]:
    return FakeSession


@pytest.fixture
def fake_response() -> type[FakeResponse]:
    return FakeResponse


@pytest.fixture
def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("connection refused")


@pytest.fixture
def fixed_clock() -> str:
    return "2026-01-02T03:04:05+00:00"
