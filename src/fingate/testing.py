"""Test scaffolding for fingate integrations.

Provides :func:`patch_retry_sleep`, :class:`FakeApiBuilder` (a fluent fake
upstream API on top of ``httpx.MockTransport``) and :class:`FakePrompter`.
"""

from __future__ import annotations

import json
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Generator
from unittest.mock import AsyncMock, patch
from urllib.parse import urlsplit

import httpx


@contextmanager
def patch_retry_sleep() -> Generator[AsyncMock, None, None]:
    """Suppress ``asyncio.sleep`` delays inside ``@with_retry`` decorated functions.

    Yields:
        The :class:`~unittest.mock.AsyncMock` replacing ``asyncio.sleep``, in case
        you want to assert on call count or arguments.
    """
    with patch("fingate.http.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


def _route_key(method: str, url: str) -> tuple[str, str]:
    parts = urlsplit(url)
    return method.upper(), f"{parts.scheme}://{parts.netloc}{parts.path}"


class FakeApiBuilder:
    """Fluent builder for a fake upstream HTTP API.

    Routes match on method and URL without the query string. Each route holds
    a queue of responses served in order; the last one repeats once the queue
    is drained. Unknown routes answer 404.

    Usage::

        api = (
            FakeApiBuilder()
            .with_json("GET", "https://api.example.com/accounts", {"accounts": []})
            .with_response("GET", "https://api.example.com/slow", 429, headers={"Retry-After": "30"})
        )
        async with api.build() as http:
            ...
        assert api.call_count("GET", "https://api.example.com/accounts") == 1
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list[Any]] = defaultdict(list)
        self.requests: list[httpx.Request] = []

    def with_response(
        self,
        method: str,
        url: str,
        status_code: int = 200,
        *,
        json_body: Any = None,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> "FakeApiBuilder":
        self._routes[_route_key(method, url)].append(
            {"status_code": status_code, "json": json_body, "text": text, "headers": headers or {}}
        )
        return self

    def with_json(self, method: str, url: str, body: Any, status_code: int = 200) -> "FakeApiBuilder":
        return self.with_response(method, url, status_code, json_body=body)

    def with_exception(self, method: str, url: str, exc: Exception) -> "FakeApiBuilder":
        """Make the route raise ``exc`` (e.g. ``httpx.ConnectTimeout``) instead of answering."""
        self._routes[_route_key(method, url)].append(exc)
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get(_route_key(request.method, str(request.url)))
        if not queue:
            return httpx.Response(404, json={"message": "not found"}, request=request)
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(entry, Exception):
            raise entry
        headers = dict(entry["headers"])
        if entry["json"] is not None:
            headers.setdefault("content-type", "application/json")
            content = json.dumps(entry["json"]).encode()
        else:
            content = (entry["text"] or "").encode()
        return httpx.Response(entry["status_code"], headers=headers, content=content, request=request)

    def build(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        key = _route_key(method, url)
        return [r for r in self.requests if _route_key(r.method, str(r.url)) == key]

    def call_count(self, method: str, url: str) -> int:
        return len(self.calls(method, url))


class FakePrompter:
    """In-memory ``Prompter``: records notes and opened URLs, answers prompts from a queue."""

    def __init__(self, answers: list[str] | None = None, *, open_url_error: Exception | None = None) -> None:
        self.answers = list(answers or [])
        self.notes: list[tuple[str, str | None]] = []
        self.opened: list[str] = []
        self.prompts: list[str] = []
        self._open_url_error = open_url_error

    async def open_url(self, url: str) -> None:
        self.opened.append(url)
        if self._open_url_error is not None:
            raise self._open_url_error

    async def note(self, message: str, title: str | None = None) -> None:
        self.notes.append((message, title))

    async def prompt_text(self, label: str) -> str:
        self.prompts.append(label)
        return self.answers.pop(0) if self.answers else ""
