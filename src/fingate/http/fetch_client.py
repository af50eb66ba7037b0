"""Resilient, schema-validated HTTP fetch client.

``ResilientFetchClient`` wraps a pooled ``httpx.AsyncClient`` with:

- a hard per-attempt timeout that cancels the in-flight request,
- retry with exponential backoff and jitter for 429/5xx responses, honouring
  ``Retry-After`` hints, and for timeouts/transport failures on GET requests,
- schema validation of JSON bodies through pydantic, so upstream contract
  drift surfaces as ``SchemaMismatchError`` instead of corrupt data,
- a raw-text variant for report downloads where 404 means "still processing".

Each request carries a fresh ``X-Request-ID`` correlation id.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from functools import lru_cache
from typing import Any, Callable, TypeVar
from urllib.parse import urlsplit

import httpx
from pydantic import TypeAdapter, ValidationError

from ..core.exceptions import (
    HttpError,
    NetworkError,
    ReportNotReadyError,
    RequestTimeoutError,
    SchemaMismatchError,
)
from ..core.logging import get_logger
from .retry import RetryableError, RetryConfig, with_retry

T = TypeVar("T")

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Request-ID"
_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD"})


def new_correlation_id() -> str:
    """Return a random correlation id for request tracing."""
    return str(uuid.uuid4())


@lru_cache(maxsize=128)
def schema_adapter(schema: Any) -> TypeAdapter:
    """Return the cached ``TypeAdapter`` for ``schema``."""
    return TypeAdapter(schema)


def _parse_body(resp: httpx.Response) -> Any:
    content_type = resp.headers.get("content-type", "")
    try:
        return resp.json() if "json" in content_type else resp.text
    except (ValueError, UnicodeDecodeError):
        return resp.text


class ResilientFetchClient:
    """HTTP client for one upstream API.

    Args:
        base_url: Prefix for relative endpoints. Absolute URLs bypass it.
        http: Shared ``httpx.AsyncClient``.
        timeout: Seconds allowed per attempt.
        retry: Backoff policy applied to retryable failures.
        on_unauthorized: Called when any request receives HTTP 401, before the
            error propagates. Provider wiring uses it to drop the cached token.
        provider: Name used in log records.
        rate_limit_delay: Delay in seconds applied to a 429 that carries no
            usable ``Retry-After`` header. ``None`` falls back to backoff.
    """

    def __init__(
        self,
        *,
        base_url: str,
        http: httpx.AsyncClient,
        timeout: float = 15.0,
        retry: RetryConfig | None = None,
        on_unauthorized: Callable[[], None] | None = None,
        provider: str = "api",
        rate_limit_delay: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http
        self._timeout = float(timeout)
        self._retry = retry or RetryConfig()
        self._on_unauthorized = on_unauthorized
        self._provider = provider
        self._rate_limit_delay = rate_limit_delay

    @property
    def base_url(self) -> str:
        return self._base_url

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self._base_url}/{endpoint.lstrip('/')}"

    async def _send(
        self,
        method: str,
        url: str,
        *,
        token: str | None,
        headers: dict[str, str] | None,
        params: dict[str, Any] | None,
        json_body: Any,
        form: dict[str, str] | None,
        accept: str,
    ) -> httpx.Response:
        """Issue one attempt, bounded by the client timeout."""
        correlation_id = new_correlation_id()
        request_headers = {"Accept": accept, CORRELATION_HEADER: correlation_id}
        if token:
            request_headers["Authorization"] = f"Bearer {token}"
        if headers:
            request_headers.update(headers)

        logger.debug(
            "fetch request",
            extra={
                "provider": self._provider,
                "method": method,
                "path": urlsplit(url).path,
                "correlation_id": correlation_id,
            },
        )
        try:
            resp = await asyncio.wait_for(
                self._http.request(
                    method,
                    url,
                    headers=request_headers,
                    params=params,
                    json=json_body,
                    data=form,
                    timeout=self._timeout,
                ),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(
                "fetch timeout",
                extra={"provider": self._provider, "method": method, "correlation_id": correlation_id},
            )
            raise RequestTimeoutError(url, self._timeout) from e
        except httpx.TransportError as e:
            raise NetworkError(url, type(e).__name__) from e

        if resp.status_code >= 400:
            logger.warning(
                "fetch error status",
                extra={
                    "provider": self._provider,
                    "method": method,
                    "path": urlsplit(url).path,
                    "status": resp.status_code,
                    "correlation_id": correlation_id,
                },
            )
            if resp.status_code == 401 and self._on_unauthorized is not None:
                self._on_unauthorized()
        return resp

    async def _execute(
        self,
        method: str,
        url: str,
        handle: Callable[[httpx.Response], T],
        *,
        token: str | None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        form: dict[str, str] | None = None,
        accept: str = "application/json",
        retryable: bool = True,
    ) -> T:
        method = method.upper()
        idempotent = method in _IDEMPOTENT_METHODS
        config = self._retry if retryable else RetryConfig(max_retries=0)

        @with_retry(config)
        async def _attempt() -> T:
            try:
                resp = await self._send(
                    method,
                    url,
                    token=token,
                    headers=headers,
                    params=params,
                    json_body=json_body,
                    form=form,
                    accept=accept,
                )
                return handle(resp)
            except HttpError as e:
                if e.is_retryable:
                    retry_after = e.retry_after
                    if retry_after is None and e.status_code == 429:
                        retry_after = self._rate_limit_delay
                    raise RetryableError(str(e), retry_after=retry_after) from e
                raise
            except (RequestTimeoutError, NetworkError) as e:
                if idempotent:
                    raise RetryableError(str(e)) from e
                raise

        return await _attempt()

    async def request(
        self,
        endpoint: str,
        token: str | None,
        schema: type[T] | Any,
        *,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        form: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        retryable: bool = True,
    ) -> T:
        """Fetch ``endpoint`` and validate the JSON body against ``schema``.

        ``schema`` is anything pydantic's ``TypeAdapter`` accepts: a model
        class, ``list[Model]``, a ``TypedDict``.

        Raises:
            RequestTimeoutError: The last attempt exceeded the timeout.
            NetworkError: The transport failed before a response arrived.
            HttpError: Non-success status (after retries for 429/5xx).
            SchemaMismatchError: The body is not JSON or does not match ``schema``.
        """
        url = self._build_url(endpoint)
        adapter = schema_adapter(schema)

        def _handle(resp: httpx.Response) -> T:
            if resp.status_code >= 400:
                raise HttpError(resp.status_code, url, body=_parse_body(resp), headers=dict(resp.headers))
            try:
                payload = resp.json()
            except (ValueError, UnicodeDecodeError) as e:
                raise SchemaMismatchError(url, f"body is not valid JSON ({e})") from e
            try:
                return adapter.validate_python(payload)
            except ValidationError as e:
                logger.error(
                    "Response failed schema validation",
                    extra={"provider": self._provider, "path": urlsplit(url).path, "errors": e.error_count()},
                )
                raise SchemaMismatchError(url, _summarize_validation_error(e)) from e

        return await self._execute(
            method,
            url,
            _handle,
            token=token,
            headers=headers,
            params=params,
            json_body=json_body,
            form=form,
            retryable=retryable,
        )

    async def request_raw(
        self,
        endpoint: str,
        token: str | None,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        """Fetch ``endpoint`` as text without schema validation.

        Intended for generated-report downloads: HTTP 404 is classified as
        ``ReportNotReadyError`` and is never retried here; report polling owns
        that wait.
        """
        url = self._build_url(endpoint)

        def _handle(resp: httpx.Response) -> str:
            if resp.status_code == 404:
                raise ReportNotReadyError(url, body=_parse_body(resp), headers=dict(resp.headers))
            if resp.status_code >= 400:
                raise HttpError(resp.status_code, url, body=_parse_body(resp), headers=dict(resp.headers))
            return resp.text

        return await self._execute(
            "GET",
            url,
            _handle,
            token=token,
            headers=headers,
            params=params,
            accept="text/csv, text/plain, */*",
        )


def _summarize_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors()[:5]:
        loc = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    if error.error_count() > 5:
        parts.append(f"... {error.error_count() - 5} more")
    return json.dumps(parts)
