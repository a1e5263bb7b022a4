"""Async HTTP client for source APIs with retries, throttling and response caching."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from fleetrecon.config.storage import get_http_cache_path

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping
    from types import TracebackType

    from httpx._types import QueryParamTypes, RequestData, TimeoutTypes

    from fleetrecon.config.http_resilience import (
        CacheConfig,
        ResilienceConfig,
        RetryPolicy,
        ShouldCacheHook,
    )

    type ResponseHook = Callable[[httpx.Response], Awaitable[None]]

log = getLogger(__name__)


class _ClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: dict[str, str]
    event_hooks: dict[str, list[ResponseHook]]
    transport: httpx.AsyncBaseTransport


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        backoff_jitter=policy.backoff_jitter,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


class ResilientClient:
    """One client session against a source API.

    Every request passes the rate limiter, then the retry transport. Responses
    the cache predicate accepts are stored and served until their TTL runs out.
    ``transport`` replaces the network layer underneath the retries.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )

        options: _ClientOptions = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(transport=transport, retry=build_retry(config.retry)),
            "event_hooks": {"response": [self._log_response]},
        }
        if config.base_url is not None:
            options["base_url"] = config.base_url
        if config.headers:
            options["headers"] = dict(config.headers)

        storage = _cache_storage(config.cache)
        if storage is None:
            self._client = httpx.AsyncClient(**options)
        else:
            self._client = AsyncCacheClient(
                **options, storage=storage, policy=_cache_policy(config.cache)
            )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(
        self,
        url: str,
        *,
        params: QueryParamTypes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        async with self._throttle():
            return await self._client.get(url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        *,
        data: RequestData | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        async with self._throttle():
            return await self._client.post(url, data=data, headers=headers)

    def _throttle(self) -> AsyncLimiter | _NoLimit:
        return self._limiter if self._limiter is not None else _NO_LIMIT

    async def _log_response(self, response: httpx.Response) -> None:
        request = response.request
        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            log.warning(
                "%s throttled on %s %s (retry after %s)",
                self.config.name,
                request.method,
                request.url.path,
                response.headers.get("Retry-After", "-"),
            )
            return
        log.debug(
            "%s %s %s -> %s",
            self.config.name,
            request.method,
            request.url.path,
            response.status_code,
        )


class _NoLimit:
    async def __aenter__(self) -> None:
        return None

    async def __aexit__(self, *exc_info: object) -> None:
        return None


_NO_LIMIT = _NoLimit()


class _JsonPayloadFilter(BaseFilter[HishelCacheResponse]):
    """Lets hishel store a response only when the predicate accepts its JSON body."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if not body:
            return False
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))


def _cache_storage(config: CacheConfig | None) -> AsyncSqliteStorage | None:
    if config is None or not config.enabled:
        return None
    match config.backend:
        case "sqlite":
            database_path = config.sqlite_path or str(get_http_cache_path())
        case "memory":
            database_path = ":memory:"
        case _:
            raise ValueError(f"Unsupported cache backend: {config.backend}")
    return AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.ttl_seconds,
        refresh_ttl_on_access=False,
    )


def _cache_policy(config: CacheConfig | None) -> FilterPolicy | None:
    if config is None or config.should_cache is None:
        return None
    return FilterPolicy(response_filters=[_JsonPayloadFilter(config.should_cache)])
