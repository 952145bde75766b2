"""Throttled, retrying HTTP client shared by the upstream service adapters."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import Retry, RetryTransport

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._client import UseClientDefault
    from httpx._types import HeaderTypes, RequestData, RequestFiles, TimeoutTypes

    from intakesync.config.http_resilience import ResilienceConfig, RetryPolicy

log = getLogger(__name__)


class PostOptions(TypedDict, total=False):
    json: object
    data: RequestData | None
    files: RequestFiles | None
    headers: HeaderTypes | None
    timeout: TimeoutTypes | UseClientDefault


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


def build_async_client(config: ResilienceConfig) -> httpx.AsyncClient:
    """``httpx.AsyncClient`` for ``config`` with the retrying transport mounted."""

    return httpx.AsyncClient(
        base_url=config.base_url or "",
        timeout=config.timeout_seconds,
        headers=dict(config.default_headers or {}),
        transport=RetryTransport(retry=build_retry(config.retry)),
    )


class ResilientClient:
    """POST client for one upstream service.

    Calls wait for a slot of ``config.ratelimit`` (when set) and are retried by the
    transport on transient failures. Pass ``client`` to supply a preconfigured
    ``httpx.AsyncClient``; it is closed together with this client.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )
        self._client = client if client is not None else build_async_client(config)

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

    async def post(self, url: str, **kwargs: Unpack[PostOptions]) -> httpx.Response:
        started = time.perf_counter()
        if self._limiter is None:
            response = await self._client.post(url, **kwargs)
        else:
            async with self._limiter:
                response = await self._client.post(url, **kwargs)
        log.debug(
            "%s POST %s -> %s in %.0f ms",
            self.config.name,
            url,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response
