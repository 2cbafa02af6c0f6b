"""Cached queries over the VoiceHub API, one factory per dashboard view.

A ``Query`` binds an endpoint to a cache key. ``fetch()`` serves a fresh
cache entry without touching the network, otherwise requests the endpoint
with retries (exponential backoff capped at 30s) and reports the outcome as a
``QueryState``. Each fetch also evicts cache entries left unused past their
``gc_time``. ``poll()`` refetches on ``refetch_interval``.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from voicehub.client.api import ApiClientError, VoiceHubClient
from voicehub.client.query_cache import DEFAULT_GC_TIME, QueryCache, QueryKey

logger = logging.getLogger(__name__)

_MISSING = object()

DEFAULT_RETRY = 3
MAX_RETRY_DELAY = 30.0

SECOND = 1
MINUTE = 60 * SECOND


class QueryStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class QueryState:
    status: QueryStatus
    data: Any = None
    error: Exception | None = None
    from_cache: bool = False

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.SUCCESS


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, ApiClientError):
        return exc.is_retryable
    return isinstance(exc, httpx.TransportError)


def default_retry_wait() -> wait_base:
    return wait_exponential(multiplier=1, min=1, max=MAX_RETRY_DELAY)


class Query:
    def __init__(
        self,
        client: VoiceHubClient,
        cache: QueryCache,
        key: QueryKey,
        path: str,
        params: dict[str, Any] | None = None,
        stale_time: float = 0,
        gc_time: float = DEFAULT_GC_TIME,
        refetch_interval: float | None = None,
        retry: int = DEFAULT_RETRY,
        retry_wait: wait_base | None = None,
        enabled: bool = True,
    ) -> None:
        self.client = client
        self.cache = cache
        self.key = key
        self.path = path
        self.params = params
        self.stale_time = stale_time
        self.gc_time = gc_time
        self.refetch_interval = refetch_interval
        self.retry = retry
        self.retry_wait = retry_wait or default_retry_wait()
        self.enabled = enabled
        self.state = QueryState(QueryStatus.IDLE)

    async def fetch(self, force: bool = False) -> QueryState:
        if not self.enabled:
            return self.state

        self.cache.gc()
        if not force:
            cached = self.cache.get_fresh(self.key, self.stale_time, default=_MISSING)
            if cached is not _MISSING:
                self.state = QueryState(QueryStatus.SUCCESS, data=cached, from_cache=True)
                return self.state

        # Keep showing the previous data while a refetch is in flight
        self.state = QueryState(QueryStatus.LOADING, data=self.cache.get(self.key))
        try:
            data = await self._request()
        except (ApiClientError, httpx.HTTPError) as exc:
            logger.warning("Query %r failed: %s", self.key, exc)
            self.state = QueryState(QueryStatus.ERROR, data=self.state.data, error=exc)
            return self.state

        self.cache.put(self.key, data, gc_time=self.gc_time)
        self.state = QueryState(QueryStatus.SUCCESS, data=data)
        return self.state

    async def _request(self) -> Any:
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self.retry + 1),
            wait=self.retry_wait,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self.client.get(self.path, params=self.params)
        return None

    async def poll(self, max_polls: int | None = None) -> AsyncIterator[QueryState]:
        """Yield a state per refetch, sleeping ``refetch_interval`` between them."""
        if self.refetch_interval is None:
            raise ValueError("Query has no refetch_interval")
        polls = 0
        while max_polls is None or polls < max_polls:
            yield await self.fetch(force=polls > 0)
            polls += 1
            if max_polls is not None and polls >= max_polls:
                break
            await asyncio.sleep(self.refetch_interval)

    def invalidate(self) -> None:
        self.cache.invalidate(self.key)


# ── Query keys ────────────────────────────────────────────────

def conversations_key(workspace_slug: str, *filters: Hashable) -> QueryKey:
    return ("conversations", workspace_slug, *filters)


def subscription_key(workspace_slug: str) -> QueryKey:
    return ("workspace-subscription", workspace_slug)


def subscription_plans_key(workspace_slug: str) -> QueryKey:
    return ("workspace-subscription", workspace_slug, "plans")


# ── Workspace queries ─────────────────────────────────────────

def use_conversations(
    client: VoiceHubClient,
    cache: QueryCache,
    workspace_slug: str,
    page: int = 1,
    page_size: int = 20,
    **filters: Any,
) -> Query:
    params = {"page": page, "pageSize": page_size, **filters}
    return Query(
        client,
        cache,
        key=conversations_key(workspace_slug, page, page_size, *sorted(filters.items())),
        path=f"/api/w/{workspace_slug}/conversations",
        params=params,
        stale_time=60 * SECOND,
        gc_time=5 * MINUTE,
        refetch_interval=30 * SECOND,
        enabled=bool(workspace_slug),
    )


def use_workspace_agents(client: VoiceHubClient, cache: QueryCache, workspace_slug: str) -> Query:
    return Query(
        client,
        cache,
        key=("workspace-agents", workspace_slug),
        path=f"/api/w/{workspace_slug}/agents",
        stale_time=15 * SECOND,
        refetch_interval=30 * SECOND,
        enabled=bool(workspace_slug),
    )


def use_workspace_limits(client: VoiceHubClient, cache: QueryCache, workspace_slug: str) -> Query:
    return Query(
        client,
        cache,
        key=("workspace-limits", workspace_slug),
        path=f"/api/w/{workspace_slug}/limits",
        stale_time=30 * SECOND,
        enabled=bool(workspace_slug),
    )


def use_voices(
    client: VoiceHubClient, cache: QueryCache, workspace_slug: str, provider: str = "vapi"
) -> Query:
    return Query(
        client,
        cache,
        key=("voices", workspace_slug, provider),
        path=f"/api/w/{workspace_slug}/voices",
        params={"provider": provider},
        stale_time=10 * MINUTE,
        gc_time=30 * MINUTE,
        enabled=bool(workspace_slug),
    )


def use_workspace_subscription(
    client: VoiceHubClient, cache: QueryCache, workspace_slug: str
) -> Query:
    return Query(
        client,
        cache,
        key=subscription_key(workspace_slug),
        path=f"/api/w/{workspace_slug}/subscription",
        stale_time=60 * SECOND,
        enabled=bool(workspace_slug),
    )


def use_subscription_plans(
    client: VoiceHubClient, cache: QueryCache, workspace_slug: str
) -> Query:
    return Query(
        client,
        cache,
        key=subscription_plans_key(workspace_slug),
        path=f"/api/w/{workspace_slug}/subscription/plans",
        stale_time=5 * MINUTE,
        gc_time=10 * MINUTE,
        enabled=bool(workspace_slug),
    )


# ── Public and admin queries ──────────────────────────────────

def use_white_label_plans(client: VoiceHubClient, cache: QueryCache) -> Query:
    return Query(
        client,
        cache,
        key=("white-label-plans",),
        path="/api/public/white-label-plans",
        stale_time=5 * MINUTE,
    )


def use_partner_workspaces(
    client: VoiceHubClient,
    cache: QueryCache,
    partner_id: str,
    page: int = 1,
    page_size: int = 20,
) -> Query:
    """Super-admin view of one partner's workspaces."""
    return Query(
        client,
        cache,
        key=("super-admin-partner-workspaces", partner_id, page, page_size),
        path=f"/api/super-admin/partners/{partner_id}/workspaces",
        params={"page": page, "pageSize": page_size},
        stale_time=30 * SECOND,
        enabled=bool(partner_id),
    )


# ── Mutations ─────────────────────────────────────────────────

async def subscribe_to_plan(
    client: VoiceHubClient, cache: QueryCache, workspace_slug: str, plan_id: str
) -> Any:
    result = await client.post(f"/api/w/{workspace_slug}/subscription", json={"planId": plan_id})
    # Drops both the subscription and the plans entries
    cache.invalidate(subscription_key(workspace_slug))
    cache.invalidate(("workspace-limits", workspace_slug))
    return result


async def cancel_subscription(client: VoiceHubClient, cache: QueryCache, workspace_slug: str) -> Any:
    result = await client.delete(f"/api/w/{workspace_slug}/subscription")
    cache.invalidate(subscription_key(workspace_slug))
    return result
