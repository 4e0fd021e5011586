"""
Lookup orchestration.

Sequence per request: response cache -> rate limit -> classify -> bootstrap
-> resolve server -> RDAP query -> cache store. Cache hits skip the rate
limiter entirely.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Mapping

import httpx

from .cache import ResponseCache
from .classify import QueryType
from .config import Settings, load_settings
from .errors import NoServerFound, RateLimitExceeded, ValidationError
from .limiter import RateLimiter, RateLimitInfo, client_id_from_headers, rate_limit_headers
from .rdap_bootstrap import BootstrapRegistry
from .rdap_client import RdapClient
from .resolver import ResolvedTarget, build_target, resolve_server

logger = logging.getLogger(__name__)

NOT_FOUND_LABELS = {
    QueryType.DOMAIN: "Domain",
    QueryType.ASN: "ASN",
    QueryType.IPV4: "IP address",
    QueryType.IPV6: "IP address",
}


@dataclass
class LookupResult:
    """RDAP payload plus the bookkeeping a front door turns into headers."""

    payload: dict
    cache_hit: bool
    rate: RateLimitInfo | None = None

    @property
    def headers(self) -> dict[str, str]:
        headers = {"X-Cache": "HIT" if self.cache_hit else "MISS"}
        if self.rate is not None:
            headers.update(rate_limit_headers(self.rate))
        return headers


def cache_key(query: str) -> str:
    return f"rdap:{query.lower()}"


def _normalize(query: str | None) -> str:
    normalized = (query or "").strip()
    if not normalized:
        raise ValidationError("Query parameter is required")
    return normalized


@dataclass
class LookupService:
    """
    Wires the stores together. Build one per process (or per test) and
    share it between requests.
    """

    settings: Settings = field(default_factory=Settings)
    cache: ResponseCache = field(default_factory=ResponseCache)
    limiter: RateLimiter = field(default_factory=RateLimiter)
    bootstrap: BootstrapRegistry | None = None
    http_client: httpx.AsyncClient | None = None

    def __post_init__(self) -> None:
        if self.bootstrap is None:
            self.bootstrap = BootstrapRegistry(ttl=self.settings.bootstrap_ttl)

    def _new_client(self) -> httpx.AsyncClient:
        kwargs = {"follow_redirects": True}
        if self.settings.http_timeout is not None:
            kwargs["timeout"] = httpx.Timeout(self.settings.http_timeout)
        return httpx.AsyncClient(**kwargs)

    async def _with_client(self, func):
        if self.http_client is not None:
            return await func(self.http_client)
        async with self._new_client() as client:
            return await func(client)

    async def _resolve_target(self, query: str, client: httpx.AsyncClient) -> ResolvedTarget:
        target = build_target(query)
        document = await self.bootstrap.get(target.query_type.bootstrap_type, client)
        server = resolve_server(target.query_type, target.normalized_query, document)
        if not server:
            raise NoServerFound(f"No RDAP server found for {target.describe()}")
        return replace(target, rdap_server=server)

    async def resolve(self, query: str | None) -> ResolvedTarget:
        """Find the authoritative server without querying it."""
        normalized = _normalize(query)
        return await self._with_client(lambda client: self._resolve_target(normalized, client))

    async def lookup(self, query: str | None, headers: Mapping[str, str] | None = None) -> LookupResult:
        """
        Run a full RDAP lookup.

        Raises ValidationError, RateLimitExceeded, NoServerFound, RdapNotFound,
        RdapUpstreamError, RdapTransportError or BootstrapUnavailable.
        """
        normalized = _normalize(query)
        key = cache_key(normalized)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return LookupResult(payload=cached, cache_hit=True)

        client_id = client_id_from_headers(headers)
        rate = self.limiter.check(client_id, self.settings.rate_limit, self.settings.rate_window)
        if not rate.allowed:
            logger.info("Rate limit exceeded for %s", client_id)
            raise RateLimitExceeded(rate)

        async def run(client: httpx.AsyncClient) -> tuple[dict, ResolvedTarget]:
            target = await self._resolve_target(normalized, client)
            data = await RdapClient(client).query(
                target.rdap_server,
                target.rdap_path,
                not_found_label=NOT_FOUND_LABELS[target.query_type],
            )
            return data, target

        data, target = await self._with_client(run)

        payload = {
            **data,
            "_queryType": target.query_type.value,
            "_query": normalized,
        }
        self.cache.set(key, payload, self.settings.response_ttl)
        return LookupResult(payload=payload, cache_hit=False, rate=rate)

    def lookup_sync(self, query: str | None, headers: Mapping[str, str] | None = None) -> LookupResult:
        """Synchronous wrapper for scripts and the CLI."""
        return asyncio.run(self.lookup(query, headers))


_default_service: LookupService | None = None
_default_lock = threading.Lock()


def get_default_service() -> LookupService:
    """Process-wide service, created on first use."""
    global _default_service
    with _default_lock:
        if _default_service is None:
            _default_service = LookupService(settings=load_settings())
        return _default_service


def reset_default_service() -> None:
    global _default_service
    with _default_lock:
        _default_service = None
