"""
RDAP Bootstrap Registry

Fetches and caches the IANA RDAP bootstrap files that map TLDs, IP ranges
and AS number ranges to their authoritative RDAP servers.

One slot is kept per registry type. A slot younger than the TTL is served
without touching the network. Once it expires the file is fetched again
(conditionally, when the previous response carried validators). If that
fetch fails, the previous copy is served anyway.
"""

import logging
import threading
import time
from dataclasses import dataclass, field

import httpx

from .cache import Clock
from .config import DEFAULT_BOOTSTRAP_TTL
from .errors import BootstrapUnavailable

logger = logging.getLogger(__name__)

# IANA bootstrap URLs
IANA_BOOTSTRAP_URLS = {
    "dns": "https://data.iana.org/rdap/dns.json",
    "ipv4": "https://data.iana.org/rdap/ipv4.json",
    "ipv6": "https://data.iana.org/rdap/ipv6.json",
    "asn": "https://data.iana.org/rdap/asn.json",
}

BOOTSTRAP_TYPES = tuple(IANA_BOOTSTRAP_URLS)


class BootstrapFormatError(ValueError):
    """The bootstrap file does not have the IANA layout."""


@dataclass(frozen=True)
class BootstrapService:
    """One registry entry: a set of keys served by an ordered list of servers."""

    keys: frozenset[str]
    servers: tuple[str, ...]


@dataclass(frozen=True)
class BootstrapDocument:
    """A parsed bootstrap file. Service order is kept as published."""

    services: tuple[BootstrapService, ...]
    version: str | None = None
    publication: str | None = None


@dataclass
class _Slot:
    document: BootstrapDocument
    fetched_at: float
    etag: str = ""
    last_modified: str = ""


def parse_bootstrap(data: dict) -> BootstrapDocument:
    """
    Parse the IANA bootstrap format.

    Bootstrap format:
    {
        "version": "1.0",
        "publication": "2024-01-01T00:00:00Z",
        "services": [
            [["com", "net"], ["https://rdap.verisign.com/com/v1/"]],
            [["1.0.0.0/8", "27.0.0.0/8"], ["https://rdap.apnic.net/"]],
            ...
        ]
    }
    """
    if not isinstance(data, dict):
        raise BootstrapFormatError("bootstrap root is not an object")

    raw_services = data.get("services")
    if not isinstance(raw_services, list):
        raise BootstrapFormatError("bootstrap has no services list")

    services = []
    for entry in raw_services:
        if not isinstance(entry, list) or len(entry) < 2:
            continue
        keys, servers = entry[0], entry[1]
        if not isinstance(keys, list) or not isinstance(servers, list):
            continue
        services.append(BootstrapService(
            keys=frozenset(str(k) for k in keys),
            servers=tuple(str(s) for s in servers),
        ))

    return BootstrapDocument(
        services=tuple(services),
        version=data.get("version"),
        publication=data.get("publication"),
    )


class BootstrapRegistry:
    """Per-type bootstrap cache with stale-on-error fallback."""

    def __init__(self, ttl: float = DEFAULT_BOOTSTRAP_TTL, clock: Clock = time.time) -> None:
        self._ttl = ttl
        self._clock = clock
        self._slots: dict[str, _Slot] = {}
        self._lock = threading.Lock()

    def _get_slot(self, resource_type: str) -> _Slot | None:
        with self._lock:
            return self._slots.get(resource_type)

    def _store(self, resource_type: str, slot: _Slot) -> None:
        with self._lock:
            self._slots[resource_type] = slot

    async def get(self, resource_type: str, client: httpx.AsyncClient) -> BootstrapDocument:
        """
        Return the bootstrap document for ``resource_type``.

        Raises BootstrapUnavailable if the fetch fails and nothing is cached.
        """
        if resource_type not in IANA_BOOTSTRAP_URLS:
            raise ValueError(f"Unknown bootstrap type: {resource_type}")

        slot = self._get_slot(resource_type)
        if slot and self._clock() - slot.fetched_at < self._ttl:
            return slot.document

        try:
            return await self._refresh(resource_type, client, slot)
        except (httpx.HTTPError, ValueError) as e:
            if slot:
                logger.warning(
                    "Bootstrap refresh for %s failed (%s); serving copy from %.0fs ago",
                    resource_type, e, self._clock() - slot.fetched_at,
                )
                return slot.document
            logger.error("Failed to fetch RDAP bootstrap for %s: %s", resource_type, e)
            raise BootstrapUnavailable(resource_type) from e

    async def _refresh(
        self, resource_type: str, client: httpx.AsyncClient, slot: _Slot | None
    ) -> BootstrapDocument:
        url = IANA_BOOTSTRAP_URLS[resource_type]

        # Build request headers for conditional GET
        headers = {"Accept": "application/json"}
        if slot:
            if slot.last_modified:
                headers["If-Modified-Since"] = slot.last_modified
            if slot.etag:
                headers["If-None-Match"] = slot.etag

        logger.debug("Fetching RDAP bootstrap %s", url)
        response = await client.get(url, headers=headers)

        if response.status_code == 304 and slot:
            # Not modified - restamp the existing document
            self._store(resource_type, _Slot(
                document=slot.document,
                fetched_at=self._clock(),
                etag=response.headers.get("ETag", slot.etag),
                last_modified=response.headers.get("Last-Modified", slot.last_modified),
            ))
            return slot.document

        if response.status_code != 200:
            raise httpx.HTTPStatusError(
                f"Bootstrap {url} returned {response.status_code}",
                request=response.request,
                response=response,
            )

        # json.JSONDecodeError is a ValueError
        document = parse_bootstrap(response.json())
        self._store(resource_type, _Slot(
            document=document,
            fetched_at=self._clock(),
            etag=response.headers.get("ETag", ""),
            last_modified=response.headers.get("Last-Modified", ""),
        ))
        logger.info("Loaded RDAP bootstrap %s (%d services)", resource_type, len(document.services))
        return document

    def snapshot(self) -> dict[str, dict]:
        """Describe the cached slots (for status reporting)."""
        now = self._clock()
        with self._lock:
            slots = dict(self._slots)

        status = {}
        for resource_type in BOOTSTRAP_TYPES:
            slot = slots.get(resource_type)
            if slot is None:
                status[resource_type] = {"cached": False}
                continue
            age = now - slot.fetched_at
            status[resource_type] = {
                "cached": True,
                "ageSeconds": round(age, 1),
                "expired": age >= self._ttl,
                "services": len(slot.document.services),
                "publication": slot.document.publication,
            }
        return status

    def clear(self) -> None:
        with self._lock:
            self._slots.clear()
