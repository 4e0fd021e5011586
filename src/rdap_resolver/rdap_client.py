"""
Async RDAP Client

Issues the final RDAP query against a resolved server. One GET, no retries.
"""

import logging

import httpx

from .errors import RdapNotFound, RdapTransportError, RdapUpstreamError

logger = logging.getLogger(__name__)

RDAP_HEADERS = {"Accept": "application/rdap+json"}


class RdapClient:
    """
    Thin RDAP query wrapper around a shared ``httpx.AsyncClient``.

    Usage:
        async with httpx.AsyncClient(follow_redirects=True) as http:
            data = await RdapClient(http).query("https://rdap.verisign.com/com/v1/", "domain/example.com")
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def query(self, server: str, path: str, not_found_label: str = "Resource") -> dict:
        """
        GET ``server + path`` and return the decoded JSON body.

        Raises:
            RdapNotFound: the server answered 404
            RdapUpstreamError: any other non-2xx status, or a body that is not a JSON object
            RdapTransportError: the request never got an answer
        """
        url = f"{server}{path}"
        logger.info("Querying RDAP server: %s", url)

        try:
            response = await self._client.get(url, headers=RDAP_HEADERS)
        except httpx.HTTPError as e:
            logger.warning("RDAP request to %s failed: %s", url, e)
            raise RdapTransportError(f"RDAP request failed: {type(e).__name__}") from e

        if response.status_code == 404:
            raise RdapNotFound(f"{not_found_label} not found")

        if not response.is_success:
            logger.warning("RDAP server %s returned %d", url, response.status_code)
            raise RdapUpstreamError(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise RdapUpstreamError(response.status_code, "invalid JSON") from e

        if not isinstance(data, dict):
            raise RdapUpstreamError(response.status_code, "expected a JSON object")
        return data
