"""
RDAP Resolver MCP Server

An MCP server for registration data lookups:
- Domain names (via the IANA DNS bootstrap)
- IPv4 / IPv6 addresses (via the IANA IP bootstrap files)
- Autonomous system numbers (via the IANA ASN bootstrap)
"""

import json
import logging

from mcp.server.fastmcp import FastMCP

from . import __version__
from .config import debug_enabled
from .errors import RdapError
from .lookup import get_default_service

logger = logging.getLogger(__name__)

# Suppress httpx request logging by default
# Set RDAP_RESOLVER_DEBUG=1 to enable verbose HTTP logging
if not debug_enabled():
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

# Initialize the MCP server
mcp = FastMCP("rdap-resolver")
mcp._mcp_server.version = __version__


@mcp.tool()
def version() -> str:
    """
    Get the version of the RDAP Resolver MCP server.

    Returns:
        Version string including server name and version number.
    """
    return f"RDAP Resolver MCP Server version {__version__}"


@mcp.tool()
async def rdap_lookup(query: str) -> str:
    """
    Look up registration data for a domain, IP address or AS number.

    The query type is detected automatically:
    - "AS15169" or "15169" -> ASN
    - anything containing ":" -> IPv6
    - dotted quad -> IPv4
    - everything else -> domain

    Args:
        query: Domain name, IP address, or ASN (e.g., "example.com", "8.8.8.8", "AS15169")

    Returns:
        JSON RDAP response with "_queryType", "_query" and "_cache" fields,
        or an object with "error" and "status" on failure.
    """
    try:
        result = await get_default_service().lookup(query)
    except RdapError as e:
        return json.dumps(e.to_dict())

    response = dict(result.payload)
    response["_cache"] = result.headers["X-Cache"]
    return json.dumps(response)


@mcp.tool()
async def resolve_rdap_server(query: str) -> str:
    """
    Find the authoritative RDAP server for a query without fetching the record.

    Args:
        query: Domain name, IP address, or ASN

    Returns:
        JSON with queryType, query, server and url, or "error" on failure.
    """
    try:
        target = await get_default_service().resolve(query)
    except RdapError as e:
        return json.dumps(e.to_dict())

    return json.dumps({
        "queryType": target.query_type.value,
        "query": target.normalized_query,
        "server": target.rdap_server,
        "url": target.url,
    })


@mcp.tool()
def bootstrap_status() -> str:
    """
    Report which IANA bootstrap registries are cached and how old they are.

    Returns:
        JSON keyed by registry type (dns, ipv4, ipv6, asn).
    """
    return json.dumps(get_default_service().bootstrap.snapshot())
