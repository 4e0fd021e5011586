"""
Query classification.

Labels a free-form query as a domain, IPv4 address, IPv6 address or ASN.
The checks are syntactic only: anything containing a colon is treated as
IPv6, malformed or not.
"""

import re
from enum import Enum

ASN_PATTERN = re.compile(r"(AS)?(\d+)", re.IGNORECASE | re.ASCII)
IPV4_PATTERN = re.compile(r"(\d{1,3}\.){3}\d{1,3}", re.ASCII)


class QueryType(str, Enum):
    """Kinds of RDAP queries."""

    DOMAIN = "domain"
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    ASN = "asn"

    @property
    def bootstrap_type(self) -> str:
        """Name of the IANA bootstrap registry covering this query type."""
        if self is QueryType.DOMAIN:
            return "dns"
        return self.value


def classify(query: str) -> QueryType:
    """
    Detect the query type. First matching rule wins:

    1. ``AS15169`` / ``15169`` -> ASN
    2. contains ``:`` -> IPv6
    3. four dot-separated groups of 1-3 digits -> IPv4
    4. anything else -> domain
    """
    if ASN_PATTERN.fullmatch(query):
        return QueryType.ASN
    if ":" in query:
        return QueryType.IPV6
    if IPV4_PATTERN.fullmatch(query):
        return QueryType.IPV4
    return QueryType.DOMAIN


def parse_asn(query: str) -> str:
    """Strip an optional AS prefix, returning the digits (or the query unchanged)."""
    match = ASN_PATTERN.fullmatch(query)
    return match.group(2) if match else query
