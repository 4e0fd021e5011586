"""
Pick the authoritative RDAP server for a query.

Services are scanned in bootstrap order and the first match wins; there is
no longest-prefix preference between overlapping ranges. Only the first
server of the matching service is used.
"""

from dataclasses import dataclass

from .classify import QueryType, classify, parse_asn
from .errors import ValidationError
from .ranges import asn_in_range, ipv4_in_range, ipv6_in_range
from .rdap_bootstrap import BootstrapDocument


@dataclass(frozen=True)
class ResolvedTarget:
    """Where and what to ask for one lookup."""

    query_type: QueryType
    normalized_query: str
    rdap_path: str
    rdap_server: str | None = None

    @property
    def url(self) -> str | None:
        if self.rdap_server is None:
            return None
        return f"{self.rdap_server}{self.rdap_path}"

    def describe(self) -> str:
        """Label used in "no server" messages."""
        if self.query_type is QueryType.DOMAIN:
            return f"TLD: {self.normalized_query.split('.')[-1]}"
        if self.query_type is QueryType.ASN:
            return f"ASN: {self.normalized_query}"
        return f"IP: {self.normalized_query}"


def build_target(query: str) -> ResolvedTarget:
    """Classify and normalize a trimmed query and derive its RDAP path."""
    if not query:
        raise ValidationError("Query parameter is required")

    query_type = classify(query)

    if query_type is QueryType.ASN:
        asn = parse_asn(query)
        return ResolvedTarget(query_type, asn, f"autnum/{asn}")

    if query_type is QueryType.DOMAIN:
        domain = query.lower()
        return ResolvedTarget(query_type, domain, f"domain/{domain}")

    return ResolvedTarget(query_type, query, f"ip/{query}")


def find_server_for_domain(domain: str, bootstrap: BootstrapDocument) -> str | None:
    tld = domain.split(".")[-1].lower()
    if not tld:
        return None

    for service in bootstrap.services:
        if any(key.lower() == tld for key in service.keys) and service.servers:
            return service.servers[0]
    return None


def find_server_for_ip(ip: str, bootstrap: BootstrapDocument, ipv6: bool) -> str | None:
    in_range = ipv6_in_range if ipv6 else ipv4_in_range
    for service in bootstrap.services:
        if service.servers and any(in_range(ip, cidr) for cidr in service.keys):
            return service.servers[0]
    return None


def find_server_for_asn(asn: str, bootstrap: BootstrapDocument) -> str | None:
    try:
        number = int(asn, 10)
    except ValueError:
        return None

    for service in bootstrap.services:
        if service.servers and any(asn_in_range(number, r) for r in service.keys):
            return service.servers[0]
    return None


def resolve_server(
    query_type: QueryType, normalized_query: str, bootstrap: BootstrapDocument
) -> str | None:
    """Return the first server of the first matching service, or None."""
    if query_type is QueryType.DOMAIN:
        return find_server_for_domain(normalized_query, bootstrap)
    if query_type is QueryType.IPV4:
        return find_server_for_ip(normalized_query, bootstrap, ipv6=False)
    if query_type is QueryType.IPV6:
        return find_server_for_ip(normalized_query, bootstrap, ipv6=True)
    return find_server_for_asn(normalized_query, bootstrap)
