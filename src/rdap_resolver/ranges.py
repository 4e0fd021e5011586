"""
Address and ASN range matching for bootstrap lookups.

All matchers are pure and never raise. A malformed address or range simply
does not match.
"""

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _parse_prefix(cidr: str, max_bits: int) -> tuple[str, int]:
    """Split ``address/prefix``; a missing prefix means a host route."""
    address, sep, prefix_str = cidr.partition("/")
    prefix = int(prefix_str) if sep else max_bits
    if not 0 <= prefix <= max_bits:
        raise ValueError(f"prefix out of range: {cidr}")
    return address, prefix


def ipv4_to_int(ip: str) -> int:
    """Pack a dotted quad into a 32-bit integer (big-endian octet order)."""
    parts = ip.split(".")
    if len(parts) != 4:
        raise ValueError(f"not an IPv4 address: {ip}")
    value = 0
    for part in parts:
        if not part.isdigit():
            raise ValueError(f"not an IPv4 address: {ip}")
        octet = int(part)
        if octet > 255:
            raise ValueError(f"octet out of range: {ip}")
        value = (value << 8) | octet
    return value


def expand_ipv6(ip: str) -> bytes:
    """
    Expand an IPv6 address into its 16-byte form.

    Groups left of ``::`` keep their position, groups right of it are
    right-aligned and the gap is zero-filled.
    """
    if "::" in ip:
        head, sep, tail = ip.partition("::")
        if "::" in tail:
            raise ValueError(f"multiple '::' in {ip}")
        left = head.split(":") if head else []
        right = tail.split(":") if tail else []
        missing = 8 - len(left) - len(right)
        if missing < 1:
            raise ValueError(f"too many groups in {ip}")
        groups = left + ["0"] * missing + right
    else:
        groups = ip.split(":")

    if len(groups) != 8:
        raise ValueError(f"not an IPv6 address: {ip}")

    out = bytearray()
    for group in groups:
        if not 1 <= len(group) <= 4 or not set(group) <= HEX_DIGITS:
            raise ValueError(f"bad group {group!r} in {ip}")
        out += int(group, 16).to_bytes(2, "big")
    return bytes(out)


def ipv4_in_range(ip: str, cidr: str) -> bool:
    """Check whether an IPv4 address falls inside a CIDR block."""
    try:
        base, prefix = _parse_prefix(cidr, 32)
        mask = (0xFFFFFFFF << (32 - prefix)) & 0xFFFFFFFF if prefix else 0
        return (ipv4_to_int(ip) & mask) == (ipv4_to_int(base) & mask)
    except (ValueError, TypeError, AttributeError):
        return False


def ipv6_in_range(ip: str, cidr: str) -> bool:
    """Check whether an IPv6 address falls inside a CIDR block."""
    try:
        base, prefix = _parse_prefix(cidr, 128)
        ip_bytes = expand_ipv6(ip)
        base_bytes = expand_ipv6(base)
    except (ValueError, TypeError, AttributeError):
        return False

    full_bytes, remaining_bits = divmod(prefix, 8)
    if ip_bytes[:full_bytes] != base_bytes[:full_bytes]:
        return False

    if remaining_bits:
        mask = (0xFF << (8 - remaining_bits)) & 0xFF
        if (ip_bytes[full_bytes] & mask) != (base_bytes[full_bytes] & mask):
            return False

    return True


def asn_in_range(asn: int, asn_range: str) -> bool:
    """Check an ASN against ``"start-end"`` (inclusive) or a single number."""
    try:
        if "-" in asn_range:
            start, end = asn_range.split("-")
            return int(start) <= asn <= int(end)
        return asn == int(asn_range)
    except (ValueError, TypeError, AttributeError):
        return False
