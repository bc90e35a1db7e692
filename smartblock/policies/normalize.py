"""Domain normalization.

Turns whatever the interception layer hands us (bare hostnames, URLs,
``host:port`` pairs, HTTP Host headers) into a lowercase hostname, or
``None`` when the input cannot be a hostname at all.
"""

import ipaddress
import re
from typing import Any, Optional

MAX_DOMAIN_LENGTH = 253

# Underscores show up in real-world hostnames (SRV records, some CDNs)
_LABEL_RE = re.compile(r"^[a-z0-9_](?:[a-z0-9_-]{0,61}[a-z0-9_])?$")


def normalize_domain(value: Any) -> Optional[str]:
    """Normalize a requested domain.

    Lowercases and strips scheme, userinfo, port, path, query, fragment,
    and a trailing root dot.

    Args:
        value: Raw domain, URL, or host header value

    Returns:
        Normalized hostname, or None if the value is malformed
    """
    if not isinstance(value, str):
        return None

    host = value.strip().lower()
    if not host:
        return None

    if "://" in host:
        host = host.split("://", 1)[1]
    elif host.startswith("//"):
        host = host[2:]

    for sep in ("/", "?", "#"):
        host = host.split(sep, 1)[0]

    if "@" in host:
        host = host.rsplit("@", 1)[1]

    if host.startswith("["):
        return _normalize_ipv6_literal(host)

    if ":" in host:
        host, _, port = host.rpartition(":")
        if not port.isdigit() or ":" in host:
            return None

    if host.endswith("."):
        host = host[:-1]
    if not host or len(host) > MAX_DOMAIN_LENGTH:
        return None

    if not host.isascii():
        try:
            host = host.encode("idna").decode("ascii")
        except UnicodeError:
            return None

    if not all(_LABEL_RE.match(label) for label in host.split(".")):
        return None

    return host


def _normalize_ipv6_literal(host: str) -> Optional[str]:
    """Handle ``[addr]`` and ``[addr]:port`` forms."""
    end = host.find("]")
    if end == -1:
        return None

    rest = host[end + 1:]
    if rest and not (rest.startswith(":") and rest[1:].isdigit()):
        return None

    try:
        return str(ipaddress.IPv6Address(host[1:end]))
    except ValueError:
        return None
