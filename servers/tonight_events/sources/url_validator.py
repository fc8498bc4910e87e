"""
Source URL validation before fetching.

Registry rows are hand-edited, so every target URL is checked before a
request is made:
- Only http(s) schemes, optionally https only
- No localhost, loopback, private or reserved addresses
- Optional domain allow-list
"""

import ipaddress
import socket
from typing import Optional
from urllib.parse import urlparse


class SSRFError(Exception):
    """Raised when a source URL points somewhere the fetcher must not go."""
    pass


IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

BLOCKED_NETWORKS = [
    ipaddress.ip_network(cidr)
    for cidr in (
        "0.0.0.0/8",
        "10.0.0.0/8",
        "100.64.0.0/10",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.0.0.0/24",
        "192.168.0.0/16",
        "224.0.0.0/4",
        "240.0.0.0/4",
        "::1/128",
        "fc00::/7",
        "fe80::/10",
    )
]

BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain"}


def validate_url(
    url: str,
    require_https: bool = False,
    allowed_domains: Optional[set[str]] = None,
    resolve_dns: bool = True,
) -> str:
    """
    Validate a source URL.

    Args:
        url: The URL to validate
        require_https: Reject plain http:// URLs
        allowed_domains: Optional allow-list; subdomains of an entry match
        resolve_dns: Resolve the hostname and check every address it maps to

    Returns:
        The stripped URL

    Raises:
        SSRFError: If the URL fails validation
    """
    if not url or not isinstance(url, str):
        raise SSRFError("URL must be a non-empty string")

    url = url.strip()
    parsed = urlparse(url)

    scheme = parsed.scheme.lower()
    allowed_schemes = ("https",) if require_https else ("http", "https")
    if scheme not in allowed_schemes:
        expected = "HTTPS" if require_https else "HTTP(S)"
        raise SSRFError(f"Only {expected} URLs are allowed (got {scheme or 'no scheme'})")

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise SSRFError("URL must include a hostname")

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        raise SSRFError(f"Access to {hostname} is blocked (localhost)")

    if allowed_domains is not None and not domain_allowed(hostname, allowed_domains):
        raise SSRFError(f"Domain {hostname} is not in the allowed domains list")

    literal = _parse_ip(hostname)
    if literal is not None:
        if is_blocked_ip(literal):
            raise SSRFError(f"Access to {hostname} is blocked (private/internal IP)")
    elif resolve_dns:
        for address in _resolve(hostname):
            ip = _parse_ip(address)
            if ip is not None and is_blocked_ip(ip):
                raise SSRFError(
                    f"Access to {hostname} is blocked (resolves to private/internal IP {address})"
                )

    return url


def domain_allowed(hostname: str, allowed_domains: set[str]) -> bool:
    hostname = hostname.lower()
    for domain in allowed_domains:
        domain = domain.lower()
        if hostname == domain or hostname.endswith("." + domain):
            return True
    return False


def is_blocked_ip(ip: IPAddress) -> bool:
    return any(ip.version == net.version and ip in net for net in BLOCKED_NETWORKS)


def _parse_ip(hostname: str) -> Optional[IPAddress]:
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        return None


def _resolve(hostname: str) -> list[str]:
    """Addresses for hostname; an unresolvable name is left to the HTTP client to fail."""
    try:
        results = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC)
    except socket.gaierror:
        return []
    return sorted({result[4][0] for result in results})
