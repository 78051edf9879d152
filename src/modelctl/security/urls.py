"""SSRF protection for provider base URLs.

A base URL accepted into the settings file is later used by downstream HTTP
clients together with the provider's API key. Pointing it at a cloud
metadata endpoint or an internal address would hand the credential to that
host, so every base URL is checked when it is configured.

Checks:
    - URL parses, scheme is http or https, host is present
    - Explicitly allowed hosts pass immediately
    - Blocked hostnames (metadata services, cluster DNS) are rejected
    - Literal and DNS-resolved IPs in loopback, RFC 1918, RFC 4193,
      link-local, reserved or unspecified ranges are rejected
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from dataclasses import dataclass, field
from urllib.parse import urlparse

from modelctl.exceptions import URLValidationError

logger = logging.getLogger(__name__)

__all__ = [
    "BLOCKED_HOST_MESSAGE",
    "BaseURLValidator",
    "NetworkPolicy",
    "ValidatedURL",
    "validate_base_url",
    "validate_ollama_base_url",
]

BLOCKED_HOST_MESSAGE = "URL targets a blocked host (metadata endpoint or private network)"


@dataclass
class ValidatedURL:
    """Result of URL validation.

    Attributes:
        url: The validated URL
        host: Extracted hostname, lower-cased
        resolved_ips: Addresses that were checked (empty if DNS was skipped
            or failed)
    """

    url: str
    host: str
    resolved_ips: list[str] = field(default_factory=list)


# Private IPv4 ranges (RFC 1918 + link-local + loopback + CGNAT)
PRIVATE_IPV4_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # Link-local
    ipaddress.ip_network("100.64.0.0/10"),  # Carrier-grade NAT
    ipaddress.ip_network("0.0.0.0/8"),
]

# Private IPv6 ranges (RFC 4193 + link-local + loopback)
PRIVATE_IPV6_NETWORKS = [
    ipaddress.ip_network("fc00::/7"),  # Unique local addresses
    ipaddress.ip_network("fe80::/10"),  # Link-local
    ipaddress.ip_network("::1/128"),  # Loopback
]

# Cloud metadata endpoints
METADATA_IPS = frozenset(
    {
        "169.254.169.254",  # AWS, GCP, Azure
        "169.254.170.2",  # AWS ECS task metadata
        "100.100.100.200",  # Alibaba Cloud
        "fd00:ec2::254",  # AWS IPv6
    }
)

BLOCKED_HOSTNAMES = frozenset(
    {
        "localhost",
        "metadata.google.internal",
        "metadata",
        "kubernetes.default.svc",
    }
)

LOOPBACK_LITERALS = frozenset({"localhost", "127.0.0.1", "::1"})


@dataclass(frozen=True)
class NetworkPolicy:
    """Which destinations a base URL may point at.

    Attributes:
        allowed_hosts: Hostnames or IP literals that bypass all address
            checks when they appear as the URL host. Addresses a name
            resolves to are never matched against this list.
        blocked_hosts: Extra hostnames to reject in addition to the
            built-in list.
        deny_private: Reject loopback, private, link-local and reserved
            addresses.
        resolve_dns: Resolve hostnames and check the resulting addresses.
        dns_timeout: Timeout for DNS resolution in seconds.
    """

    allowed_hosts: frozenset[str] = frozenset()
    blocked_hosts: frozenset[str] = frozenset()
    deny_private: bool = True
    resolve_dns: bool = True
    dns_timeout: float = 2.0

    def allowing(self, *hosts: str) -> NetworkPolicy:
        """Return a copy of this policy with ``hosts`` added to the allow-list."""
        return NetworkPolicy(
            allowed_hosts=self.allowed_hosts | {h.lower() for h in hosts},
            blocked_hosts=self.blocked_hosts,
            deny_private=self.deny_private,
            resolve_dns=self.resolve_dns,
            dns_timeout=self.dns_timeout,
        )


DEFAULT_POLICY = NetworkPolicy()


class BaseURLValidator:
    """Validates provider base URLs against a :class:`NetworkPolicy`.

    Example:
        >>> validator = BaseURLValidator()
        >>> validator.validate("https://api.anthropic.com").host
        'api.anthropic.com'

        >>> validator.validate("http://169.254.169.254/latest")
        URLValidationError: URL targets a blocked host (metadata endpoint or private network)
    """

    def __init__(self, policy: NetworkPolicy | None = None) -> None:
        self.policy = policy or DEFAULT_POLICY

    def validate(self, url: str) -> ValidatedURL:
        """Validate a base URL.

        Args:
            url: The URL to validate

        Returns:
            ValidatedURL with the checked addresses

        Raises:
            URLValidationError: If the URL fails validation
        """
        try:
            parsed = urlparse(url.strip())
            hostname = parsed.hostname
            _ = parsed.port  # raises ValueError for a bad port
        except ValueError as e:
            raise URLValidationError(f"malformed URL: {e}", code="malformed_url") from e

        if parsed.scheme not in ("http", "https"):
            raise URLValidationError(
                f"URL must use http or https scheme, got: {parsed.scheme or '(none)'}",
                code="invalid_scheme",
            )

        if not hostname:
            raise URLValidationError("URL must include a host", code="missing_host")

        hostname = hostname.lower().rstrip(".")
        policy = self.policy

        if hostname in policy.allowed_hosts:
            return ValidatedURL(url=url, host=hostname)

        if hostname in BLOCKED_HOSTNAMES or hostname in policy.blocked_hosts:
            raise URLValidationError(BLOCKED_HOST_MESSAGE, code="blocked_hostname")

        resolved_ips = self._resolve_host(hostname)
        for ip_str in resolved_ips:
            self._validate_ip(ip_str)

        return ValidatedURL(url=url, host=hostname, resolved_ips=resolved_ips)

    def _resolve_host(self, hostname: str) -> list[str]:
        """Resolve hostname to IP addresses.

        Unresolvable names return an empty list: configuration may happen
        offline, and a name that does not resolve cannot reach anything.
        """
        # Handle IP addresses directly
        try:
            ip = ipaddress.ip_address(hostname)
            return [str(ip)]
        except ValueError:
            pass  # Not an IP, continue with DNS resolution

        if not self.policy.resolve_dns:
            return []

        # Resolve hostname with timeout (restore previous timeout after)
        previous_timeout = socket.getdefaulttimeout()
        try:
            socket.setdefaulttimeout(self.policy.dns_timeout)
            results = socket.getaddrinfo(
                hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM
            )
        except (OSError, TimeoutError) as e:
            logger.debug(f"DNS resolution failed for {hostname}, skipping address check: {e}")
            return []
        finally:
            socket.setdefaulttimeout(previous_timeout)

        ips: list[str] = []
        for result in results:
            addr = result[4][0]
            if isinstance(addr, str) and addr not in ips:
                ips.append(addr)
        return ips

    def _validate_ip(self, ip_str: str) -> None:
        """Reject metadata, private, loopback, link-local and reserved addresses.

        Raises:
            URLValidationError: If the address is not allowed
        """
        try:
            ip = ipaddress.ip_address(ip_str.split("%", 1)[0])
        except ValueError as e:
            raise URLValidationError(f"malformed URL: invalid IP address {ip_str}") from e

        if str(ip) in METADATA_IPS:
            raise URLValidationError(BLOCKED_HOST_MESSAGE, code="metadata_blocked")

        if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
            ip = ip.ipv4_mapped
            if str(ip) in METADATA_IPS:
                raise URLValidationError(BLOCKED_HOST_MESSAGE, code="metadata_blocked")

        if not self.policy.deny_private:
            return

        networks = (
            PRIVATE_IPV4_NETWORKS
            if isinstance(ip, ipaddress.IPv4Address)
            else PRIVATE_IPV6_NETWORKS
        )
        if any(ip in network for network in networks):
            raise URLValidationError(BLOCKED_HOST_MESSAGE, code="private_ip_blocked")

        if ip.is_loopback or ip.is_link_local or ip.is_unspecified:
            raise URLValidationError(BLOCKED_HOST_MESSAGE, code="private_ip_blocked")

        if ip.is_reserved:
            raise URLValidationError(BLOCKED_HOST_MESSAGE, code="reserved_ip_blocked")


def validate_base_url(url: str, policy: NetworkPolicy | None = None) -> ValidatedURL:
    """Validate a base URL with the strict policy."""
    return BaseURLValidator(policy).validate(url)


def validate_ollama_base_url(
    url: str, policy: NetworkPolicy | None = None
) -> ValidatedURL:
    """Validate an Ollama base URL.

    Literal ``localhost``, ``127.0.0.1`` and ``::1`` are accepted because
    Ollama normally runs on loopback; every other host gets the strict check.
    """
    policy = (policy or DEFAULT_POLICY).allowing(*LOOPBACK_LITERALS)
    return BaseURLValidator(policy).validate(url)
