"""
Validated relay address with network type detection.

Parses, normalizes, and validates WebSocket relay URLs (``ws://`` or ``wss://``),
detecting the network type (clearnet, Tor, I2P, Lokinet, local) from the host.
Two addresses are the same delivery candidate if and only if their normalized
URLs are equal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network
from typing import Any, ClassVar

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import OVERLAY_NETWORKS, NetworkType


@dataclass(frozen=True, slots=True)
class RelayAddress:
    """Immutable, normalized locator of a relay endpoint.

    Validates and normalizes a WebSocket URL on construction. The scheme is
    kept as given (``ws`` or ``wss``); the host is lowercased, the default
    port for the scheme is elided, and the path is collapsed.

    Attributes:
        url: Fully normalized URL including scheme. The only field used for
            equality and hashing.
        network: Detected ``NetworkType`` enum value.
        scheme: URL scheme (``ws`` or ``wss``).
        host: Hostname or IP address (brackets stripped for IPv6).
        port: Explicit non-default port number, or ``None``.
        path: URL path component, or ``None``.

    Raises:
        ValueError: If the URL is malformed, uses an unsupported scheme,
            has an unclassifiable host, or contains null bytes.

    Examples:
        ```python
        relay = RelayAddress("WSS://Relay.Example.com:443/")
        relay.url             # 'wss://relay.example.com'
        relay.effective_port  # 443
        relay.network         # NetworkType.CLEARNET
        ```
    """

    raw_url: str = field(repr=False, compare=False)

    # Computed fields (set in __post_init__)
    url: str = field(init=False)
    network: NetworkType = field(init=False, compare=False)
    scheme: str = field(init=False, compare=False)
    host: str = field(init=False, compare=False)
    port: int | None = field(init=False, compare=False)
    path: str | None = field(init=False, compare=False)

    _PORT_WS: ClassVar[int] = 80
    _PORT_WSS: ClassVar[int] = 443

    _NETWORK_TLDS: ClassVar[dict[str, NetworkType]] = {
        ".onion": NetworkType.TOR,
        ".i2p": NetworkType.I2P,
        ".loki": NetworkType.LOKI,
    }

    _LABEL: ClassVar[re.Pattern[str]] = re.compile(r"^[a-z0-9_](?:[a-z0-9_-]*[a-z0-9_])?$")

    # IANA private/reserved IP ranges.
    # References:
    #   https://www.iana.org/assignments/iana-ipv4-special-registry/
    #   https://www.iana.org/assignments/iana-ipv6-special-registry/
    _LOCAL_NETWORKS: ClassVar[list[IPv4Network | IPv6Network]] = [
        # IPv4
        ip_network("0.0.0.0/8"),
        ip_network("10.0.0.0/8"),
        ip_network("100.64.0.0/10"),
        ip_network("127.0.0.0/8"),
        ip_network("169.254.0.0/16"),
        ip_network("172.16.0.0/12"),
        ip_network("192.168.0.0/16"),
        # IPv6
        ip_network("::1/128"),
        ip_network("fc00::/7"),
        ip_network("fe80::/10"),
    ]

    def __post_init__(self) -> None:
        """Parse and validate the raw URL, populating all computed fields.

        Raises:
            ValueError: If the URL is invalid or contains null bytes.
        """
        if not isinstance(self.raw_url, str):
            raise TypeError(f"raw_url must be a str, got {type(self.raw_url).__name__}")
        if "\x00" in self.raw_url:
            raise ValueError("Relay URL contains null bytes")

        parsed = self._parse(self.raw_url)

        if parsed["network"] == NetworkType.UNKNOWN:
            raise ValueError(f"Invalid host: '{parsed['host']}'")

        # Bypass frozen restriction to set computed fields
        object.__setattr__(self, "url", f"{parsed['scheme']}://{parsed['url_without_scheme']}")
        object.__setattr__(self, "network", parsed["network"])
        object.__setattr__(self, "scheme", parsed["scheme"])
        object.__setattr__(self, "host", parsed["host"])
        object.__setattr__(self, "port", parsed["port"])
        object.__setattr__(self, "path", parsed["path"])

    def __str__(self) -> str:
        return self.url

    @property
    def effective_port(self) -> int:
        """The explicit port, or the default port of the scheme."""
        if self.port is not None:
            return self.port
        return self._PORT_WSS if self.scheme == "wss" else self._PORT_WS

    @property
    def is_overlay(self) -> bool:
        """Whether the relay lives on an overlay network (Tor, I2P, Lokinet)."""
        return self.network in OVERLAY_NETWORKS

    @staticmethod
    def _detect_network(host: str) -> NetworkType:
        """Classify a hostname into a network type.

        Checks overlay network TLDs first, then tests whether the host is an
        IP address, and finally validates hostname labels. Single-label
        names (``localhost``, container names) are classified as local.

        Args:
            host: Hostname or IP address string to classify.

        Returns:
            The detected NetworkType. Returns ``UNKNOWN`` for empty or
            invalid hostnames.
        """
        if not host:
            return NetworkType.UNKNOWN

        host_bare = host.lower().strip("[]")

        try:
            ip = ip_address(host_bare)
            is_local = ip.is_loopback or any(ip in net for net in RelayAddress._LOCAL_NETWORKS)
            return NetworkType.LOCAL if is_local else NetworkType.CLEARNET
        except ValueError:
            pass

        labels = host_bare.rstrip(".").split(".")
        if not all(RelayAddress._LABEL.match(label) for label in labels):
            return NetworkType.UNKNOWN

        for tld, network in RelayAddress._NETWORK_TLDS.items():
            if host_bare.endswith(tld):
                return network

        if len(labels) == 1:
            return NetworkType.LOCAL
        return NetworkType.CLEARNET

    @staticmethod
    def _parse(raw: str) -> dict[str, Any]:
        """Parse and normalize a raw relay URL string.

        Validates the URI structure using RFC 3986, normalizes the path, and
        strips default ports.

        Args:
            raw: Raw URL string (e.g., ``"ws://relay.example.com:8080/path"``).

        Returns:
            Dictionary containing ``url_without_scheme``, ``scheme``,
            ``host``, ``port``, ``path``, and ``network``.

        Raises:
            ValueError: If the scheme is not ``ws``/``wss`` or the URI is invalid.
        """
        uri = uri_reference(raw.strip()).normalize()

        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .allow_schemes("ws", "wss")
            .check_validity_of("scheme", "host", "port", "path")
        )

        try:
            validator.validate(uri)
        except UnpermittedComponentError:
            raise ValueError("Invalid scheme: must be ws or wss") from None
        except ValidationError as e:
            raise ValueError(f"Invalid URL: {e}") from None

        if uri.query:
            raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
        if uri.fragment:
            raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")
        if uri.userinfo:
            raise ValueError("Relay URL must not contain user information")

        scheme = uri.scheme.lower()
        port = int(uri.port) if uri.port else None
        host = uri.host.strip("[]").rstrip(".")

        # Collapse duplicate slashes and strip trailing slash
        path = uri.path or ""
        while "//" in path:
            path = path.replace("//", "/")
        path = path.rstrip("/") or None

        network = RelayAddress._detect_network(host)

        # Re-bracket IPv6 addresses for the final URL
        formatted_host = f"[{host}]" if ":" in host else host

        default_port = RelayAddress._PORT_WSS if scheme == "wss" else RelayAddress._PORT_WS
        if port is not None and port != default_port:
            url_without_scheme = f"{formatted_host}:{port}{path or ''}"
        else:
            port = None
            url_without_scheme = f"{formatted_host}{path or ''}"

        return {
            "url_without_scheme": url_without_scheme,
            "scheme": scheme,
            "host": host,
            "port": port,
            "path": path,
            "network": network,
        }

    @classmethod
    def parse(cls, raw: str) -> RelayAddress | None:
        """Return a ``RelayAddress`` for *raw*, or ``None`` if it does not validate."""
        try:
            return cls(raw)
        except (ValueError, TypeError):
            return None
