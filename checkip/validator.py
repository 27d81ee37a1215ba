"""
Validation of user-supplied IP addresses.

The agent validates and normalizes every target here; checks receive an
``ipaddress`` object and never see raw user input.
"""

import ipaddress
from typing import Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _try_parse(text) -> Optional[IPAddress]:
    if not isinstance(text, str):
        return None
    try:
        return ipaddress.ip_address(text.strip())
    except ValueError:
        return None


class InputValidator:
    """Checks and canonicalizes IPv4 and IPv6 address strings."""

    def is_valid_ip(self, ip_string: str) -> bool:
        """True if ip_string (surrounding whitespace ignored) is an IP address."""
        return _try_parse(ip_string) is not None

    def is_ipv4(self, ip_string: str) -> bool:
        parsed = _try_parse(ip_string)
        return parsed is not None and parsed.version == 4

    def is_ipv6(self, ip_string: str) -> bool:
        parsed = _try_parse(ip_string)
        return parsed is not None and parsed.version == 6

    def parse_ip(self, ip_string: str) -> IPAddress:
        """
        Parse an address string.

        Raises:
            ValueError: If ip_string is not an IPv4 or IPv6 address
        """
        parsed = _try_parse(ip_string)
        if parsed is None:
            raise ValueError(f"Invalid IP address: {ip_string}")
        return parsed

    def normalize_ip(self, ip_string: str) -> str:
        """Canonical text form, e.g. "2001:db8::1" for "2001:0DB8:0::1"."""
        return str(self.parse_ip(ip_string))

    def is_public_ip(self, ip_string: str) -> bool:
        """
        Whether the address is globally routable.

        Private, loopback and reserved ranges are not public; most data
        sources have nothing to say about them.

        Raises:
            ValueError: If ip_string is not an IP address
        """
        parsed = self.parse_ip(ip_string)
        return not (parsed.is_private or parsed.is_loopback or parsed.is_reserved)
