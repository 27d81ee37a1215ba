"""
DNS lookups used by the DNS-backed checks.

Lookup failures (NXDOMAIN, no answer, timeouts, unreachable servers) are
not errors here: they yield an empty list and are logged at debug level.
"""

import logging
from typing import List, Optional

import dns.exception
import dns.resolver
import dns.reversename

logger = logging.getLogger(__name__)


class DnsResolver:
    """dnspython resolver with a bounded lifetime per query."""

    def __init__(self, timeout: float = 5.0, resolver: Optional[dns.resolver.Resolver] = None):
        """
        Initialize the resolver.

        Args:
            timeout: Total time allowed for a single lookup, in seconds
            resolver: Optional pre-configured dnspython resolver
        """
        self.timeout = timeout
        self._resolver = resolver

    @property
    def resolver(self) -> dns.resolver.Resolver:
        # system configuration is read on first use only
        if self._resolver is None:
            self._resolver = dns.resolver.Resolver()
        return self._resolver

    def lookup_addr(self, ip_address: str) -> List[str]:
        """
        Reverse lookup of an IP address.

        Args:
            ip_address: IPv4 or IPv6 address

        Returns:
            PTR names as returned by DNS (fully qualified, trailing dot), or
            an empty list if the lookup fails
        """
        try:
            query = dns.reversename.from_address(str(ip_address))
            answer = self.resolver.resolve(query, 'PTR', lifetime=self.timeout)
        except (dns.exception.DNSException, ValueError) as e:
            logger.debug(f"PTR lookup for {ip_address} failed: {e}")
            return []
        return [rdata.target.to_text() for rdata in answer]

    def lookup_mx(self, name: str) -> List[str]:
        """
        Look up the MX records of a domain name.

        Args:
            name: Domain name

        Returns:
            Mail exchanger host names ordered by preference, or an empty
            list if the lookup fails
        """
        try:
            answer = self.resolver.resolve(name, 'MX', lifetime=self.timeout)
        except (dns.exception.DNSException, ValueError) as e:
            logger.debug(f"MX lookup for {name} failed: {e}")
            return []
        records = sorted(answer, key=lambda rdata: (rdata.preference, rdata.exchange.to_text()))
        return [rdata.exchange.to_text() for rdata in records]
