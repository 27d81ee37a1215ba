"""
DNS MX check.

Finds mail exchangers for the domains associated with an IP address. The
candidate domains are the reverse DNS names of the address, the same
names without a leading "www.", and the domain AbuseIPDB associates with
the address. DNS failures and an unavailable AbuseIPDB check only shrink
the candidate list; they are never errors.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from .abuseipdb import AbuseIPDBCheck, AbuseIPDBInfo
from .base import Check, CheckType, Info, Result, na
from ..errors import CheckError
from ..validator import IPAddress

logger = logging.getLogger(__name__)


@dataclass
class MXInfo(Info):
    """MX records per domain name."""
    records: Dict[str, List[str]] = field(default_factory=dict)

    def summary(self) -> str:
        parts = []
        for domain in sorted(self.records):
            hosts = [host.rstrip('.') for host in self.records[domain]]
            if hosts:
                parts.append(f"{domain}: {', '.join(hosts)}")
        return na("; ".join(parts))

    def to_dict(self) -> Dict[str, Any]:
        return {'records': {domain: list(hosts) for domain, hosts in self.records.items()}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MXInfo':
        records = data.get('records') or {}
        return cls(records={domain: list(hosts or []) for domain, hosts in records.items()})


class MxCheck(Check):
    name = "dns mx"
    kind = CheckType.INFO

    def __init__(self, config=None, http=None, resolver=None, timeout=None,
                 abuseipdb: Optional[AbuseIPDBCheck] = None):
        super().__init__(config, http, resolver, timeout)
        self.abuseipdb = abuseipdb or AbuseIPDBCheck(self.config, self.http, self.resolver, self.timeout)

    def check(self, ip: IPAddress) -> Result:
        records = {}
        for name in self.candidate_names(ip):
            records[name] = self.resolver.lookup_mx(name)

        return Result(name=self.name, kind=self.kind, info=MXInfo(records=records))

    def candidate_names(self, ip: IPAddress) -> List[str]:
        """Domain names to look up MX records for, deduplicated in discovery order."""
        names = []
        for ptr in self.resolver.lookup_addr(str(ip)):
            names.append(ptr)
            if ptr.lower().startswith('www.'):
                names.append(ptr[len('www.'):])

        domain = self._abuseipdb_domain(ip)
        if domain:
            names.append(domain)

        candidates = []
        for name in names:
            name = name.rstrip('.').lower()
            if name and name not in candidates:
                candidates.append(name)
        return candidates

    def _abuseipdb_domain(self, ip: IPAddress) -> str:
        try:
            result = self.abuseipdb.run(ip)
        except CheckError as e:
            logger.debug(f"Ignoring AbuseIPDB failure while collecting MX candidates: {e}")
            return ""
        if isinstance(result.info, AbuseIPDBInfo):
            return result.info.domain
        return ""
