"""
Reverse DNS check.

Lists the names an IP address resolves back to. A failed lookup is not an
error: it simply reports no names.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List

from .base import Check, CheckType, Info, Result, na
from ..validator import IPAddress


@dataclass
class DnsNamesInfo(Info):
    names: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return na(", ".join(name.rstrip('.') for name in self.names))

    def to_dict(self) -> Dict[str, Any]:
        return {'names': list(self.names)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DnsNamesInfo':
        return cls(names=list(data.get('names') or []))


class DnsNamesCheck(Check):
    """PTR lookup of the address."""

    name = "dns name"
    kind = CheckType.INFO

    def check(self, ip: IPAddress) -> Result:
        names = self.resolver.lookup_addr(str(ip))
        return Result(name=self.name, kind=self.kind, info=DnsNamesInfo(names=names))
