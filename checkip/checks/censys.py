"""
Censys host check.

This check queries the search.censys.io v2 hosts API for the services and
operating system observed on an IP address. Requires CENSYS_KEY and
CENSYS_SEC; without them the check is skipped.
"""

import base64
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Iterable, FrozenSet

from .base import Check, CheckType, Info, Result, na, non_empty, text_field
from ..errors import DataError
from ..validator import IPAddress

CENSYS_URL = "https://search.censys.io/api/v2"


@dataclass
class CensysService:
    """One service observed on the host."""
    port: int
    transport: str = ""
    service_name: str = ""
    extended_service_name: str = ""

    @property
    def key(self) -> str:
        """Display key, e.g. "tcp/443"."""
        return f"{self.transport.lower()}/{self.port}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'port': self.port,
            'transport_protocol': self.transport,
            'service_name': self.service_name,
            'extended_service_name': self.extended_service_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CensysService':
        if not isinstance(data, dict):
            raise DataError(f"censys service is not an object: {data!r}")
        try:
            port = int(data.get('port'))
        except (TypeError, ValueError) as e:
            raise DataError(f"censys service without a valid port: {data!r}") from e
        return cls(port=port,
                   transport=text_field(data, 'transport_protocol'),
                   service_name=text_field(data, 'service_name'),
                   extended_service_name=text_field(data, 'extended_service_name'))


@dataclass
class OperatingSystem:
    product: str = ""
    vendor: str = ""
    version: str = ""
    edition: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product': self.product,
            'vendor': self.vendor,
            'version': self.version,
            'edition': self.edition,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'OperatingSystem':
        data = data or {}
        if not isinstance(data, dict):
            raise DataError(f"censys operating_system is not an object: {data!r}")
        return cls(product=text_field(data, 'product'),
                   vendor=text_field(data, 'vendor'),
                   version=text_field(data, 'version'),
                   edition=text_field(data, 'edition'))


@dataclass
class CensysInfo(Info):
    """Services and operating system of a host as seen by Censys."""
    services: List[CensysService] = field(default_factory=list)
    operating_system: OperatingSystem = field(default_factory=OperatingSystem)

    def sorted_services(self) -> List[CensysService]:
        return sorted(self.services, key=lambda s: (s.port, s.transport.lower()))

    def service_counts(self) -> Counter:
        """Occurrences of each transport/port, duplicates included."""
        return Counter(s.key for s in self.services)

    def summary(self) -> str:
        port_info = []
        seen = set()
        for service in self.sorted_services():
            if service.key in seen:
                continue
            seen.add(service.key)
            port_info.append(f"{service.key} ({service.service_name.lower()})")

        os_info = ", ".join(non_empty(self.operating_system.product, self.operating_system.vendor))
        return f"OS: {na(os_info)}, open: {na(', '.join(port_info))}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'result': {
                'services': [s.to_dict() for s in self.services],
                'operating_system': self.operating_system.to_dict(),
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CensysInfo':
        """
        Build from a hosts API response (or from to_dict output).

        Raises:
            DataError: If the document does not have the expected shape
        """
        if not isinstance(data, dict):
            raise DataError(f"unexpected censys response: {type(data).__name__}")
        result = data.get('result') or {}
        if not isinstance(result, dict):
            raise DataError("unexpected censys response: 'result' is not an object")
        services = result.get('services') or []
        if not isinstance(services, list):
            raise DataError("unexpected censys response: 'services' is not a list")
        return cls(services=[CensysService.from_dict(s) for s in services],
                   operating_system=OperatingSystem.from_dict(result.get('operating_system')))


class CensysCheck(Check):
    """Gets services and operating system information from search.censys.io.

    A host is flagged as malicious when it has any open port outside
    ALLOWED_PORTS. The allow-list is a placeholder policy, not a threat
    model: override it per instance or in a subclass.
    """

    name = "censys.io"
    kind = CheckType.INFOSEC

    ALLOWED_PORTS: FrozenSet[int] = frozenset({53, 80, 443})

    def __init__(self, config=None, http=None, resolver=None, timeout=None,
                 allowed_ports: Optional[Iterable[int]] = None, base_url: str = CENSYS_URL):
        super().__init__(config, http, resolver, timeout)
        if allowed_ports is not None:
            self.allowed_ports = frozenset(allowed_ports)
        else:
            self.allowed_ports = self.ALLOWED_PORTS
        self.base_url = base_url

    def check(self, ip: IPAddress) -> Result:
        api_key = self.get_config_value('CENSYS_KEY')
        if not api_key:
            return self.empty_result()
        api_secret = self.get_config_value('CENSYS_SEC')
        if not api_secret:
            return self.empty_result()

        headers = {
            'Authorization': 'Basic ' + basic_auth(api_key, api_secret),
            'Accept': 'application/json',
        }
        data = self.http.get_json(f"{self.base_url}/hosts/{ip}", headers=headers)
        info = CensysInfo.from_dict(data)

        return Result(name=self.name, kind=self.kind, info=info,
                      malicious=self.is_malicious(info))

    def is_malicious(self, info: CensysInfo) -> bool:
        return any(s.port not in self.allowed_ports for s in info.services)


def basic_auth(username: str, password: str) -> str:
    return base64.b64encode(f"{username}:{password}".encode('utf-8')).decode('ascii')
