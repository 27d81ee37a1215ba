"""
Base check interface.

Every data source, whatever its protocol, is wrapped in a Check that takes
an IP address and returns a uniform Result carrying one Info payload.
"""

import json
import ipaddress
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, List

from ..config import CheckConfig, config as default_config
from ..debug import debug_check_method
from ..errors import CheckIPError, CheckError, DataError
from ..httpclient import HttpClient
from ..resolver import DnsResolver
from ..validator import IPAddress

NA = "n/a"


def na(s: Optional[str]) -> str:
    """Return "n/a" if s is empty."""
    return s if s else NA


def non_empty(*strings: Optional[str]) -> List[str]:
    """Return the strings that are not empty."""
    return [s for s in strings if s]


def text_field(data: Dict[str, Any], key: str) -> str:
    """
    Read an optional string field of a decoded JSON object.

    Raises:
        DataError: If the field is present but not a string
    """
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DataError(f"field {key!r} is not a string: {value!r}")
    return value


class CheckType(Enum):
    """Which fields of a Result are authoritative."""
    INFO = "Info"        # generic information about the address
    SEC = "Sec"          # whether the address is considered malicious
    INFOSEC = "InfoSec"

    def __str__(self):
        return self.value

    @property
    def is_info(self) -> bool:
        return self in (CheckType.INFO, CheckType.INFOSEC)

    @property
    def is_security(self) -> bool:
        return self in (CheckType.SEC, CheckType.INFOSEC)


class Info(ABC):
    """Source specific payload of a Result."""

    @abstractmethod
    def summary(self) -> str:
        """Short human readable rendering."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation."""

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Info':
        """Inverse of to_dict."""

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> 'Info':
        return cls.from_dict(json.loads(text))

    def __str__(self):
        return self.summary()


@dataclass
class EmptyInfo(Info):
    """Info of checks that have nothing informational to report."""

    def summary(self) -> str:
        return NA

    def to_dict(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EmptyInfo':
        return cls()


@dataclass
class Result:
    """Uniform envelope returned by every check."""
    name: str
    kind: CheckType
    info: Info = field(default_factory=EmptyInfo)
    malicious: bool = False

    def __post_init__(self):
        if self.info is None:
            self.info = EmptyInfo()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.kind.value,
            'malicious': self.malicious,
            'info': self.info.to_dict(),
        }


class Check(ABC):
    """Base class for all checks."""

    name: str = ""
    kind: CheckType = CheckType.INFO

    def __init__(self, config: Optional[CheckConfig] = None, http=None, resolver=None,
                 timeout: Optional[float] = None):
        """
        Initialize the check with its collaborators.

        Args:
            config: Configuration lookups (credentials, endpoints)
            http: HttpClient used by API-backed checks
            resolver: DnsResolver used by DNS-backed checks
            timeout: Timeout in seconds for blocking calls
        """
        self.config = config or default_config
        self.timeout = timeout if timeout is not None else self.config.get_request_timeout()
        self.http = http if http is not None else HttpClient(timeout=self.timeout)
        self.resolver = resolver if resolver is not None else DnsResolver(timeout=self.timeout)

    @debug_check_method
    def run(self, ip_address) -> Result:
        """
        Check an IP address.

        Args:
            ip_address: A valid IPv4 or IPv6 address (string or ipaddress object)

        Returns:
            The check Result. A check whose required configuration is
            missing returns empty_result() rather than failing.

        Raises:
            CheckError: If the check cannot produce any meaningful result
        """
        ip = ipaddress.ip_address(ip_address) if isinstance(ip_address, str) else ip_address
        try:
            return self.check(ip)
        except CheckError:
            raise
        except CheckIPError as e:
            raise CheckError(self.name, str(ip), e) from e

    @abstractmethod
    def check(self, ip: IPAddress) -> Result:
        """Source specific work; library errors propagate as CheckIPError."""

    def empty_result(self) -> Result:
        """Result of a check that was skipped."""
        return Result(name=self.name, kind=self.kind)

    def get_config_value(self, key: str) -> str:
        return self.config.get_config_value(key)
