"""
Range containment search over the IP-to-AS dataset.

The dataset is tab separated, one range per line:
``first_ip<TAB>last_ip<TAB>as_number<TAB>country_code<TAB>description``.
Lines are scanned in file order; the feed is not assumed to be sorted.
"""

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, Iterator, NamedTuple, Optional, Tuple

from .checks.base import Info, na
from .errors import DatasetError
from .validator import IPAddress

logger = logging.getLogger(__name__)


@dataclass
class AS(Info):
    """Autonomous System owning an address range, as listed by iptoasn.com.

    A record is either a hit (number > 0 and a description) or the zero
    value. The range bounds are lookup keys only: they are neither
    serialized nor compared.
    """
    number: int = 0
    first_ip: Optional[str] = field(default=None, compare=False)
    last_ip: Optional[str] = field(default=None, compare=False)
    description: str = ""
    country_code: str = ""

    def summary(self) -> str:
        return f"AS description: {na(self.description)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'description': self.description,
            'country_code': self.country_code,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AS':
        return cls(number=int(data.get('number') or 0),
                   description=data.get('description') or "",
                   country_code=data.get('country_code') or "")


class AsRange(NamedTuple):
    """One line of the dataset."""
    first_ip: IPAddress
    last_ip: IPAddress
    number: str
    country_code: str
    description: str

    def contains(self, address: IPAddress) -> bool:
        """Unsigned lexicographic comparison of the packed address bytes."""
        packed = address.packed
        return self.first_ip.packed <= packed <= self.last_ip.packed

    def to_as(self) -> AS:
        """
        Build the AS record for this range.

        Raises:
            DatasetError: If the AS number is not an integer
        """
        try:
            number = int(self.number)
        except ValueError as e:
            raise DatasetError(f"converting AS number {self.number!r} to int: {e}") from e
        return AS(number=number, first_ip=str(self.first_ip), last_ip=str(self.last_ip),
                  description=self.description, country_code=self.country_code)


def parse_line(line: str) -> AsRange:
    """
    Parse one dataset line.

    Raises:
        ValueError: If the range bounds are missing or not IP addresses
    """
    fields = line.rstrip('\r\n').split('\t')
    if len(fields) < 2:
        raise ValueError(f"expected tab separated fields, got {line!r}")
    fields += [''] * (5 - len(fields))
    first_ip = ipaddress.ip_address(fields[0].strip())
    last_ip = ipaddress.ip_address(fields[1].strip())
    return AsRange(first_ip, last_ip, fields[2].strip(), fields[3].strip(), fields[4].strip())


def find(address: IPAddress, ranges: Iterable[AsRange]) -> Tuple[AS, bool]:
    """
    Find the first range containing address.

    All ranges must share the address family of address.

    Returns:
        (AS record, True) on a hit, (AS(), False) otherwise
    """
    for as_range in ranges:
        if as_range.contains(address):
            record = as_range.to_as()
            if record.number > 0 and record.description:
                return record, True
            # unrouted space ("0  None") counts as a miss
            return AS(), False
    return AS(), False


def iter_ranges(address: IPAddress, lines: Iterable[str]) -> Iterator[AsRange]:
    """
    Yield parseable ranges of the same address family as address.

    Lines whose bounds do not parse are skipped: they cannot be the match.
    """
    for lineno, line in enumerate(lines, 1):
        if not line.strip():
            continue
        try:
            as_range = parse_line(line)
        except ValueError as e:
            logger.debug(f"Skipping malformed dataset line {lineno}: {e}")
            continue
        if as_range.first_ip.version != address.version or as_range.last_ip.version != address.version:
            continue
        yield as_range


def search_file(address: IPAddress, lines: Iterable[str]) -> Tuple[AS, bool]:
    """
    Search dataset lines for the range containing address.

    Raises:
        DatasetError: If the matching line carries a malformed AS number
    """
    return find(address, iter_ranges(address, lines))
