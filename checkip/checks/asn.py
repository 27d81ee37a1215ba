"""
Autonomous System check backed by the iptoasn.com dataset.

The ip2asn-combined dataset is mirrored in the cache directory, refreshed
when stale, and scanned for the range containing the address.
"""

from typing import Optional

from .base import Check, CheckType, Result
from ..dataset import Compression, DatasetCache
from ..errors import DatasetError, TransportError
from ..ranges import AS, search_file
from ..validator import IPAddress

__all__ = ['AS', 'AsCheck']

DATASET_URL = "https://iptoasn.com/data/ip2asn-combined.tsv.gz"
DATASET_FILE = "ip2asn-combined.tsv"


class AsCheck(Check):
    """Fills in AS data for an IP address from iptoasn.com."""

    name = "iptoasn.com"
    kind = CheckType.INFO

    def __init__(self, config=None, http=None, resolver=None, timeout=None,
                 dataset: Optional[DatasetCache] = None):
        super().__init__(config, http, resolver, timeout)
        self.dataset = dataset or DatasetCache(
            self.config.get_cache_dir() / DATASET_FILE,
            DATASET_URL,
            compression=Compression.GZIP,
            max_age=self.config.get_dataset_max_age(),
            http=self.http,
        )

    def check(self, ip: IPAddress) -> Result:
        self.dataset.ensure_fresh()
        try:
            with open(self.dataset.path, 'r', encoding='utf-8', errors='replace') as tsv:
                record, _found = search_file(ip, tsv)
        except DatasetError as e:
            raise DatasetError(f"searching {ip} in {self.dataset.path}: {e}") from e
        except OSError as e:
            raise TransportError(f"reading {self.dataset.path}: {e}") from e

        return Result(name=self.name, kind=self.kind, info=record)
