"""
Local mirror of a remote, periodically changing dataset.

The mirror is refreshed only when missing or stale. A refresh streams the
remote resource into a temporary file next to the cache, decompresses it
on the fly when needed, and renames it over the cache path once complete,
so a concurrent reader sees either the old or the new file, never a
partial one.
"""

import os
import time
import zlib
import logging
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import requests

from .config import DEFAULT_DATASET_MAX_AGE_HOURS
from .debug import debug_logger
from .errors import DatasetError, TransportError
from .httpclient import HttpClient

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_AGE = DEFAULT_DATASET_MAX_AGE_HOURS * 3600


class Compression(Enum):
    """Compression of the remote resource."""
    NONE = "none"
    GZIP = "gzip"

    def __str__(self):
        return self.value


class DatasetCache:
    """A flat file kept in sync with a remote URL."""

    def __init__(self, path: Union[str, Path], source_url: str,
                 compression: Compression = Compression.NONE,
                 max_age: float = DEFAULT_MAX_AGE, http: Optional[HttpClient] = None):
        """
        Initialize the cache. Nothing touches the disk or network yet.

        Args:
            path: Location of the locally mirrored file
            source_url: Remote location of the authoritative dataset
            compression: Compression of the remote resource
            max_age: Freshness threshold in seconds
            http: HTTP client used for downloads
        """
        self.path = Path(path)
        self.source_url = source_url
        self.compression = compression
        self.max_age = max_age
        self.http = http or HttpClient()

    def age(self) -> Optional[float]:
        """Seconds since the cache file was last written, or None if absent."""
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        return max(0.0, time.time() - mtime)

    def is_fresh(self) -> bool:
        """True if the cache file exists and is younger than max_age."""
        age = self.age()
        return age is not None and age < self.max_age

    def ensure_fresh(self) -> None:
        """
        Make sure the cache file is present and fresh.

        Raises:
            DatasetError: If a required refresh fails
        """
        if self.is_fresh():
            logger.debug(f"Dataset cache is fresh: {self.path}")
            return

        if self.path.exists():
            logger.info(f"Dataset cache is stale, refreshing: {self.path}")
        else:
            logger.info(f"Dataset cache is missing, downloading: {self.path}")
        self.refresh()

    def refresh(self) -> None:
        """
        Download the remote dataset and atomically replace the cache file.

        On failure the previous cache file, if any, is left untouched.

        Raises:
            DatasetError: On network, decompression or file system failure
        """
        start_time = time.time()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp",
                                            dir=self.path.parent)
        except OSError as e:
            raise DatasetError(f"creating temporary file for {self.path}: {e}") from e

        try:
            with os.fdopen(fd, 'wb') as out:
                self._download(out)
                out.flush()
                os.fsync(out.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except TransportError as e:
            raise DatasetError(f"downloading {self.source_url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise DatasetError(f"downloading {self.source_url}: {e}") from e
        except zlib.error as e:
            raise DatasetError(f"decompressing {self.source_url}: {e}") from e
        except OSError as e:
            raise DatasetError(f"writing {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                _remove_quietly(tmp_name)

        debug_logger.log('basic', f"Refreshed dataset {self.path} from {self.source_url} "
                                  f"({time.time() - start_time:.3f}s)")

    def _download(self, out) -> None:
        response = self.http.get(self.source_url, stream=True)
        try:
            chunks = response.iter_content(chunk_size=CHUNK_SIZE)
            if not self._needs_gunzip(response):
                for chunk in chunks:
                    out.write(chunk)
                return

            decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)
            for chunk in chunks:
                out.write(decompressor.decompress(chunk))
            out.write(decompressor.flush())
            if not decompressor.eof:
                raise DatasetError(f"decompressing {self.source_url}: truncated gzip stream")
        finally:
            response.close()

    def _needs_gunzip(self, response) -> bool:
        if self.compression is not Compression.GZIP:
            return False
        # requests already undid a gzip Content-Encoding while streaming
        encoding = response.headers.get('Content-Encoding', '') or ''
        return 'gzip' not in encoding.lower()


def ensure_fresh(local_path: Union[str, Path], remote_url: str,
                 compression: Compression = Compression.NONE,
                 max_age: float = DEFAULT_MAX_AGE, http: Optional[HttpClient] = None) -> None:
    """
    Create or update local_path from remote_url as needed.

    Raises:
        DatasetError: If the file is missing or stale and cannot be refreshed
    """
    DatasetCache(local_path, remote_url, compression, max_age, http).ensure_fresh()


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary file {path}: {e}")
