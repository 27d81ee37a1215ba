"""
Unit tests for the dataset cache.
"""

import gzip
import os
import threading
import time
import pytest
import requests
from checkip.dataset import Compression, DatasetCache, ensure_fresh
from checkip.errors import DatasetError, TransportError

URL = "https://example.com/data/ip2asn-combined.tsv.gz"
OLD_CONTENT = "1.0.0.0\t1.0.0.255\t64499\tUS\tOld ISP\n"
NEW_CONTENT = "".join(
    f"1.2.{i}.0\t1.2.{i}.255\t{64500 + i}\tUS\tExample ISP {i}\n" for i in range(200)
)


def make_stale(path, age=48 * 3600):
    past = time.time() - age
    os.utime(path, (past, past))


def leftover_temp_files(directory):
    return [p for p in directory.iterdir() if p.name.endswith('.tmp')]


class TestFreshness:
    """Test cases for the freshness policy."""

    def test_missing_file_is_not_fresh(self, tmp_path, fake_http):
        cache = DatasetCache(tmp_path / "data.tsv", URL, http=fake_http)
        assert cache.age() is None
        assert cache.is_fresh() is False

    def test_recent_file_is_fresh(self, tmp_path, fake_http):
        path = tmp_path / "data.tsv"
        path.write_text(OLD_CONTENT)
        cache = DatasetCache(path, URL, max_age=3600, http=fake_http)
        assert cache.is_fresh() is True
        assert cache.age() < 3600

    def test_old_file_is_stale(self, tmp_path, fake_http):
        path = tmp_path / "data.tsv"
        path.write_text(OLD_CONTENT)
        make_stale(path)
        cache = DatasetCache(path, URL, max_age=3600, http=fake_http)
        assert cache.is_fresh() is False

    def test_fresh_file_is_not_downloaded(self, tmp_path, fake_http):
        path = tmp_path / "data.tsv"
        path.write_bytes(OLD_CONTENT.encode())
        before = path.stat().st_mtime

        DatasetCache(path, URL, Compression.GZIP, max_age=3600, http=fake_http).ensure_fresh()

        fake_http.get.assert_not_called()
        assert path.read_bytes() == OLD_CONTENT.encode()
        assert path.stat().st_mtime == before


class TestRefresh:
    """Test cases for downloading and replacing the cache file."""

    def test_missing_file_is_downloaded_and_gunzipped(self, tmp_path, fake_http, make_response):
        path = tmp_path / "cache" / "data.tsv"
        fake_http.get.return_value = make_response(gzip.compress(NEW_CONTENT.encode()))

        DatasetCache(path, URL, Compression.GZIP, http=fake_http).ensure_fresh()

        fake_http.get.assert_called_once_with(URL, stream=True)
        assert path.read_text() == NEW_CONTENT
        assert leftover_temp_files(path.parent) == []

    def test_stale_file_is_replaced(self, tmp_path, fake_http, make_response):
        path = tmp_path / "data.tsv"
        path.write_text(OLD_CONTENT)
        make_stale(path)
        fake_http.get.return_value = make_response(gzip.compress(NEW_CONTENT.encode()))

        cache = DatasetCache(path, URL, Compression.GZIP, max_age=3600, http=fake_http)
        cache.ensure_fresh()

        assert path.read_text() == NEW_CONTENT
        assert cache.is_fresh() is True

    def test_uncompressed_source(self, tmp_path, fake_http, make_response):
        path = tmp_path / "data.tsv"
        fake_http.get.return_value = make_response(NEW_CONTENT.encode())

        DatasetCache(path, URL, Compression.NONE, http=fake_http).ensure_fresh()

        assert path.read_text() == NEW_CONTENT

    def test_transport_decoded_gzip_is_not_decompressed_twice(self, tmp_path, fake_http, make_response):
        path = tmp_path / "data.tsv"
        fake_http.get.return_value = make_response(NEW_CONTENT.encode(),
                                                   headers={'Content-Encoding': 'gzip'})

        DatasetCache(path, URL, Compression.GZIP, http=fake_http).ensure_fresh()

        assert path.read_text() == NEW_CONTENT

    def test_response_is_closed(self, tmp_path, fake_http, make_response):
        response = make_response(gzip.compress(NEW_CONTENT.encode()))
        fake_http.get.return_value = response

        DatasetCache(tmp_path / "data.tsv", URL, Compression.GZIP, http=fake_http).refresh()

        response.close.assert_called_once()

    def test_module_level_ensure_fresh(self, tmp_path, fake_http, make_response):
        path = tmp_path / "data.tsv"
        fake_http.get.return_value = make_response(gzip.compress(NEW_CONTENT.encode()))

        ensure_fresh(path, URL, Compression.GZIP, http=fake_http)

        assert path.read_text() == NEW_CONTENT


class TestRefreshFailures:
    """A failed refresh leaves the previous file untouched."""

    def setup_method(self):
        self.compressed = gzip.compress(NEW_CONTENT.encode())

    def _stale_cache(self, tmp_path, fake_http):
        path = tmp_path / "data.tsv"
        path.write_text(OLD_CONTENT)
        make_stale(path)
        return DatasetCache(path, URL, Compression.GZIP, max_age=3600, http=fake_http)

    def _assert_untouched(self, cache):
        assert cache.path.read_text() == OLD_CONTENT
        assert leftover_temp_files(cache.path.parent) == []

    def test_network_failure(self, tmp_path, fake_http):
        cache = self._stale_cache(tmp_path, fake_http)
        fake_http.get.side_effect = TransportError(f"GET {URL}: connection refused")

        with pytest.raises(DatasetError, match="example.com"):
            cache.ensure_fresh()
        self._assert_untouched(cache)

    def test_network_failure_without_cache(self, tmp_path, fake_http):
        path = tmp_path / "data.tsv"
        fake_http.get.side_effect = TransportError(f"GET {URL}: timed out")

        with pytest.raises(DatasetError):
            DatasetCache(path, URL, Compression.GZIP, http=fake_http).ensure_fresh()
        assert not path.exists()
        assert leftover_temp_files(tmp_path) == []

    def test_failure_mid_stream(self, tmp_path, fake_http):
        cache = self._stale_cache(tmp_path, fake_http)
        compressed = self.compressed

        def broken_stream(chunk_size):
            yield compressed[:20]
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        response = fake_http.get.return_value
        response.headers = {}
        response.iter_content.side_effect = broken_stream

        with pytest.raises(DatasetError):
            cache.ensure_fresh()
        self._assert_untouched(cache)

    def test_corrupt_gzip(self, tmp_path, fake_http, make_response):
        cache = self._stale_cache(tmp_path, fake_http)
        fake_http.get.return_value = make_response(b"this is not gzip data at all")

        with pytest.raises(DatasetError, match="decompressing"):
            cache.ensure_fresh()
        self._assert_untouched(cache)

    def test_truncated_gzip(self, tmp_path, fake_http, make_response):
        cache = self._stale_cache(tmp_path, fake_http)
        fake_http.get.return_value = make_response(self.compressed[:len(self.compressed) // 2])

        with pytest.raises(DatasetError, match="truncated"):
            cache.ensure_fresh()
        self._assert_untouched(cache)


class TestConcurrentReaders:
    """Readers never observe a partially written cache file."""

    def test_readers_see_complete_files_during_refresh(self, tmp_path, fake_http):
        path = tmp_path / "data.tsv"
        path.write_text(OLD_CONTENT)
        make_stale(path)
        compressed = gzip.compress(NEW_CONTENT.encode())

        def slow_stream(chunk_size):
            for i in range(0, len(compressed), 64):
                time.sleep(0.002)
                yield compressed[i:i + 64]

        response = fake_http.get.return_value
        response.headers = {}
        response.iter_content.side_effect = slow_stream

        cache = DatasetCache(path, URL, Compression.GZIP, max_age=3600, http=fake_http)
        observed = []
        failures = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                with open(path) as f:
                    content = f.read()
                observed.append(content)
                if content not in (OLD_CONTENT, NEW_CONTENT):
                    failures.append(content)
                for line in content.splitlines():
                    if len(line.split('\t')) != 5:
                        failures.append(line)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        try:
            cache.ensure_fresh()
            time.sleep(0.01)
        finally:
            done.set()
            for t in readers:
                t.join()

        assert failures == []
        assert observed
        assert path.read_text() == NEW_CONTENT
