"""
Shared fixtures for checkip tests.
"""

import pytest
import yaml
from unittest.mock import MagicMock

from checkip.config import CheckConfig
from checkip.httpclient import HttpClient
from checkip.resolver import DnsResolver

CHECKIP_ENV = (
    'CENSYS_KEY', 'CENSYS_SEC', 'ABUSEIPDB_API_KEY',
    'CHECKIP_CONFIG', 'CHECKIP_CACHE_DIR', 'CHECKIP_DATASET_MAX_AGE',
    'CHECKIP_REQUEST_TIMEOUT', 'CHECKIP_CHECK_TIMEOUT',
    'CHECKIP_DEBUG', 'CHECKIP_DEBUG_LEVEL',
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the developer's credentials and config file out of the tests."""
    for key in CHECKIP_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv('CHECKIP_CONFIG', str(tmp_path / 'no-such-config.yaml'))
    monkeypatch.setenv('CHECKIP_CACHE_DIR', str(tmp_path / 'cache'))


@pytest.fixture
def make_config(tmp_path):
    """Build a CheckConfig backed by a YAML file with the given values."""
    def _make(values=None):
        path = tmp_path / 'checkip.yaml'
        if values is not None:
            path.write_text(yaml.safe_dump(values))
        return CheckConfig(config_file=str(path))
    return _make


@pytest.fixture
def fake_http():
    return MagicMock(spec=HttpClient)


@pytest.fixture
def fake_resolver():
    resolver = MagicMock(spec=DnsResolver)
    resolver.lookup_addr.return_value = []
    resolver.lookup_mx.return_value = []
    return resolver


@pytest.fixture
def make_response():
    """Build a fake streaming requests response."""
    def _make(body: bytes, headers=None, chunk: int = 16):
        response = MagicMock()
        response.headers = headers or {}
        response.iter_content.side_effect = lambda chunk_size: (
            body[i:i + chunk] for i in range(0, len(body), chunk)
        )
        return response
    return _make
