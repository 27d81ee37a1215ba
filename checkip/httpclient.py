"""
HTTP JSON client shared by API-backed checks.

A client is constructed explicitly by whoever runs the checks and handed
to each of them, so tests can pass a fake session.
"""

import logging
from typing import Dict, Any, Optional

import requests

from .errors import TransportError, DataError

logger = logging.getLogger(__name__)

USER_AGENT = 'checkip/0.1 (IP address information tool)'


class HttpClient:
    """Thin wrapper around a requests session with a fixed timeout."""

    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None,
                 user_agent: str = USER_AGENT):
        """
        Initialize the client.

        Args:
            timeout: Timeout in seconds applied to every request
            session: Optional pre-built session (a fake one in tests)
            user_agent: User-Agent header sent with every request
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.user_agent = user_agent

    def get(self, url: str, headers: Optional[Dict[str, str]] = None,
            params: Optional[Dict[str, Any]] = None, stream: bool = False) -> requests.Response:
        """
        Issue a GET request and check the status code.

        Raises:
            TransportError: On connection failure, timeout or HTTP error status
        """
        request_headers = {'User-Agent': self.user_agent}
        request_headers.update(headers or {})

        try:
            response = self.session.get(url, headers=request_headers, params=params or {},
                                        timeout=self.timeout, stream=stream)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise TransportError(f"GET {url}: {e}") from e

        return response

    def get_json(self, url: str, headers: Optional[Dict[str, str]] = None,
                 params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Fetch a URL and decode its JSON body.

        Args:
            url: URL to fetch
            headers: Extra request headers
            params: Query parameters

        Returns:
            Decoded JSON document

        Raises:
            TransportError: On network or HTTP failure
            DataError: If the body is not valid JSON
        """
        response = self.get(url, headers=headers, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise DataError(f"decoding JSON from {url}: {e}") from e
