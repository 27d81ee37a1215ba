"""
Exception hierarchy for checkip.

Collaborators (configuration, HTTP, dataset cache) raise the specific
subclasses; checks wrap whatever escapes them into a CheckError that names
the check and the address being inspected.
"""

from typing import Optional


class CheckIPError(Exception):
    """Base class for all checkip errors."""


class ConfigError(CheckIPError):
    """The configuration store exists but could not be read."""


class TransportError(CheckIPError):
    """Network, HTTP or file I/O failure while acquiring required data."""


class DataError(CheckIPError):
    """External data has an unexpected shape."""


class DatasetError(DataError):
    """The cached dataset could not be refreshed or parsed."""


class CheckError(CheckIPError):
    """A check could not produce any meaningful result."""

    def __init__(self, check: str, ip_address: str, cause: Optional[BaseException] = None,
                 message: Optional[str] = None):
        self.check = check
        self.ip_address = ip_address
        self.cause = cause
        detail = message or (str(cause) if cause is not None else 'check failed')
        super().__init__(f"{check}: checking {ip_address}: {detail}")
