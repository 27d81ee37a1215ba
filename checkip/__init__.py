"""
checkip - find out what is known about an IP address.

This package runs independent checks against heterogeneous sources
(search APIs, a locally mirrored IP-to-AS dataset, DNS) and merges their
results into a single report usable as text or JSON.
"""

__version__ = "0.1.0"
__author__ = "checkip"
__license__ = "Apache License 2.0"
