"""
Main agent orchestrator for IP address checks.

This module discovers the available checks, runs them concurrently against
one IP address, isolates their failures and aggregates their results.
"""

import sys
import time
import logging
import importlib
import inspect
import pkgutil
import argparse
import os
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Any, Optional, Tuple

from .aggregator import ResultAggregator
from .checks.base import Check, Result
from .config import CheckConfig, config as default_config
from .debug import debug_logger
from .errors import CheckError
from .httpclient import HttpClient
from .resolver import DnsResolver
from .validator import InputValidator

logger = logging.getLogger(__name__)

CHECKS_PACKAGE = 'checkip.checks'


class CheckIPAgent:
    """Main agent for coordinating IP address checks."""

    def __init__(self, config: Optional[CheckConfig] = None, http: Optional[HttpClient] = None,
                 resolver: Optional[DnsResolver] = None, checks: Optional[List[Check]] = None):
        """
        Initialize the agent and its shared collaborators.

        Args:
            config: Configuration lookups; the process-wide instance by default
            http: HTTP client handed to every discovered check
            resolver: DNS resolver handed to every discovered check
            checks: Explicit checks to run instead of discovering them
        """
        self.config = config or default_config
        self.timeout = self.config.get_request_timeout()
        self.http = http or HttpClient(timeout=self.timeout)
        self.resolver = resolver or DnsResolver(timeout=self.timeout)
        self.validator = InputValidator()
        self.aggregator = ResultAggregator()
        self.checks: List[Check] = []

        if checks is None:
            self._discover_and_load_checks(CHECKS_PACKAGE)
        else:
            for check in checks:
                self.register_check(check)

    def _discover_and_load_checks(self, package_name: str):
        """
        Discover and instantiate concrete checks from a package.

        Args:
            package_name: The package to search for checks
        """
        package = importlib.import_module(package_name)
        found = []
        for _, modname, ispkg in pkgutil.iter_modules(package.__path__, package.__name__ + "."):
            if ispkg:
                continue
            module = importlib.import_module(modname)
            for _, attr in inspect.getmembers(module, inspect.isclass):
                if (issubclass(attr, Check) and
                        attr.__module__ == module.__name__ and
                        not inspect.isabstract(attr)):
                    found.append(attr)

        for check_class in sorted(found, key=lambda c: c.name):
            self.register_check(check_class(config=self.config, http=self.http,
                                            resolver=self.resolver, timeout=self.timeout))
            logger.debug(f"Loaded check: {check_class.name} ({check_class.kind})")

    def register_check(self, check: Check):
        """Register a check to run for every address."""
        self.checks.append(check)

    def run_checks(self, ip_address: str) -> Tuple[List[Result], List[Tuple[str, BaseException]]]:
        """
        Run every registered check concurrently against one address.

        A failing or timed out check is recorded as an error and does not
        affect the others. This call returns after the check timeout, but a
        timed out check keeps running in its worker thread, and the
        interpreter joins that thread before it exits. How long a hung check
        can delay exit is therefore bounded by the per-request timeouts of
        HttpClient and DnsResolver, not by the check timeout.

        Returns:
            (results of successful checks, (check name, error) of failed ones),
            both in registration order
        """
        results: List[Result] = []
        errors: List[Tuple[str, BaseException]] = []
        if not self.checks:
            return results, errors

        check_timeout = self.config.get_check_timeout()
        executor = ThreadPoolExecutor(max_workers=len(self.checks), thread_name_prefix='checkip')
        try:
            futures = [(check, executor.submit(check.run, ip_address)) for check in self.checks]
            wait([future for _, future in futures], timeout=check_timeout)

            for check, future in futures:
                if not future.done():
                    future.cancel()
                    errors.append((check.name, CheckError(
                        check.name, ip_address, message=f"timed out after {check_timeout:.0f}s")))
                    continue
                try:
                    results.append(future.result())
                except CheckError as e:
                    errors.append((check.name, e))
                except Exception as e:
                    logger.warning(f"Check {check.name} failed unexpectedly", exc_info=True)
                    errors.append((check.name, CheckError(check.name, ip_address, e)))
        finally:
            # does not stop timed out checks; their threads are joined at interpreter exit
            executor.shutdown(wait=False)

        return results, errors

    def check_ip(self, ip_address: str) -> Dict[str, Any]:
        """
        Check an IP address with every registered check.

        Args:
            ip_address: The IP address to check

        Returns:
            Aggregated report dictionary

        Raises:
            ValueError: If IP address is invalid
        """
        if not self.validator.is_valid_ip(ip_address):
            raise ValueError(f"Invalid IP address: {ip_address}")
        ip_address = self.validator.normalize_ip(ip_address)

        start_time = time.time()
        debug_logger.log_analysis_start(ip_address, len(self.checks), config=self.config)
        debug_logger.log_config_info(self.config)
        if not self.validator.is_public_ip(ip_address):
            logger.info(f"{ip_address} is not a public address; most sources know nothing about it")

        results, errors = self.run_checks(ip_address)

        debug_logger.log_analysis_complete(ip_address, time.time() - start_time,
                                           len(results), len(errors), config=self.config)
        return self.aggregator.aggregate(ip_address, results, errors)

    def get_check_summary(self) -> List[Dict[str, str]]:
        """Name and type of every registered check."""
        return [{'name': check.name, 'type': check.kind.value} for check in self.checks]


def main(argv: Optional[List[str]] = None):
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description='Find out what is known about IP addresses',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  CENSYS_KEY, CENSYS_SEC             - Censys API credentials
  ABUSEIPDB_API_KEY                  - AbuseIPDB API key
  CHECKIP_CONFIG                     - YAML file with the keys above (default ~/.checkip.yaml)
  CHECKIP_CACHE_DIR                  - Directory for cached datasets (default /var/tmp)
  CHECKIP_DATASET_MAX_AGE            - Dataset freshness threshold in hours (default 24)
  CHECKIP_REQUEST_TIMEOUT            - Per-request timeout in seconds (default 10)
  CHECKIP_CHECK_TIMEOUT              - Time limit for all checks of one address (default 120)
  CHECKIP_DEBUG=true                 - Enable debug mode with diagnostic output
  CHECKIP_DEBUG_LEVEL=basic          - Debug verbosity: basic, detailed, verbose

Examples:
  checkip 1.1.1.1
  checkip --json 2001:4860:4860::8888
  checkip --list-checks
"""
    )

    parser.add_argument('targets', nargs='*', metavar='IP', help='IP addresses to check')
    parser.add_argument('--json', action='store_true', help='Output JSON')
    parser.add_argument('--list-checks', action='store_true', help='List available checks')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug mode with low-level diagnostic output')
    parser.add_argument('--debug-level', choices=['basic', 'detailed', 'verbose'], default='basic',
                        help='Debug verbosity level (default: basic)')

    args = parser.parse_args(argv)

    if args.debug:
        os.environ['CHECKIP_DEBUG'] = 'true'
        os.environ['CHECKIP_DEBUG_LEVEL'] = args.debug_level

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    agent = CheckIPAgent()

    if args.list_checks:
        for check in agent.get_check_summary():
            print(f"  - {check['name']} ({check['type']})")
        return

    if not args.targets:
        parser.print_help()
        sys.exit(1)

    invalid = [t for t in args.targets if not agent.validator.is_valid_ip(t)]
    if invalid:
        print(f"Error: Invalid IP address: {', '.join(invalid)}", file=sys.stderr)
        sys.exit(1)

    for target in args.targets:
        report = agent.check_ip(target)
        if args.json:
            print(agent.aggregator.render_json(report))
        else:
            print(agent.aggregator.render_text(report))


if __name__ == "__main__":
    main()
