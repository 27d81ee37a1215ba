"""
Debug output for checkip.

When CHECKIP_DEBUG is set, check runs, dataset refreshes and agent rounds
are traced to stderr with a timestamp relative to process start.
CHECKIP_DEBUG_LEVEL selects how much is printed: ``basic`` traces events,
``detailed`` adds a field listing of attached data, ``verbose`` dumps that
data as JSON.

Every method takes an optional ``config``; the check or agent passes its
own so that a CheckConfig handed to it also governs tracing. Without one
the process-wide configuration applies.
"""

import sys
import time
import json
from typing import Any, Dict, Iterator, Optional, Callable
from functools import wraps
from .config import CheckConfig, config as default_config

LEVELS = ('basic', 'detailed', 'verbose')


def _rank(level: str) -> int:
    return LEVELS.index(level) if level in LEVELS else 0


class DebugLogger:
    """Writes debug traces to stderr."""

    def __init__(self):
        self.started = time.time()
        self.check_call_count = 0

    def enabled(self, level: str = 'basic', config: Optional[CheckConfig] = None) -> bool:
        """True if a message of the given level would be printed."""
        config = config or default_config
        if not config.is_debug_mode():
            return False
        return _rank(level) <= _rank(config.get_debug_level())

    def log(self, level: str, message: str, data: Optional[Dict[str, Any]] = None,
            config: Optional[CheckConfig] = None):
        """
        Print a trace line, followed by data when the level allows it.

        Args:
            level: One of 'basic', 'detailed', 'verbose'
            message: Trace message
            data: Optional mapping shown at the detailed and verbose levels
            config: Configuration deciding whether and how much to print
        """
        config = config or default_config
        if not self.enabled(level, config):
            return

        self._emit(f"[DEBUG +{time.time() - self.started:.3f}s] {message}")

        current = config.get_debug_level()
        if data and current != 'basic':
            for line in self._format_data(data, verbose=current == 'verbose'):
                self._emit(f"[DEBUG]   {line}")

    def _format_data(self, data: Dict[str, Any], verbose: bool) -> Iterator[str]:
        if verbose:
            try:
                yield from json.dumps(data, indent=2, default=str).splitlines()
            except (TypeError, ValueError):
                yield "<unserializable data>"
            return

        for key, value in data.items():
            if isinstance(value, dict):
                yield f"{key}: {len(value)} items"
            elif isinstance(value, (list, tuple)):
                yield f"{key}: [{len(value)} items]"
            elif isinstance(value, str) and len(value) > 100:
                yield f"{key}: '{value[:97]}...'"
            else:
                yield f"{key}: {value}"

    @staticmethod
    def _emit(line: str):
        print(line, file=sys.stderr)

    def log_check_call(self, check_name: str, ip_address: str, config: Optional[CheckConfig] = None):
        self.check_call_count += 1
        self.log('basic', f"Check call #{self.check_call_count}: {check_name}({ip_address})",
                 config=config)

    def log_check_result(self, check_name: str, result: Any, elapsed: float,
                         config: Optional[CheckConfig] = None):
        """Trace a Result; its full JSON form is attached at the detailed level."""
        summary = result.info.summary() if hasattr(result, 'info') else repr(result)
        self.log('basic', f"Check result: {check_name} -> {summary[:80]!r} "
                          f"malicious={getattr(result, 'malicious', False)} ({elapsed:.3f}s)",
                 config=config)
        if hasattr(result, 'to_dict'):
            self.log('detailed', f"Result of {check_name}:", {'result': result.to_dict()},
                     config=config)

    def log_check_error(self, check_name: str, error: BaseException, elapsed: float,
                        config: Optional[CheckConfig] = None):
        self.log('basic', f"Check error: {check_name} -> "
                          f"{type(error).__name__}: {str(error)[:100]} ({elapsed:.3f}s)",
                 config=config)

    def log_analysis_start(self, target: str, check_count: int, config: Optional[CheckConfig] = None):
        self.log('basic', f"Starting analysis for {target} with {check_count} checks", config=config)

    def log_analysis_complete(self, target: str, total_time: float, succeeded: int, failed: int,
                              config: Optional[CheckConfig] = None):
        self.log('basic', f"Completed analysis for {target}: {succeeded} succeeded, "
                          f"{failed} failed, {total_time:.3f}s total", config=config)

    def log_config_info(self, config: Optional[CheckConfig] = None):
        """Dump the effective settings (never credentials)."""
        config = config or default_config
        if not self.enabled('detailed', config):
            return
        self.log('detailed', "Current configuration:", {
            'debug_level': config.get_debug_level(),
            'request_timeout': config.get_request_timeout(),
            'check_timeout': config.get_check_timeout(),
            'cache_dir': str(config.get_cache_dir()),
            'dataset_max_age': config.get_dataset_max_age(),
        }, config=config)


def debug_check_method(func: Callable) -> Callable:
    """
    Trace calls of a check method taking an IP address.

    Tracing follows the check's own ``config`` when it has one. Outside
    debug mode the method is called directly. Errors are traced and
    re-raised unchanged.
    """
    @wraps(func)
    def traced(self, ip_address, *args, **kwargs):
        config = getattr(self, 'config', None) or default_config
        if not config.is_debug_mode():
            return func(self, ip_address, *args, **kwargs)

        name = getattr(self, 'name', None) or type(self).__name__
        debug_logger.log_check_call(name, str(ip_address), config=config)
        began = time.time()
        try:
            result = func(self, ip_address, *args, **kwargs)
        except Exception as e:
            debug_logger.log_check_error(name, e, time.time() - began, config=config)
            raise
        debug_logger.log_check_result(name, result, time.time() - began, config=config)
        return result

    return traced


debug_logger = DebugLogger()
