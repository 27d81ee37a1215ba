"""
Result aggregation for a single IP address.

Combines the Results of all checks that ran, plus the errors of those that
failed, into one report dictionary, and renders that report as text or
JSON.
"""

import json
from typing import Dict, List, Any, Tuple

from .checks.base import Result
from .security import security


class ResultAggregator:
    """Aggregates check results into a report."""

    def aggregate(self, ip_address: str, results: List[Result],
                  errors: List[Tuple[str, BaseException]]) -> Dict[str, Any]:
        """
        Combine check results into a report.

        Args:
            ip_address: The address that was checked
            results: Results of the checks that succeeded
            errors: (check name, exception) pairs of the checks that failed

        Returns:
            Report dictionary
        """
        return {
            'ip_address': ip_address,
            'checks': [self._result_entry(r) for r in results],
            'errors': [
                {'check': name, 'error': security.sanitize_error_message(str(error))}
                for name, error in errors
            ],
            'malicious': self._malicious_stats(results),
        }

    def _result_entry(self, result: Result) -> Dict[str, Any]:
        entry = result.to_dict()
        entry['summary'] = security.sanitize_output_text(result.info.summary())
        return entry

    def _malicious_stats(self, results: List[Result]) -> Dict[str, Any]:
        """Share of security checks that flagged the address."""
        security_results = [r for r in results if r.kind.is_security]
        flagged = sum(1 for r in security_results if r.malicious)
        total = len(security_results)
        return {
            'flagged': flagged,
            'total': total,
            'ratio': flagged / total if total else 0.0,
        }

    def render_text(self, report: Dict[str, Any]) -> str:
        """
        Render a report for the terminal.

        Informational checks get one line each, failed checks an error line,
        and the last line summarizes the security checks.
        """
        lines: List[Tuple[str, str]] = []
        for entry in sorted(report['checks'], key=lambda e: e['name']):
            if entry['type'] in ('Info', 'InfoSec'):
                lines.append((entry['name'], entry['summary']))
        for error in sorted(report['errors'], key=lambda e: e['check']):
            lines.append((error['check'], f"error: {error['error']}"))

        stats = report['malicious']
        lines.append(('malicious', f"{stats['ratio']:.0%} ({stats['flagged']}/{stats['total']})"))

        width = max(len(name) for name, _ in lines) + 2
        out = [f"--- {report['ip_address']} ---"]
        out.extend(f"{name:<{width}}{text}" for name, text in lines)
        return "\n".join(out)

    def render_json(self, report: Dict[str, Any]) -> str:
        return json.dumps(report, indent=2)
