"""
Security utilities for checkip.

Error messages coming from HTTP libraries may echo request headers or
query strings. They are sanitized here before they reach a report or the
terminal.
"""

import re
import logging

logger = logging.getLogger(__name__)


def _escape(char: str) -> str:
    if char.isprintable():
        return char
    return f"\\x{ord(char):02x}"


class OutputSanitizer:
    """Redaction of secrets and control characters in user-visible text."""

    def __init__(self):
        """Initialize redaction patterns."""
        self._secret_patterns = [
            re.compile(r'[Aa]pi[_\s-]*[Kk]ey[:\s=]+[\w\-]{8,}'),
            re.compile(r'[Tt]oken[:\s=]+[\w\-]{8,}'),
            re.compile(r'[Aa]uthorization[\'"]?[:\s=]+[\'"]?(?:Basic|Bearer)\s+[\w\-+/=]{8,}'),
            re.compile(r'(?:Basic|Bearer)\s+[\w\-+/=]{8,}'),
            re.compile(r'[\'"]Key[\'"][:\s]+[\'"][\w\-]{8,}[\'"]'),
        ]

    def sanitize_output_text(self, text: str, max_length: int = 1000) -> str:
        """
        Truncate text to max_length and escape non-printable characters as
        \\xNN so terminal control sequences in third-party data are inert.
        """
        if not text:
            return ""
        return "".join(_escape(char) for char in str(text)[:max_length])

    def sanitize_error_message(self, error_msg: str) -> str:
        """
        Redact credentials from an error message.

        Args:
            error_msg: Original error message

        Returns:
            Sanitized error message safe for reports and logs
        """
        sanitized = str(error_msg)

        for pattern in self._secret_patterns:
            sanitized = pattern.sub('[REDACTED]', sanitized)

        if sanitized != str(error_msg):
            logger.debug("Redacted credentials from error message")

        return self.sanitize_output_text(sanitized, 500)

# Global sanitizer instance
security = OutputSanitizer()
