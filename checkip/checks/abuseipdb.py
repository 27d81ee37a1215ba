"""
AbuseIPDB check.

This check looks an IP address up in the AbuseIPDB database of reported
malicious activity. Requires ABUSEIPDB_API_KEY; without it the check is
skipped.
"""

from dataclasses import dataclass
from typing import Dict, Any

from .base import Check, CheckType, Info, Result, na, text_field
from ..errors import DataError
from ..validator import IPAddress

ABUSEIPDB_URL = "https://api.abuseipdb.com/api/v2/check"

# abuse confidence score (0-100) above which an address is flagged
MALICIOUS_SCORE_THRESHOLD = 25


@dataclass
class AbuseIPDBInfo(Info):
    domain: str = ""
    usage_type: str = ""
    isp: str = ""
    country_code: str = ""
    abuse_confidence_score: int = 0
    total_reports: int = 0
    is_whitelisted: bool = False

    def summary(self) -> str:
        return f"domain: {na(self.domain)}, usage type: {na(self.usage_type)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'domain': self.domain,
            'usageType': self.usage_type,
            'isp': self.isp,
            'countryCode': self.country_code,
            'abuseConfidenceScore': self.abuse_confidence_score,
            'totalReports': self.total_reports,
            'isWhitelisted': self.is_whitelisted,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AbuseIPDBInfo':
        """
        Build from the 'data' object of a check response (or to_dict output).

        Raises:
            DataError: If numeric fields are not numbers
        """
        if not isinstance(data, dict):
            raise DataError(f"unexpected abuseipdb data: {type(data).__name__}")
        try:
            score = int(data.get('abuseConfidenceScore') or 0)
            total_reports = int(data.get('totalReports') or 0)
        except (TypeError, ValueError) as e:
            raise DataError(f"unexpected abuseipdb data: {e}") from e
        return cls(domain=text_field(data, 'domain'),
                   usage_type=text_field(data, 'usageType'),
                   isp=text_field(data, 'isp'),
                   country_code=text_field(data, 'countryCode'),
                   abuse_confidence_score=score,
                   total_reports=total_reports,
                   is_whitelisted=bool(data.get('isWhitelisted')))


class AbuseIPDBCheck(Check):
    """Uses the AbuseIPDB check endpoint (free API tier)."""

    name = "abuseipdb.com"
    kind = CheckType.INFOSEC

    def __init__(self, config=None, http=None, resolver=None, timeout=None,
                 base_url: str = ABUSEIPDB_URL, max_age_in_days: int = 90):
        super().__init__(config, http, resolver, timeout)
        self.base_url = base_url
        self.max_age_in_days = max_age_in_days

    def check(self, ip: IPAddress) -> Result:
        api_key = self.get_config_value('ABUSEIPDB_API_KEY')
        if not api_key:
            return self.empty_result()

        params = {
            'ipAddress': str(ip),
            'maxAgeInDays': self.max_age_in_days,
        }
        headers = {
            'Key': api_key,
            'Accept': 'application/json',
        }
        data = self.http.get_json(self.base_url, headers=headers, params=params)
        if not isinstance(data, dict) or 'data' not in data:
            raise DataError(f"response from {self.base_url} has no 'data' object")

        info = AbuseIPDBInfo.from_dict(data['data'])
        return Result(name=self.name, kind=self.kind, info=info,
                      malicious=info.abuse_confidence_score > MALICIOUS_SCORE_THRESHOLD)
