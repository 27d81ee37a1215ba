"""
Unit tests for the check orchestrator.
"""

import json
import time
import pytest
from unittest.mock import patch
from checkip.agent import CheckIPAgent, main
from checkip.checks.base import Check, CheckType, EmptyInfo, Result
from checkip.config import CheckConfig
from checkip.errors import CheckError, TransportError


class StaticCheck(Check):
    """Check returning a fixed verdict."""

    def __init__(self, name, kind=CheckType.INFO, malicious=False, **kwargs):
        super().__init__(**kwargs)
        self.name = name
        self.kind = kind
        self.malicious = malicious
        self.seen = []

    def check(self, ip):
        self.seen.append(ip)
        return Result(name=self.name, kind=self.kind, info=EmptyInfo(), malicious=self.malicious)


class FailingCheck(Check):
    name = "failing"
    kind = CheckType.SEC

    def __init__(self, error, **kwargs):
        super().__init__(**kwargs)
        self.error = error

    def check(self, ip):
        raise self.error


class SleepingCheck(Check):
    name = "sleepy"
    kind = CheckType.INFO

    def check(self, ip):
        time.sleep(1.0)
        return self.empty_result()


@pytest.fixture
def build_agent(fake_http, fake_resolver):
    config = CheckConfig()

    def _build(*checks):
        return CheckIPAgent(config=config, http=fake_http, resolver=fake_resolver, checks=list(checks))

    def _check(cls, *args, **kwargs):
        return cls(*args, config=config, http=fake_http, resolver=fake_resolver, **kwargs)

    _build.check = _check
    return _build


class TestCheckIPAgent:
    """Test cases for CheckIPAgent class."""

    def test_discovers_all_checks(self, fake_http, fake_resolver):
        agent = CheckIPAgent(config=CheckConfig(), http=fake_http, resolver=fake_resolver)

        assert agent.get_check_summary() == [
            {'name': 'abuseipdb.com', 'type': 'InfoSec'},
            {'name': 'censys.io', 'type': 'InfoSec'},
            {'name': 'dns mx', 'type': 'Info'},
            {'name': 'dns name', 'type': 'Info'},
            {'name': 'iptoasn.com', 'type': 'Info'},
        ]
        for check in agent.checks:
            assert check.http is fake_http
            assert check.resolver is fake_resolver

    def test_check_ip(self, build_agent):
        info = build_agent.check(StaticCheck, "info")
        sec = build_agent.check(StaticCheck, "sec", kind=CheckType.SEC, malicious=True)
        agent = build_agent(info, sec)

        report = agent.check_ip("8.8.8.8")

        assert report['ip_address'] == "8.8.8.8"
        assert [c['name'] for c in report['checks']] == ["info", "sec"]
        assert report['errors'] == []
        assert report['malicious'] == {'flagged': 1, 'total': 1, 'ratio': 1.0}
        assert str(info.seen[0]) == "8.8.8.8"

    def test_check_ip_normalizes_address(self, build_agent):
        check = build_agent.check(StaticCheck, "info")
        agent = build_agent(check)

        report = agent.check_ip(" 2001:DB8:0::1 ")

        assert report['ip_address'] == "2001:db8::1"

    def test_invalid_ip_address(self, build_agent):
        check = build_agent.check(StaticCheck, "info")
        agent = build_agent(check)

        with pytest.raises(ValueError, match="Invalid IP address"):
            agent.check_ip("not_an_ip")
        assert check.seen == []

    def test_failures_are_isolated(self, build_agent):
        ok = build_agent.check(StaticCheck, "ok")
        failing = build_agent.check(FailingCheck, TransportError("connection refused"))
        agent = build_agent(failing, ok)

        report = agent.check_ip("1.2.3.4")

        assert [c['name'] for c in report['checks']] == ["ok"]
        assert report['errors'] == [
            {'check': 'failing', 'error': 'failing: checking 1.2.3.4: connection refused'}
        ]

    def test_unexpected_exception_is_recorded(self, build_agent):
        failing = build_agent.check(FailingCheck, KeyError("boom"))
        agent = build_agent(failing)

        results, errors = agent.run_checks("1.2.3.4")

        assert results == []
        name, error = errors[0]
        assert name == "failing"
        assert isinstance(error, CheckError)
        assert isinstance(error.cause, KeyError)

    def test_slow_check_times_out(self, build_agent, monkeypatch):
        monkeypatch.setenv('CHECKIP_CHECK_TIMEOUT', '0.1')
        fast = build_agent.check(StaticCheck, "fast")
        slow = build_agent.check(SleepingCheck)
        agent = build_agent(slow, fast)

        began = time.time()
        results, errors = agent.run_checks("1.2.3.4")

        # returns at the check timeout without waiting for the sleeping thread
        assert time.time() - began < 0.9
        assert [r.name for r in results] == ["fast"]
        assert errors[0][0] == "sleepy"
        assert "timed out" in str(errors[0][1])

    def test_no_checks(self, build_agent):
        agent = build_agent()

        report = agent.check_ip("1.2.3.4")

        assert report['checks'] == []
        assert report['malicious']['total'] == 0


def register_static_checks(agent, package_name):
    agent.register_check(StaticCheck("iptoasn.com", http=agent.http, resolver=agent.resolver))
    agent.register_check(StaticCheck("censys.io", kind=CheckType.INFOSEC, malicious=True,
                                     http=agent.http, resolver=agent.resolver))


class TestMain:
    """Test cases for the command-line entry point."""

    @pytest.fixture(autouse=True)
    def static_checks(self):
        with patch.object(CheckIPAgent, '_discover_and_load_checks', autospec=True,
                          side_effect=register_static_checks):
            yield

    def test_text_output(self, capsys):
        main(['1.2.3.4'])

        out = capsys.readouterr().out
        assert "--- 1.2.3.4 ---" in out
        assert "iptoasn.com" in out
        assert "100% (1/1)" in out

    def test_json_output(self, capsys):
        main(['--json', '1.2.3.4'])

        report = json.loads(capsys.readouterr().out)
        assert report['ip_address'] == "1.2.3.4"
        assert report['malicious']['flagged'] == 1

    def test_list_checks(self, capsys):
        main(['--list-checks'])

        out = capsys.readouterr().out
        assert "iptoasn.com (Info)" in out
        assert "censys.io (InfoSec)" in out

    def test_no_targets(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1
        assert "usage" in capsys.readouterr().out

    def test_invalid_target(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(['1.2.3.4', 'not_an_ip'])
        assert exc.value.code == 1

        captured = capsys.readouterr()
        assert "Invalid IP address: not_an_ip" in captured.err
        assert captured.out == ""

    def test_debug_flag(self, capsys, monkeypatch):
        # registered so monkeypatch restores the variables main() sets
        monkeypatch.setenv('CHECKIP_DEBUG', 'false')
        monkeypatch.setenv('CHECKIP_DEBUG_LEVEL', 'basic')

        main(['--debug', '1.2.3.4'])

        assert "[DEBUG" in capsys.readouterr().err
