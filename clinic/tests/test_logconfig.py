import pytest

from clinicsite.logconfig import _json_logs_enabled


@pytest.mark.parametrize('value,expected', [
    ('1', True),
    ('true', True),
    ('0', False),
    ('false', False),
    ('', False),
])
def test_json_logs_flag_is_parsed(monkeypatch, value, expected):
    monkeypatch.setenv('JSON_LOGS', value)
    assert _json_logs_enabled() is expected


def test_json_logs_off_when_unset(monkeypatch):
    monkeypatch.delenv('JSON_LOGS', raising=False)
    assert _json_logs_enabled() is False
