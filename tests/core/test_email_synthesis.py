import pytest

from phoneauth.core.email import synthesize_email


@pytest.mark.parametrize("phone,domain,expected", [
    ("+15551234567", "sms.example", "+15551234567@sms.example"),
    ("+447700900123", "sms.app.example.com", "+447700900123@sms.app.example.com"),
    # Not validated locally; delivery will fail at the platform
    ("not-a-number", "sms.localhost", "not-a-number@sms.localhost"),
])
def test_synthesize_email_format(phone, domain, expected):
    assert synthesize_email(phone, domain) == expected


def test_synthesize_email_is_deterministic():
    first = synthesize_email("+15551234567", "sms.example")
    second = synthesize_email("+15551234567", "sms.example")
    assert first == second


def test_synthesize_email_requires_inputs():
    with pytest.raises(ValueError):
        synthesize_email("", "sms.example")
    with pytest.raises(ValueError):
        synthesize_email("+15551234567", "")
