from unittest.mock import patch

import pytest

from ikimina.services.notifications import sms_service


@pytest.fixture
def twilio_env(monkeypatch):
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC123")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "token")
    monkeypatch.setenv("TWILIO_FROM", "+15005550006")


def test_build_receipt_sms():
    body = sms_service.build_receipt_sms("Umurava Group", 5000, "RWF", "IKIM-1")

    assert "5,000" in body
    assert "Umurava Group" in body
    assert "IKIM-1" in body


def test_send_contribution_receipt_sms(twilio_env):
    with patch.object(sms_service, "Client") as client_cls:
        client_cls.return_value.messages.create.return_value.sid = "SM1"

        sid = sms_service.send_contribution_receipt_sms(
            phone_number="+250788123456",
            group_name="Umurava Group",
            amount=5000,
            currency="RWF",
            reference="IKIM-1",
        )

    assert sid == "SM1"
    client_cls.assert_called_once_with("AC123", "token")
    kwargs = client_cls.return_value.messages.create.call_args.kwargs
    assert kwargs["to"] == "+250788123456"
    assert kwargs["from_"] == "+15005550006"
    assert "IKIM-1" in kwargs["body"]


def test_send_sms_requires_credentials(monkeypatch):
    monkeypatch.delenv("TWILIO_ACCOUNT_SID", raising=False)
    monkeypatch.delenv("TWILIO_AUTH_TOKEN", raising=False)

    with pytest.raises(RuntimeError):
        sms_service.send_sms("+250788123456", "hello")


def test_build_failure_sms():
    body = sms_service.build_failure_sms("Umurava Group", 5000, "RWF", "IKIM-1")

    assert "5,000" in body
    assert "failed" in body
    assert "IKIM-1" in body


def test_send_contribution_failed_sms(twilio_env):
    with patch.object(sms_service, "Client") as client_cls:
        client_cls.return_value.messages.create.return_value.sid = "SM2"

        sid = sms_service.send_contribution_failed_sms(
            phone_number="+250788123456",
            group_name="Umurava Group",
            amount=5000,
            currency="RWF",
            reference="IKIM-2",
        )

    assert sid == "SM2"
    kwargs = client_cls.return_value.messages.create.call_args.kwargs
    assert "IKIM-2" in kwargs["body"]
    assert "try again" in kwargs["body"]
