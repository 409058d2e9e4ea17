import pytest
from marshmallow import ValidationError

from ikimina.constants.payment_methods import PaymentProvider
from ikimina.schemas.payment_schema import (
    InitiateContributionSchema,
    ContributionResultSchema,
    PaymentHistoryQuerySchema,
    PaymentMethodsQuerySchema,
)

GROUP_ID = "64b7f0c2a1b2c3d4e5f60799"


def _payload(**overrides):
    payload = {
        "group_id": GROUP_ID,
        "amount": 5000,
        "provider": "MTN",
        "phone_number": "0788123456",
    }
    payload.update(overrides)
    return payload


def test_initiate_normalizes_provider_and_phone():
    data = InitiateContributionSchema().load(_payload())

    assert data["provider"] is PaymentProvider.MTN
    assert data["phone_number"] == "+250788123456"
    assert data["amount"] == 5000.0


def test_initiate_ignores_unknown_fields():
    data = InitiateContributionSchema().load(_payload(extra="x"))
    assert "extra" not in data


@pytest.mark.parametrize("provider", ["MTN", "AIRTEL"])
def test_mobile_money_requires_phone(provider):
    with pytest.raises(ValidationError) as exc:
        InitiateContributionSchema().load(_payload(provider=provider, phone_number=None))
    assert "phone_number" in exc.value.messages


@pytest.mark.parametrize("provider", ["BANK", "CARD"])
def test_manual_methods_do_not_need_phone(provider):
    data = InitiateContributionSchema().load(_payload(provider=provider, phone_number=None))
    assert data["provider"] == PaymentProvider(provider)


def test_invalid_phone_rejected():
    with pytest.raises(ValidationError) as exc:
        InitiateContributionSchema().load(_payload(phone_number="12345"))
    assert exc.value.messages["phone_number"] == ["Please enter a valid phone number"]


@pytest.mark.parametrize("amount", [0, -10])
def test_amount_must_be_positive(amount):
    with pytest.raises(ValidationError) as exc:
        InitiateContributionSchema().load(_payload(amount=amount))
    assert "amount" in exc.value.messages


def test_unknown_provider_rejected():
    with pytest.raises(ValidationError) as exc:
        InitiateContributionSchema().load(_payload(provider="MPESA"))
    assert "provider" in exc.value.messages


def test_group_id_must_be_object_id():
    with pytest.raises(ValidationError) as exc:
        InitiateContributionSchema().load(_payload(group_id="abc"))
    assert exc.value.messages["group_id"] == ["Invalid group ID"]


def test_result_schema_requires_display_fields():
    with pytest.raises(ValidationError) as exc:
        ContributionResultSchema().load({"transaction_id": "TXN123", "amount": 5000})
    assert {"phone_number", "payment_method", "group_name"} <= set(exc.value.messages)


def test_result_schema_defaults_currency():
    data = ContributionResultSchema().load({
        "transaction_id": "TXN123",
        "amount": 5000,
        "phone_number": "0788123456",
        "payment_method": "MTN Mobile Money",
        "group_name": "Umurava Group",
    })
    assert data["currency"] == "RWF"
    assert data["cycle_period"] is None


def test_history_query_defaults_and_bounds():
    assert PaymentHistoryQuerySchema().load({}) == {"page": 1, "limit": 10}
    with pytest.raises(ValidationError):
        PaymentHistoryQuerySchema().load({"limit": 500})
    with pytest.raises(ValidationError):
        PaymentHistoryQuerySchema().load({"status": "Done"})


def test_methods_query_rejects_unknown_available():
    assert PaymentMethodsQuerySchema().load({})["selected"] == "MTN"
    with pytest.raises(ValidationError) as exc:
        PaymentMethodsQuerySchema().load({"available": "MTN,MPESA"})
    assert "available" in exc.value.messages
