import re

import pytest

from ikimina.constants.payment_methods import PaymentProvider, parse_providers, is_mobile_money
from ikimina.utils.currency import format_currency
from ikimina.utils.generators import generate_internal_reference, generate_airtel_transaction_id
from ikimina.utils.helpers import calculate_contribution_fee, paginate, mask_phone, make_log_tag
from ikimina.utils.phone import normalize_phone, to_msisdn, to_national_msisdn


@pytest.mark.parametrize("amount, expected", [
    (5000, 100),        # 25 -> minimum
    (20000, 100),       # exactly the minimum
    (50000, 250),
    (50100, 251),       # 250.5 rounds half up
    (400000, 2000),     # exactly the maximum
    (1000000, 2000),    # 5000 -> maximum
])
def test_contribution_fee_is_clamped(amount, expected):
    assert calculate_contribution_fee(amount, 0.5, minimum_fee=100, maximum_fee=2000) == expected


def test_contribution_fee_without_bounds():
    assert calculate_contribution_fee(1000, 0.5) == 5


def test_paginate():
    assert paginate(21, 2, 10) == {"total": 21, "page": 2, "limit": 10, "pages": 3}
    assert paginate(0, 1, 10)["pages"] == 0


def test_mask_phone():
    assert mask_phone("+250788123456") == "*********3456"
    assert mask_phone(None) is None


def test_make_log_tag():
    tag = make_log_tag("f.py", "Res", "post", "1.2.3.4", "m1", group="g1")
    assert tag == "[f.py][Res][post][ip:1.2.3.4][member:m1][group:g1]"


def test_internal_reference_format():
    reference = generate_internal_reference()
    assert re.match(r"^IKIM-\d{14}-[0-9a-f]{8}$", reference)
    assert reference != generate_internal_reference()


def test_airtel_transaction_id_format():
    assert generate_airtel_transaction_id().startswith("AIRTEL-")


@pytest.mark.parametrize("raw", ["0788123456", "+250788123456", "00250788123456"])
def test_normalize_phone_accepts_rwandan_formats(raw):
    assert normalize_phone(raw) == "+250788123456"


@pytest.mark.parametrize("raw", ["", None, "12345", "not a phone"])
def test_normalize_phone_rejects_invalid(raw):
    assert normalize_phone(raw) is None


def test_msisdn_conversions():
    assert to_msisdn("+250788123456") == "250788123456"
    assert to_national_msisdn("+250788123456") == "788123456"


def test_parse_providers():
    assert parse_providers("mtn, AIRTEL,,MTN") == [PaymentProvider.MTN, PaymentProvider.AIRTEL]
    assert parse_providers(["BANK"]) == [PaymentProvider.BANK]
    assert parse_providers(None) == []
    with pytest.raises(ValueError):
        parse_providers("MPESA")


def test_is_mobile_money():
    assert is_mobile_money("MTN")
    assert is_mobile_money(PaymentProvider.AIRTEL)
    assert not is_mobile_money("CARD")


def test_format_currency_drops_fraction():
    formatted = format_currency(5000.75, "RWF")
    assert "5,001" in formatted
    assert "." not in formatted
