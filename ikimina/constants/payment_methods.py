# constants/payment_methods.py

"""
Payment provider constants for contribution payments.
Centralized provider definitions shared by the views, schemas and gateways.
"""

from enum import Enum


class PaymentProvider(str, Enum):
    """Payment channels a member can settle a contribution through."""

    MTN = "MTN"
    AIRTEL = "AIRTEL"
    BANK = "BANK"
    CARD = "CARD"

    def __str__(self):
        return self.value


# Order in which options are always presented
PROVIDER_ORDER = (
    PaymentProvider.MTN,
    PaymentProvider.AIRTEL,
    PaymentProvider.BANK,
    PaymentProvider.CARD,
)

DEFAULT_AVAILABLE_PROVIDERS = (PaymentProvider.MTN, PaymentProvider.AIRTEL)

MOBILE_MONEY_PROVIDERS = frozenset({PaymentProvider.MTN, PaymentProvider.AIRTEL})


# Provider display names
PAYMENT_METHOD_NAMES = {
    PaymentProvider.MTN: "MTN Mobile Money",
    PaymentProvider.AIRTEL: "Airtel Money",
    PaymentProvider.BANK: "Bank Transfer",
    PaymentProvider.CARD: "Card Payment",
}

# Short line shown under the display name
PAYMENT_METHOD_TAGLINES = {
    PaymentProvider.MTN: "Fast & convenient",
    PaymentProvider.AIRTEL: "Fast & convenient",
    PaymentProvider.BANK: "2-3 business days",
    PaymentProvider.CARD: "Visa, Mastercard, etc.",
}

# Badge text and colour for the round provider logo
PAYMENT_METHOD_BADGES = {
    PaymentProvider.MTN: ("MTN", "yellow"),
    PaymentProvider.AIRTEL: ("AIR", "red"),
    PaymentProvider.BANK: ("BANK", "blue"),
    PaymentProvider.CARD: ("CARD", "green"),
}

# Gateway identifiers stored on transactions
PAYMENT_GATEWAYS = {
    PaymentProvider.MTN: "mtn_momo",
    PaymentProvider.AIRTEL: "airtel_money",
    PaymentProvider.BANK: "manual",
    PaymentProvider.CARD: "manual",
}


def get_all_payment_providers():
    """Get list of all provider values in canonical order."""
    return [provider.value for provider in PROVIDER_ORDER]


def is_mobile_money(provider):
    return PaymentProvider(provider) in MOBILE_MONEY_PROVIDERS


def get_payment_method_name(provider):
    return PAYMENT_METHOD_NAMES[PaymentProvider(provider)]


def parse_providers(values):
    """
    Convert a list or comma separated string of provider codes to
    PaymentProvider members, dropping blanks. Unknown codes raise ValueError.
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")
    providers = []
    for value in values:
        value = str(value).strip().upper()
        if not value:
            continue
        provider = PaymentProvider(value)
        if provider not in providers:
            providers.append(provider)
    return providers
