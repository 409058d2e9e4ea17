# schemas/payment_schema.py

from flask import current_app, has_app_context
from marshmallow import (
    Schema, fields, validate, validates_schema, post_load, ValidationError, EXCLUDE
)
from ..constants.payment_methods import (
    get_all_payment_providers, is_mobile_money, PaymentProvider
)
from ..constants.service_code import TRANSACTION_STATUS
from ..utils.phone import normalize_phone, DEFAULT_REGION


def _phone_region():
    if has_app_context():
        return current_app.config.get("PHONE_REGION", DEFAULT_REGION)
    return DEFAULT_REGION


class InitiateContributionSchema(Schema):
    """Schema for initiating a contribution payment."""

    class Meta:
        unknown = EXCLUDE

    group_id = fields.Str(
        required=True,
        validate=validate.Regexp(r"^[0-9a-fA-F]{24}$", error="Invalid group ID"),
        error_messages={"required": "Group ID is required"}
    )

    cycle_period = fields.Str(required=False, allow_none=True, validate=validate.Length(min=1, max=120))

    amount = fields.Float(
        required=True,
        validate=validate.Range(min=0, min_inclusive=False, error="Amount must be greater than 0"),
        error_messages={"required": "Amount is required"}
    )

    provider = fields.Str(
        required=True,
        validate=validate.OneOf(get_all_payment_providers()),
        error_messages={"required": "Payment method is required"}
    )

    phone_number = fields.Str(required=False, allow_none=True)

    @validates_schema
    def validate_phone_for_mobile_money(self, data, **kwargs):
        provider = data.get("provider")
        phone_number = data.get("phone_number")

        if provider and is_mobile_money(provider):
            if not phone_number:
                raise ValidationError("Phone number is required", "phone_number")

        if phone_number and normalize_phone(phone_number, _phone_region()) is None:
            raise ValidationError("Please enter a valid phone number", "phone_number")

    @post_load
    def normalize(self, data, **kwargs):
        data["provider"] = PaymentProvider(data["provider"])
        if data.get("phone_number"):
            data["phone_number"] = normalize_phone(data["phone_number"], _phone_region())
        return data


class ContributionResultSchema(Schema):
    """Fields required before a confirmation can be shown."""

    transaction_id = fields.Str(required=True, validate=validate.Length(min=1))
    amount = fields.Float(required=True, validate=validate.Range(min=0))
    currency = fields.Str(load_default="RWF", validate=validate.Length(equal=3))
    phone_number = fields.Str(required=True, validate=validate.Length(min=1))
    payment_method = fields.Str(required=True, validate=validate.Length(min=1))
    group_name = fields.Str(required=True, validate=validate.Length(min=1))
    cycle_period = fields.Str(required=False, allow_none=True, load_default=None)


class PaymentHistoryQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    group_id = fields.Str(required=False, validate=validate.Regexp(r"^[0-9a-fA-F]{24}$", error="Invalid group ID"))
    status = fields.Str(required=False, validate=validate.OneOf(list(TRANSACTION_STATUS.values())))
    page = fields.Int(load_default=1, validate=validate.Range(min=1))
    limit = fields.Int(load_default=10, validate=validate.Range(min=1, max=100))


class PaymentMethodsQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    selected = fields.Str(load_default=PaymentProvider.MTN.value, validate=validate.OneOf(get_all_payment_providers()))
    available = fields.Str(required=False)

    @validates_schema
    def validate_available(self, data, **kwargs):
        valid = set(get_all_payment_providers())
        for code in (data.get("available") or "").split(","):
            code = code.strip().upper()
            if code and code not in valid:
                raise ValidationError(f"Unknown payment method: {code}", "available")
