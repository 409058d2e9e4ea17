# ikimina/services/notifications/sms_service.py
"""
Twilio SMS delivery for contribution receipts and failure notices.

Jobs run on an RQ worker (queue `sms`) without a Flask app context, so
everything they need travels in the job arguments and Twilio credentials
come from the environment:

- TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN
- TWILIO_FROM   sender number in E.164
"""

import os

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from ...utils.currency import format_currency
from ...utils.helpers import mask_phone
from ...utils.logger import Log


def _twilio_client():
    account_sid = os.getenv("TWILIO_ACCOUNT_SID")
    auth_token = os.getenv("TWILIO_AUTH_TOKEN")
    if not (account_sid and auth_token):
        raise RuntimeError("TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN must be set")
    return Client(account_sid, auth_token)


def build_receipt_sms(group_name, amount, currency, reference, locale="en_RW"):
    return (
        f"Ikimina: your contribution of {format_currency(amount, currency, locale=locale)} "
        f"to {group_name} was received. Receipt: {reference}."
    )


def build_failure_sms(group_name, amount, currency, reference, locale="en_RW"):
    return (
        f"Ikimina: your contribution of {format_currency(amount, currency, locale=locale)} "
        f"to {group_name} has failed. Reference: {reference}. Please try again."
    )


def send_sms(to, body):
    log_tag = "[sms_service.py][send_sms]"
    try:
        message = _twilio_client().messages.create(
            to=to,
            from_=os.getenv("TWILIO_FROM"),
            body=body,
        )
        Log.info(f"{log_tag} sent to={mask_phone(to)} sid={message.sid}")
        return message.sid
    except TwilioRestException as e:
        Log.error(f"{log_tag} Twilio error to={mask_phone(to)} code={e.code} msg={e.msg}")
        raise


def send_contribution_receipt_sms(*, phone_number, group_name, amount, currency, reference, locale="en_RW"):
    """RQ job: text the member a receipt once the provider confirms the payment."""
    log_tag = "[sms_service.py][send_contribution_receipt_sms]"
    Log.info(f"{log_tag} starting | reference={reference}")

    body = build_receipt_sms(group_name, amount, currency, reference, locale=locale)
    sid = send_sms(phone_number, body)

    Log.info(f"{log_tag} finished OK | reference={reference}")
    return sid


def send_contribution_failed_sms(*, phone_number, group_name, amount, currency, reference, locale="en_RW"):
    """RQ job: tell the member a contribution was rejected or timed out."""
    log_tag = "[sms_service.py][send_contribution_failed_sms]"
    Log.info(f"{log_tag} starting | reference={reference}")

    body = build_failure_sms(group_name, amount, currency, reference, locale=locale)
    sid = send_sms(phone_number, body)

    Log.info(f"{log_tag} finished OK | reference={reference}")
    return sid
