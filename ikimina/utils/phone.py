import phonenumbers
from phonenumbers import PhoneNumberFormat
from phonenumbers.phonenumberutil import NumberParseException

DEFAULT_REGION = "RW"


def normalize_phone(raw, region=DEFAULT_REGION):
    """
    Parse a national (0788123456) or international (+250788123456) number
    and return it in E.164. Returns None when the number is not valid.
    """
    if not raw:
        return None

    s = str(raw).strip()
    if s.startswith("00"):
        s = "+" + s[2:]

    try:
        num = phonenumbers.parse(s, None if s.startswith("+") else region)
    except NumberParseException:
        return None

    if not phonenumbers.is_valid_number(num):
        return None

    return phonenumbers.format_number(num, PhoneNumberFormat.E164)


def to_msisdn(e164_number):
    """Gateways take the MSISDN without the leading '+'."""
    return e164_number.lstrip("+") if e164_number else e164_number


def to_national_msisdn(e164_number, region=DEFAULT_REGION):
    """Subscriber number without the country code, as Airtel expects."""
    num = phonenumbers.parse(e164_number, region)
    return str(num.national_number)
