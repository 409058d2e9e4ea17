import math
from decimal import Decimal, ROUND_HALF_UP


def make_log_tag(file, resource, method, ip, member_id, **kwargs):
    log_tag = (
        f"[{file}]"
        f"[{resource}]"
        f"[{method}]"
        f"[ip:{ip}]"
        f"[member:{member_id}]"
    )

    # Append extra context fields
    for key, value in kwargs.items():
        log_tag += f"[{key}:{value}]"

    return log_tag


def calculate_contribution_fee(amount, percentage, minimum_fee=None, maximum_fee=None):
    """
    Percentage fee on a contribution, clamped to [minimum_fee, maximum_fee]
    and rounded half-up to a whole currency unit.
    """
    fee = Decimal(str(amount)) * Decimal(str(percentage)) / Decimal("100")

    if minimum_fee and fee < Decimal(str(minimum_fee)):
        fee = Decimal(str(minimum_fee))
    if maximum_fee and fee > Decimal(str(maximum_fee)):
        fee = Decimal(str(maximum_fee))

    return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def paginate(total, page, limit):
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def mask_phone(phone_number):
    """Keep the last four digits of a phone number for logs."""
    if not phone_number:
        return phone_number
    return f"{'*' * max(len(phone_number) - 4, 0)}{phone_number[-4:]}"
