import secrets
import uuid
from datetime import datetime


def generate_internal_reference(prefix="IKIM"):
    """Reference sent to the gateway as external id, e.g. IKIM-20261019083000-9f2c1ab4."""
    formatted_date = datetime.utcnow().strftime('%Y%m%d%H%M%S')
    return f"{prefix}-{formatted_date}-{secrets.token_hex(4)}"


def generate_gateway_request_id():
    """MTN MoMo requires a UUID4 X-Reference-Id per request-to-pay."""
    return str(uuid.uuid4())


def generate_airtel_transaction_id():
    formatted_date = datetime.utcnow().strftime('%Y%m%d%H%M%S')
    return f"AIRTEL-{formatted_date}-{secrets.token_hex(4)}"
