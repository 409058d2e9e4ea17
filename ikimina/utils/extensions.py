# ikimina/utils/extensions.py

import os
from flask import request, has_request_context
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .logger import Log


RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")


def _get_client_ip():
    """Safely get client IP, returns 'unknown' if outside request context."""
    if has_request_context():
        return get_remote_address() or "unknown"
    return "unknown"


def _get_member_id():
    try:
        verify_jwt_in_request(optional=True)
        return get_jwt_identity()
    except Exception:
        return None


def member_or_ip_key():
    """Rate limit key: the authenticated member, falling back to the client IP."""
    member_id = _get_member_id()
    if member_id:
        return f"member:{member_id}"
    return f"ip:{_get_client_ip()}"


def _format_time_period(seconds):
    """Convert seconds to human-readable format."""
    if seconds is None:
        return "unknown"

    seconds = int(seconds)

    if seconds < 60:
        return f"{seconds} second{'s' if seconds != 1 else ''}"
    elif seconds < 3600:
        minutes = seconds // 60
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    elif seconds < 86400:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    else:
        days = seconds // 86400
        return f"{days} day{'s' if days != 1 else ''}"


def log_rate_limit_breach(request_limit):
    """
    Called by Flask-Limiter whenever a limit is exceeded.
    """
    client_ip = _get_client_ip()
    member_id = _get_member_id() or "anonymous"

    try:
        limit_amount = request_limit.limit.amount
        limit_per = _format_time_period(request_limit.limit.get_expiry())
        limit_str = f"{limit_amount} per {limit_per}"
    except AttributeError:
        limit_str = str(getattr(request_limit, "limit", "unknown"))

    Log.warning(
        f"[RATE_LIMIT_BREACH][{client_ip}] "
        f"member={member_id}, limit={limit_str}, key={getattr(request_limit, 'key', 'unknown')}, "
        f"method={request.method}, path={request.path}, endpoint={request.endpoint or 'unknown'}"
    )


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"],
    storage_uri=RATE_LIMIT_STORAGE_URI,
    on_breach=log_rate_limit_breach,
)
