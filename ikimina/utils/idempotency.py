# utils/idempotency.py
"""
Replay store for `Idempotency-Key` headers on payment initiation.

The key is reserved in Redis (SET NX) before any gateway call, so a retry
that arrives while the first request is still running is refused instead
of sending a second charge prompt. Once the first request finishes, its
response replaces the reservation and is replayed for
IDEMPOTENCY_TTL_SECONDS to retries carrying the same body.
"""

import hashlib
import json
import re

from redis.exceptions import RedisError

from ..extensions.db import redis_connection
from .logger import Log

IDEMPOTENCY_HEADER = "Idempotency-Key"
DEFAULT_TTL_SECONDS = 86400

STATE_IN_PROGRESS = "in_progress"
STATE_COMPLETED = "completed"

SAFE_CHARS = re.compile(r"[^a-zA-Z0-9:_\-\.]")


def _sanitize(part):
    s = str(part).strip().replace(" ", "-").lower()
    return SAFE_CHARS.sub("", s)


def _short_hash(value, length=24):
    return hashlib.sha256(str(value).encode()).hexdigest()[:length]


def build_idempotency_key(member_id, header_value, scope="contribution"):
    # header values are client supplied; hash them so key length is bounded
    return f"idem:{_sanitize(scope)}:{_sanitize(member_id)}:{_short_hash(header_value)}"


def request_fingerprint(payload):
    """Stable hash of a request body; a reused key must carry the same one."""
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return _short_hash(raw)


def reserve_key(key, fingerprint, ttl=DEFAULT_TTL_SECONDS):
    """
    Claim key for a new request. Returns False when another request already
    holds it (finished or still running).
    """
    cache = redis_connection.connection
    if cache is None:
        return True
    record = json.dumps({"state": STATE_IN_PROGRESS, "fingerprint": fingerprint})
    try:
        return bool(cache.set(key, record, nx=True, ex=ttl))
    except RedisError as e:
        Log.error(f"[idempotency.py][reserve_key] Redis error: {e}")
        return True


def release_key(key):
    cache = redis_connection.connection
    if cache is None:
        return
    try:
        cache.delete(key)
    except RedisError as e:
        Log.error(f"[idempotency.py][release_key] Redis error: {e}")


def get_stored_response(key):
    """Return the stored record for key ({state, fingerprint, body, status_code}), or None."""
    cache = redis_connection.connection
    if cache is None:
        return None
    try:
        raw = cache.get(key)
    except RedisError as e:
        Log.error(f"[idempotency.py][get_stored_response] Redis error: {e}")
        return None
    if not raw:
        return None
    return json.loads(raw)


def store_response(key, body, status_code, fingerprint=None, ttl=DEFAULT_TTL_SECONDS):
    cache = redis_connection.connection
    if cache is None:
        return False
    record = {
        "state": STATE_COMPLETED,
        "fingerprint": fingerprint,
        "body": body,
        "status_code": status_code,
    }
    try:
        cache.setex(key, ttl, json.dumps(record, default=str))
        return True
    except RedisError as e:
        Log.error(f"[idempotency.py][store_response] Redis error: {e}")
        return False
