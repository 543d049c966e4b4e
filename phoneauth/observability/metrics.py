"""
Phone login flow counters
-------------------------
Redis INCR counters per flow event plus a snapshot consumed by /admin/metrics.
Missing keys (first boot) read as zero.
"""
from __future__ import annotations
import time
from typing import Dict
from phoneauth.store.redis_conn import get_redis

K_PREFIX = "metrics:phone:"

SUBMITTED = "submitted"
ORGANIZATION_SELECTED = "organization_selected"
CHALLENGE_SENT = "challenge_sent"
CHALLENGE_RESENT = "challenge_resent"
CODE_INVALID = "code_invalid"
VALIDATION_ERROR = "validation_error"
PROVIDER_ERROR = "provider_error"
BRIDGE_FAILED = "bridge_failed"
SESSION_ESTABLISHED = "session_established"
ORPHANS_DETECTED = "orphans_detected"

COUNTERS = (
    SUBMITTED,
    ORGANIZATION_SELECTED,
    CHALLENGE_SENT,
    CHALLENGE_RESENT,
    CODE_INVALID,
    VALIDATION_ERROR,
    PROVIDER_ERROR,
    BRIDGE_FAILED,
    SESSION_ESTABLISHED,
    ORPHANS_DETECTED,
)

# Error kind (PhoneAuthError.kind) -> counter
ERROR_COUNTERS = {
    "validation_error": VALIDATION_ERROR,
    "provider_error": PROVIDER_ERROR,
    "invalid_code": CODE_INVALID,
    "session_bridge_failed": BRIDGE_FAILED,
}


def _key(name: str) -> str:
    return f"{K_PREFIX}{name}"


def increment(name: str, amount: int = 1) -> None:
    r = get_redis()
    r.incr(_key(name), int(amount))


def increment_error(kind: str) -> None:
    name = ERROR_COUNTERS.get(kind)
    if name:
        increment(name)


def get_flow_snapshot() -> dict:
    r = get_redis()
    values = r.mget([_key(n) for n in COUNTERS]) or []
    counts: Dict[str, int] = {}
    for name, raw in zip(COUNTERS, values):
        try:
            counts[name] = int(raw or 0)
        except (TypeError, ValueError):
            counts[name] = 0

    submitted = counts.get(SUBMITTED, 0)
    established = counts.get(SESSION_ESTABLISHED, 0)
    rate = (established / submitted) * 100.0 if submitted > 0 else 0.0

    return {
        "counters": counts,
        "session_established_rate": round(rate, 3),
        "snapshot_at": int(time.time()),
    }
