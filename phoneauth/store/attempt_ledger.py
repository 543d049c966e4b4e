"""
Ledger of in-flight phone login attempts.

Attempts that created a user (and maybe a factor or membership) on the identity
platform but never reached a session are left there on purpose. The ledger lets
the reconciliation job surface them to administrators instead of rolling back.
"""
import json
import time
from dataclasses import asdict
from typing import List, Optional

from phoneauth.store.models import PendingAttempt
from phoneauth.store.redis_conn import get_redis

K_PENDING_INDEX = "attempts:pending"        # ZSET userId -> startedAtEpoch
K_PENDING_DATA = "attempts:pending:data"    # HASH userId -> PendingAttempt json
K_ORPHANS = "attempts:orphaned"             # LIST of PendingAttempt json (newest first)


def track_attempt(user_id: str, *, factor_id: Optional[str] = None, organization_id: Optional[str] = None) -> PendingAttempt:
    """Record or refresh an attempt. The original start time is kept across updates."""
    r = get_redis()
    started = r.zscore(K_PENDING_INDEX, user_id)
    entry = PendingAttempt(
        userId=user_id,
        factorId=factor_id,
        organizationId=organization_id,
        startedAtEpoch=int(started) if started is not None else int(time.time()),
    )
    raw = r.hget(K_PENDING_DATA, user_id)
    if raw:
        prev = json.loads(raw)
        entry.factorId = entry.factorId or prev.get("factorId")
        entry.organizationId = entry.organizationId or prev.get("organizationId")

    pipe = r.pipeline()
    pipe.zadd(K_PENDING_INDEX, {user_id: entry.startedAtEpoch})
    pipe.hset(K_PENDING_DATA, user_id, json.dumps(asdict(entry)))
    pipe.execute()
    return entry


def complete_attempt(user_id: str) -> None:
    r = get_redis()
    pipe = r.pipeline()
    pipe.zrem(K_PENDING_INDEX, user_id)
    pipe.hdel(K_PENDING_DATA, user_id)
    pipe.execute()


def pop_stale_attempts(older_than_epoch: int) -> List[PendingAttempt]:
    """Remove and return attempts started at or before `older_than_epoch`."""
    r = get_redis()
    user_ids = r.zrangebyscore(K_PENDING_INDEX, "-inf", older_than_epoch) or []
    out: List[PendingAttempt] = []
    for uid in user_ids:
        raw = r.hget(K_PENDING_DATA, uid)
        if raw:
            out.append(PendingAttempt(**json.loads(raw)))
        else:
            score = r.zscore(K_PENDING_INDEX, uid)
            out.append(PendingAttempt(userId=uid, startedAtEpoch=int(score or 0)))
        complete_attempt(uid)
    return out


def record_orphans(entries: List[PendingAttempt], keep: int) -> None:
    if not entries:
        return
    r = get_redis()
    now = int(time.time())
    for e in entries:
        e.orphanedAtEpoch = now
        r.lpush(K_ORPHANS, json.dumps(asdict(e)))
    r.ltrim(K_ORPHANS, 0, max(0, int(keep) - 1))


def list_orphans(limit: int = 100) -> List[PendingAttempt]:
    r = get_redis()
    raw = r.lrange(K_ORPHANS, 0, max(0, int(limit) - 1)) or []
    return [PendingAttempt(**json.loads(x)) for x in raw]
