import time
from typing import Optional

import phoneauth.observability.metrics as metrics
from phoneauth.observability.logging import log
from phoneauth.settings import settings
from phoneauth.store import attempt_ledger


def reconcile_abandoned_attempts_job(max_age_sec: Optional[int] = None) -> int:
    """
    Background job: move attempts that never reached a session onto the orphan
    list for administrators. Nothing is deleted on the identity platform.
    Returns the number of attempts flagged.
    """
    max_age = int(max_age_sec if max_age_sec is not None else settings.ORPHAN_MAX_AGE_SEC)
    cutoff = int(time.time()) - max_age
    log(event="reconcile_job_start", maxAgeSec=max_age, cutoffEpoch=cutoff)

    stale = attempt_ledger.pop_stale_attempts(cutoff)
    attempt_ledger.record_orphans(stale, keep=settings.ORPHAN_LIST_MAX)

    for entry in stale:
        log(
            event="phone_attempt_orphaned",
            userId=entry.userId,
            factorId=entry.factorId,
            organizationId=entry.organizationId,
            startedAtEpoch=entry.startedAtEpoch,
        )
    if stale:
        metrics.increment(metrics.ORPHANS_DETECTED, len(stale))

    log(event="reconcile_job_done", flagged=len(stale))
    return len(stale)
