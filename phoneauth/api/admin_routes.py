from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Header
from phoneauth.settings import settings
from phoneauth.store import attempt_ledger
from phoneauth.queue.rq_conn import get_queue
from phoneauth.queue.jobs import reconcile_abandoned_attempts_job
import phoneauth.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])

def require_admin(x_admin_key: str = Header(default="", alias="x-admin-key")):
    if not settings.ADMIN_RBAC_ENABLED:
        return
    # Secure default: if enabled but no key configured, reject all.
    if not settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Admin access disabled (no key configured)")
    if x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid admin key")

@router.get("/orphans")
def get_orphans(limit: int = 100, _=Depends(require_admin)):
    """Attempts that created platform objects but never reached a session."""
    entries = attempt_ledger.list_orphans(limit=max(1, min(int(limit), settings.ORPHAN_LIST_MAX)))
    return {"count": len(entries), "orphans": [asdict(e) for e in entries]}

@router.post("/orphans/reconcile")
def reconcile_orphans(maxAgeSec: int = 0, _=Depends(require_admin)):
    """Queue the reconciliation job; it only flags entries, never deletes platform users."""
    max_age = int(maxAgeSec) if maxAgeSec and maxAgeSec > 0 else settings.ORPHAN_MAX_AGE_SEC
    job = get_queue().enqueue(reconcile_abandoned_attempts_job, max_age)
    return {"queued": True, "jobId": job.id, "maxAgeSec": max_age}

@router.get("/metrics")
def get_metrics(_=Depends(require_admin)):
    """Phone login counters backed by Redis."""
    return metrics.get_flow_snapshot()
