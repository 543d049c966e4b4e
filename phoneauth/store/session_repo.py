import inspect
import json
from typing import Optional

from phoneauth.store.models import AuthSession
from phoneauth.store.redis_conn import get_redis

PREFIX = "auth_session:"


def _key(session_id: str) -> str:
    return f"{PREFIX}{session_id}"


def _filter_session_kwargs(data: dict) -> dict:
    """
    Drop unknown fields so AuthSession(**kwargs) never explodes on older records
    """
    sig = inspect.signature(AuthSession)
    allowed = set(sig.parameters.keys())
    return {k: v for k, v in data.items() if k in allowed}


def load_auth_session(session_id: str) -> Optional[AuthSession]:
    if not session_id:
        return None
    r = get_redis()
    raw = r.get(_key(session_id))
    if not raw:
        return None
    return AuthSession(**_filter_session_kwargs(json.loads(raw)))


def save_auth_session(session: AuthSession, ttl_sec: int) -> None:
    r = get_redis()
    r.set(_key(session.sessionId), json.dumps(session.__dict__), ex=int(ttl_sec))


def delete_auth_session(session_id: str) -> bool:
    if not session_id:
        return False
    r = get_redis()
    return bool(r.delete(_key(session_id)))
