import time
import uuid
from typing import Protocol

from phoneauth.identity.models import AuthenticationResponse
from phoneauth.observability.logging import log
from phoneauth.store.models import AuthSession
from phoneauth.store.session_repo import delete_auth_session, load_auth_session, save_auth_session


class SessionBridge(Protocol):
    """Sole writer of durable session state."""

    def persist(self, response: AuthenticationResponse) -> str: ...

    def terminate(self, session_id: str) -> bool: ...


class RedisSessionBridge:
    """
    Stores the authentication response under an opaque random id.
    The API layer hands that id to the browser as an HttpOnly cookie.
    """

    def __init__(self, ttl_sec: int):
        self.ttl_sec = int(ttl_sec)

    def persist(self, response: AuthenticationResponse) -> str:
        session = AuthSession(
            sessionId=uuid.uuid4().hex,
            userId=response.user.id,
            email=response.user.email,
            organizationId=response.organizationId,
            accessToken=response.accessToken,
            refreshToken=response.refreshToken,
            authenticationMethod=response.authenticationMethod,
            createdAtEpoch=int(time.time()),
        )
        save_auth_session(session, self.ttl_sec)
        log(
            event="auth_session_saved",
            sessionId=session.sessionId,
            userId=session.userId,
            organizationId=session.organizationId,
            ttlSec=self.ttl_sec,
        )
        return session.sessionId

    def terminate(self, session_id: str) -> bool:
        session = load_auth_session(session_id)
        deleted = delete_auth_session(session_id)
        log(
            event="auth_session_terminated",
            sessionId=session_id,
            userId=session.userId if session else None,
            deleted=bool(deleted),
        )
        return deleted
