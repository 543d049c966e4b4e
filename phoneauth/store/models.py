from dataclasses import dataclass
from typing import Optional

@dataclass
class AuthSession:
    # Opaque id handed to the client as the session cookie
    sessionId: str = ""

    userId: str = ""
    email: str = ""
    organizationId: Optional[str] = None

    # Provider-issued tokens; never logged
    accessToken: str = ""
    refreshToken: str = ""
    authenticationMethod: Optional[str] = None

    createdAtEpoch: int = 0

@dataclass
class PendingAttempt:
    """Ledger entry for an attempt that created platform objects but has not finished."""
    userId: str = ""
    factorId: Optional[str] = None
    organizationId: Optional[str] = None
    startedAtEpoch: int = 0
    orphanedAtEpoch: Optional[int] = None
