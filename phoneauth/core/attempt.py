from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from phoneauth.core import state_machine as sm


@dataclass(frozen=True)
class PhoneLoginAttempt:
    """
    Caller-held correlation state for one login attempt.
    Never persisted server-side; each transition returns a new record.
    """
    phoneNumber: str = ""
    synthesizedEmail: str = ""
    userId: Optional[str] = None
    organizationId: Optional[str] = None
    factorId: Optional[str] = None
    challengeId: Optional[str] = None
    state: str = sm.PHONE_ENTRY
    # Last failure kind, set when state is FAILED
    error: Optional[str] = None

    def advance(self, state: str, **changes: Any) -> "PhoneLoginAttempt":
        if not sm.can_transition(self.state, state):
            raise RuntimeError(f"illegal transition {self.state} -> {state}")
        return replace(self, state=state, **changes)

    def fail(self, kind: str) -> "PhoneLoginAttempt":
        return replace(self, state=sm.FAILED, error=kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "userId": self.userId,
            "organizationId": self.organizationId,
            "factorId": self.factorId,
            "challengeId": self.challengeId,
            "email": self.synthesizedEmail,
        }


@dataclass(frozen=True)
class AuthenticationResult:
    """Terminal artifact of a successful attempt. The session itself belongs to the session bridge."""
    userId: str
    email: str
    organizationId: Optional[str] = None
    sessionId: Optional[str] = None
