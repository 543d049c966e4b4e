# Phone login states. Transitions live in core/orchestrator.py.

# Phone number submitted; nothing exists on the identity platform yet
PHONE_ENTRY = "PhoneEntry"

# User created, waiting for an organization to be picked (organization-gated flow only)
ORGANIZATION_SELECTION = "OrganizationSelection"

# SMS factor registered for the phone number
FACTOR_ENROLLED = "FactorEnrolled"

# One-time code delivered; only the latest challengeId is tracked
CHALLENGE_SENT = "ChallengeSent"

# Platform accepted the code; session bridge not yet done
VERIFIED = "Verified"

# Terminal: session handed to the session bridge
SESSION_ESTABLISHED = "SessionEstablished"

# Terminal for the attempt (InvalidCodeError stays retryable by the caller)
FAILED = "Failed"

TERMINAL_STATES = frozenset({SESSION_ESTABLISHED, FAILED})

# state -> states reachable from it (FAILED is reachable from every non-terminal state)
TRANSITIONS = {
    PHONE_ENTRY: {ORGANIZATION_SELECTION, FACTOR_ENROLLED},
    ORGANIZATION_SELECTION: {FACTOR_ENROLLED},
    FACTOR_ENROLLED: {CHALLENGE_SENT},
    CHALLENGE_SENT: {CHALLENGE_SENT, VERIFIED},
    VERIFIED: {SESSION_ESTABLISHED},
    SESSION_ESTABLISHED: set(),
    FAILED: set(),
}


def can_transition(current: str, target: str) -> bool:
    if target == FAILED:
        return current not in TERMINAL_STATES
    return target in TRANSITIONS.get(current, set())
