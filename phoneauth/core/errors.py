"""
Error taxonomy for the phone login flow.

ValidationError and InvalidCodeError carry actionable messages for the end user.
ProviderError and SessionBridgeError carry a generic message; the provider
detail stays in `detail` for logs only.
"""
from typing import Optional

from phoneauth.core.attempt import PhoneLoginAttempt


class PhoneAuthError(Exception):
    kind = "phone_auth_error"
    retryable = False
    public_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, *, attempt: Optional[PhoneLoginAttempt] = None, detail: str = ""):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.attempt = attempt
        self.detail = detail


class ValidationError(PhoneAuthError):
    """Missing input for the current step; never sent upstream."""
    kind = "validation_error"
    retryable = True


class ProviderError(PhoneAuthError):
    kind = "provider_error"
    public_message = "We couldn't complete that step. Please try again."

    def __init__(self, step: str, *, attempt: Optional[PhoneLoginAttempt] = None, detail: str = "", status_code: int = 0, code: str = ""):
        super().__init__(attempt=attempt, detail=detail)
        self.step = step
        self.status_code = status_code
        self.code = code


class InvalidCodeError(PhoneAuthError):
    """User-correctable: retry the same challenge or request a new code."""
    kind = "invalid_code"
    retryable = True
    public_message = "Invalid verification code"

    MESSAGES = {
        "invalid_code": "Invalid verification code",
        "challenge_expired": "This verification code has expired. Request a new code.",
    }

    def __init__(self, reason: str = "invalid_code", *, attempt: Optional[PhoneLoginAttempt] = None, detail: str = ""):
        super().__init__(self.MESSAGES.get(reason, self.public_message), attempt=attempt, detail=detail)
        self.reason = reason


class SessionBridgeError(PhoneAuthError):
    """The code was accepted but the magic-auth exchange or session persist failed."""
    kind = "session_bridge_failed"
    public_message = "Your code was correct, but we couldn't finish signing you in. Please start again."
