from typing import Literal, Optional
from pydantic import BaseModel

Status = Literal["success", "error"]

# Request fields are optional on purpose: missing input is reported by the
# state machine as a ValidationError with a message the UI can show.

class SubmitPhoneRequest(BaseModel):
    phoneNumber: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None

class SelectOrganizationRequest(BaseModel):
    userId: Optional[str] = None
    organizationId: Optional[str] = None
    phoneNumber: Optional[str] = None
    # Re-derived from phoneNumber when omitted
    email: Optional[str] = None

class ChallengeRequest(BaseModel):
    factorId: Optional[str] = None
    smsTemplate: Optional[str] = None
    # Challenge being replaced, when this is a resend
    challengeId: Optional[str] = None

class VerifyCodeRequest(BaseModel):
    challengeId: Optional[str] = None
    code: Optional[str] = None
    email: Optional[str] = None
    phoneNumber: Optional[str] = None
    userId: Optional[str] = None
    organizationId: Optional[str] = None

class PhoneAttemptResponse(BaseModel):
    status: Status = "success"
    state: str
    userId: Optional[str] = None
    organizationId: Optional[str] = None
    factorId: Optional[str] = None
    challengeId: Optional[str] = None
    email: Optional[str] = None

class ChallengeResponse(BaseModel):
    status: Status = "success"
    factorId: str
    challengeId: str

class VerifyCodeResponse(BaseModel):
    status: Status = "success"
    state: str
    userId: str
    organizationId: Optional[str] = None
    valid: bool = True

class SignOutResponse(BaseModel):
    status: Status = "success"
    signedOut: bool

class ErrorResponse(BaseModel):
    status: Status = "error"
    error: str
    message: str
    state: str
    retryable: bool = False
