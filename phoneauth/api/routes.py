from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from redis.exceptions import RedisError
from starlette.concurrency import run_in_threadpool

import phoneauth.observability.metrics as metrics
from phoneauth.api.auth import require_api_key
from phoneauth.api.errors import record_metric
from phoneauth.api.schemas import (
    ChallengeRequest,
    ChallengeResponse,
    PhoneAttemptResponse,
    SelectOrganizationRequest,
    SignOutResponse,
    SubmitPhoneRequest,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from phoneauth.core import state_machine as sm
from phoneauth.core.attempt import PhoneLoginAttempt
from phoneauth.core.email import synthesize_email
from phoneauth.core.errors import PhoneAuthError
from phoneauth.core.orchestrator import PhoneAuthStateMachine, build_state_machine
from phoneauth.observability.logging import log
from phoneauth.settings import settings
from phoneauth.store import attempt_ledger

router = APIRouter(prefix="/auth", dependencies=[Depends(require_api_key)])


@lru_cache(maxsize=1)
def get_state_machine() -> PhoneAuthStateMachine:
    return build_state_machine()


def _track(attempt: PhoneLoginAttempt) -> None:
    if not attempt.userId:
        return
    try:
        attempt_ledger.track_attempt(
            attempt.userId,
            factor_id=attempt.factorId,
            organization_id=attempt.organizationId,
        )
    except RedisError as e:
        log(event="attempt_ledger_write_failed", userId=attempt.userId, error=str(e)[:200])


def _complete(user_id: str) -> None:
    try:
        attempt_ledger.complete_attempt(user_id)
    except RedisError as e:
        log(event="attempt_ledger_write_failed", userId=user_id, error=str(e)[:200])


def _email_for(machine: PhoneAuthStateMachine, email: Optional[str], phone: Optional[str]) -> str:
    """Use the email the client holds, or re-derive it from the phone number."""
    if email:
        return email.strip()
    if phone and phone.strip():
        return synthesize_email(phone.strip(), machine.email_domain)
    return ""


def _attempt_response(attempt: PhoneLoginAttempt) -> PhoneAttemptResponse:
    return PhoneAttemptResponse(**attempt.to_dict())


@router.post("/phone", response_model=PhoneAttemptResponse)
async def submit_phone(body: SubmitPhoneRequest, machine: PhoneAuthStateMachine = Depends(get_state_machine)):
    """Create the user for a phone number; in the base flow also enroll and send the first code."""
    record_metric(metrics.increment, metrics.SUBMITTED)
    try:
        attempt = await run_in_threadpool(
            machine.submit_phone,
            body.phoneNumber or "",
            first_name=body.firstName,
            last_name=body.lastName,
        )
    except PhoneAuthError as e:
        # The user may already exist upstream when enrollment or the first challenge fails
        if e.attempt is not None:
            _track(e.attempt)
        raise
    _track(attempt)
    if attempt.state == sm.CHALLENGE_SENT:
        record_metric(metrics.increment, metrics.CHALLENGE_SENT)
    return _attempt_response(attempt)


@router.post("/phone/organization", response_model=PhoneAttemptResponse)
async def select_organization(body: SelectOrganizationRequest, machine: PhoneAuthStateMachine = Depends(get_state_machine)):
    attempt = PhoneLoginAttempt(
        phoneNumber=(body.phoneNumber or "").strip(),
        synthesizedEmail=_email_for(machine, body.email, body.phoneNumber),
        userId=body.userId,
        state=sm.ORGANIZATION_SELECTION,
    )
    try:
        attempt = await run_in_threadpool(machine.select_organization, attempt, body.organizationId)
    except PhoneAuthError as e:
        if e.attempt is not None:
            _track(e.attempt)
        raise
    _track(attempt)
    record_metric(metrics.increment, metrics.ORGANIZATION_SELECTED)
    record_metric(metrics.increment, metrics.CHALLENGE_SENT)
    return _attempt_response(attempt)


@router.post("/phone/challenge", response_model=ChallengeResponse)
async def challenge(body: ChallengeRequest, machine: PhoneAuthStateMachine = Depends(get_state_machine)):
    """Send a new SMS code for an enrolled factor. Only the returned challengeId should be verified."""
    resend = bool(body.challengeId)
    attempt = PhoneLoginAttempt(
        factorId=body.factorId,
        challengeId=body.challengeId,
        state=sm.CHALLENGE_SENT if resend else sm.FACTOR_ENROLLED,
    )
    attempt = await run_in_threadpool(machine.challenge_factor, attempt, body.smsTemplate)
    record_metric(metrics.increment, metrics.CHALLENGE_RESENT if resend else metrics.CHALLENGE_SENT)
    return ChallengeResponse(factorId=attempt.factorId, challengeId=attempt.challengeId)


@router.post("/phone/verify", response_model=VerifyCodeResponse)
async def verify(body: VerifyCodeRequest, response: Response, machine: PhoneAuthStateMachine = Depends(get_state_machine)):
    attempt = PhoneLoginAttempt(
        phoneNumber=(body.phoneNumber or "").strip(),
        synthesizedEmail=_email_for(machine, body.email, body.phoneNumber),
        userId=body.userId,
        organizationId=body.organizationId,
        challengeId=body.challengeId,
        state=sm.CHALLENGE_SENT,
    )
    attempt, result = await run_in_threadpool(machine.verify_code, attempt, body.code or "")

    response.set_cookie(
        settings.COOKIE_NAME,
        result.sessionId,
        max_age=settings.SESSION_TTL_SEC,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    _complete(result.userId)
    record_metric(metrics.increment, metrics.SESSION_ESTABLISHED)
    return VerifyCodeResponse(
        state=attempt.state,
        userId=result.userId,
        organizationId=result.organizationId,
        valid=True,
    )


@router.post("/sign-out", response_model=SignOutResponse)
async def sign_out(request: Request, response: Response, machine: PhoneAuthStateMachine = Depends(get_state_machine)):
    session_id = request.cookies.get(settings.COOKIE_NAME, "")
    signed_out = False
    if session_id:
        signed_out = await run_in_threadpool(machine.session_bridge.terminate, session_id)
    response.delete_cookie(settings.COOKIE_NAME, path="/")
    return SignOutResponse(signedOut=bool(signed_out))
