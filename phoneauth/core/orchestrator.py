"""
Phone login orchestration
-------------------------
Drives the identity platform through the passwordless phone flow:

    submit_phone -> [select_organization] -> enroll_factor -> challenge_factor
        -> verify_challenge -> bridge_session

The platform is email-centric, so each phone number gets a synthetic email.
Verifying an SMS challenge does not produce a session on its own; after a valid
code the machine issues a magic-auth code for the synthetic email and redeems it
immediately, server-side. The end user never sees that second code.

Every transition takes the caller-held PhoneLoginAttempt and returns a new one.
Nothing is retried here and nothing is rolled back: users, factors and
memberships created before a failure stay on the platform.
"""
from dataclasses import replace
from typing import Optional, Tuple

from phoneauth.core import state_machine as sm
from phoneauth.core.attempt import AuthenticationResult, PhoneLoginAttempt
from phoneauth.core.email import synthesize_email
from phoneauth.core.errors import (
    InvalidCodeError,
    PhoneAuthError,
    ProviderError,
    SessionBridgeError,
    ValidationError,
)
from phoneauth.core.membership import OrganizationMembershipGate
from phoneauth.identity.client import IdentityPlatformClient, IdentityPlatformError, get_identity_client
from phoneauth.observability.logging import log
from phoneauth.session.bridge import RedisSessionBridge, SessionBridge
from phoneauth.settings import settings

DEFAULT_SMS_TEMPLATE = "Your verification code is {{code}}"

# Platform error codes meaning the challenge can no longer be verified
EXPIRED_CHALLENGE_CODES = frozenset({
    "authentication_challenge_expired",
    "authentication_challenge_previously_verified",
})


class PhoneAuthStateMachine:
    def __init__(
        self,
        client: IdentityPlatformClient,
        session_bridge: SessionBridge,
        *,
        email_domain: str,
        client_id: str,
        membership_role: Optional[str] = None,
        organization_required: bool = False,
        sms_template: str = DEFAULT_SMS_TEMPLATE,
    ):
        self.client = client
        self.session_bridge = session_bridge
        self.email_domain = email_domain
        self.client_id = client_id
        self.organization_required = bool(organization_required)
        self.sms_template = sms_template or DEFAULT_SMS_TEMPLATE
        self.membership_gate = OrganizationMembershipGate(client, membership_role)

    # -- helpers ----------------------------------------------------------

    def _fail(self, attempt: PhoneLoginAttempt, err: PhoneAuthError, step: str) -> PhoneAuthError:
        err.attempt = attempt.fail(err.kind)
        log(
            event="phone_attempt_failed",
            step=step,
            kind=err.kind,
            fromState=attempt.state,
            userId=attempt.userId,
            factorId=attempt.factorId,
            challengeId=attempt.challengeId,
            organizationId=attempt.organizationId,
            errorCode=getattr(err, "code", "") or None,
            detail=err.detail[:500] if err.detail else "",
        )
        return err

    def _provider_error(self, attempt: PhoneLoginAttempt, step: str, e: IdentityPlatformError) -> PhoneAuthError:
        return self._fail(
            attempt,
            ProviderError(step, detail=str(e), status_code=e.status_code, code=e.code),
            step,
        )

    def _require(self, attempt: PhoneLoginAttempt, step: str, ok: bool, message: str) -> None:
        if not ok:
            raise self._fail(attempt, ValidationError(message), step)

    def _require_state(self, attempt: PhoneLoginAttempt, step: str, *allowed: str) -> None:
        self._require(
            attempt,
            step,
            attempt.state in allowed,
            f"This step is not available right now (state {attempt.state}).",
        )

    # -- transitions ------------------------------------------------------

    def submit_phone(
        self,
        phone_number: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> PhoneLoginAttempt:
        """
        Create the platform user for a phone number.

        Base flow continues straight through enrollment and the first challenge
        (ending in ChallengeSent). The organization-gated flow stops at
        OrganizationSelection with only userId assigned.
        """
        phone = (phone_number or "").strip()
        attempt = PhoneLoginAttempt(phoneNumber=phone)
        self._require(attempt, "submit_phone", bool(phone), "Please enter your phone number.")

        email = synthesize_email(phone, self.email_domain)
        attempt = replace(attempt, synthesizedEmail=email)

        try:
            # The platform asserts email ownership; the phone channel is the real proof
            user = self.client.create_user(
                email,
                first_name=first_name,
                last_name=last_name,
                email_verified=True,
            )
        except IdentityPlatformError as e:
            raise self._provider_error(attempt, "create_user", e)

        log(event="phone_user_created", userId=user.id, email=email, phoneNumber=phone)

        if self.organization_required:
            return attempt.advance(sm.ORGANIZATION_SELECTION, userId=user.id)

        attempt = replace(attempt, userId=user.id)
        attempt = self.enroll_factor(attempt)
        return self.challenge_factor(attempt)

    def select_organization(self, attempt: PhoneLoginAttempt, organization_id: Optional[str]) -> PhoneLoginAttempt:
        """Attach the user to an organization, then enroll and challenge the SMS factor."""
        step = "select_organization"
        self._require_state(attempt, step, sm.ORGANIZATION_SELECTION)
        self._require(attempt, step, bool(attempt.phoneNumber), "Phone number is missing for this attempt.")
        self._require(attempt, step, bool(attempt.synthesizedEmail), "Email is missing for this attempt.")

        try:
            self.membership_gate.attach(attempt.userId, organization_id)
        except ValidationError as e:
            raise self._fail(attempt, e, step)
        except IdentityPlatformError as e:
            raise self._provider_error(attempt, "create_organization_membership", e)

        attempt = replace(attempt, organizationId=organization_id)
        attempt = self.enroll_factor(attempt)
        return self.challenge_factor(attempt)

    def enroll_factor(self, attempt: PhoneLoginAttempt) -> PhoneLoginAttempt:
        step = "enroll_factor"
        self._require_state(attempt, step, sm.PHONE_ENTRY, sm.ORGANIZATION_SELECTION)
        self._require(attempt, step, bool(attempt.userId), "A user must be created before enrolling a factor.")
        self._require(attempt, step, bool(attempt.phoneNumber), "Please enter your phone number.")
        if self.organization_required:
            self._require(attempt, step, bool(attempt.organizationId), "Please select an organization.")

        try:
            # E.164 formatting is the caller's responsibility
            factor = self.client.enroll_factor(attempt.phoneNumber, type="sms")
        except IdentityPlatformError as e:
            raise self._provider_error(attempt, step, e)

        log(event="phone_factor_enrolled", userId=attempt.userId, factorId=factor.id)
        return attempt.advance(sm.FACTOR_ENROLLED, factorId=factor.id)

    def challenge_factor(self, attempt: PhoneLoginAttempt, sms_template: Optional[str] = None) -> PhoneLoginAttempt:
        """
        Send (or re-send) the SMS code. The new challengeId replaces the old one;
        the platform decides whether a superseded challenge is still verifiable.
        """
        step = "challenge_factor"
        self._require_state(attempt, step, sm.FACTOR_ENROLLED, sm.CHALLENGE_SENT)
        self._require(attempt, step, bool(attempt.factorId), "No SMS factor is enrolled for this attempt.")

        try:
            challenge = self.client.challenge_factor(attempt.factorId, sms_template or self.sms_template)
        except IdentityPlatformError as e:
            raise self._provider_error(attempt, step, e)

        log(
            event="phone_challenge_sent",
            factorId=attempt.factorId,
            challengeId=challenge.id,
            resend=attempt.state == sm.CHALLENGE_SENT,
            supersedes=attempt.challengeId,
        )
        return attempt.advance(sm.CHALLENGE_SENT, challengeId=challenge.id)

    def resend_challenge(self, attempt: PhoneLoginAttempt, sms_template: Optional[str] = None) -> PhoneLoginAttempt:
        return self.challenge_factor(attempt, sms_template)

    def verify_challenge(self, attempt: PhoneLoginAttempt, code: str) -> PhoneLoginAttempt:
        """
        Submit the code. On InvalidCodeError the caller may retry with the
        record it passed in (still ChallengeSent) or request a new challenge.
        """
        step = "verify_challenge"
        code = (code or "").strip()
        self._require_state(attempt, step, sm.CHALLENGE_SENT)
        self._require(attempt, step, bool(attempt.challengeId), "No verification code has been sent yet.")
        self._require(attempt, step, bool(code), "Please enter the verification code.")

        try:
            resp = self.client.verify_challenge(attempt.challengeId, code)
        except IdentityPlatformError as e:
            if e.code in EXPIRED_CHALLENGE_CODES:
                log(event="phone_code_invalid", challengeId=attempt.challengeId, userId=attempt.userId, reason="challenge_expired")
                raise self._fail(attempt, InvalidCodeError("challenge_expired", detail=str(e)), step)
            raise self._provider_error(attempt, step, e)

        if not resp.valid:
            log(event="phone_code_invalid", challengeId=attempt.challengeId, userId=attempt.userId)
            raise self._fail(attempt, InvalidCodeError("invalid_code"), step)

        log(event="phone_challenge_verified", challengeId=attempt.challengeId, userId=attempt.userId)
        return attempt.advance(sm.VERIFIED)

    def bridge_session(self, attempt: PhoneLoginAttempt) -> Tuple[PhoneLoginAttempt, AuthenticationResult]:
        """
        Turn a verified MFA check into a session: create a magic-auth code for the
        synthetic email, redeem it at once, hand the response to the session bridge.
        Any failure here is terminal even though the user's code was correct.
        """
        step = "bridge_session"
        self._require_state(attempt, step, sm.VERIFIED)
        email = attempt.synthesizedEmail
        if not email:
            raise self._fail(attempt, SessionBridgeError(detail="synthesized email missing"), step)
        if not self.client_id:
            raise self._fail(attempt, SessionBridgeError(detail="WORKOS_CLIENT_ID is not set"), step)

        try:
            magic = self.client.create_magic_auth(email)
            response = self.client.authenticate_with_magic_auth(self.client_id, email, magic.code)
        except IdentityPlatformError as e:
            raise self._fail(attempt, SessionBridgeError(detail=str(e)), step)

        if attempt.userId and response.user.id != attempt.userId:
            raise self._fail(
                attempt,
                SessionBridgeError(detail=f"authenticated user {response.user.id} != attempt user {attempt.userId}"),
                step,
            )

        try:
            session_id = self.session_bridge.persist(response)
        except Exception as e:
            raise self._fail(attempt, SessionBridgeError(detail=f"{type(e).__name__}: {e}"), step) from e

        organization_id = response.organizationId or attempt.organizationId
        result = AuthenticationResult(
            userId=response.user.id,
            email=email,
            organizationId=organization_id,
            sessionId=session_id,
        )
        attempt = attempt.advance(
            sm.SESSION_ESTABLISHED,
            userId=response.user.id,
            organizationId=organization_id,
        )
        log(
            event="phone_session_established",
            userId=result.userId,
            organizationId=result.organizationId,
            sessionId=session_id,
        )
        return attempt, result

    def verify_code(self, attempt: PhoneLoginAttempt, code: str) -> Tuple[PhoneLoginAttempt, AuthenticationResult]:
        verified = self.verify_challenge(attempt, code)
        return self.bridge_session(verified)


def build_state_machine() -> PhoneAuthStateMachine:
    return PhoneAuthStateMachine(
        get_identity_client(),
        RedisSessionBridge(settings.SESSION_TTL_SEC),
        email_domain=settings.SMS_EMAIL_DOMAIN,
        client_id=settings.WORKOS_CLIENT_ID,
        membership_role=settings.DEFAULT_MEMBERSHIP_ROLE,
        organization_required=settings.ORGANIZATION_REQUIRED,
        sms_template=settings.SMS_TEMPLATE,
    )
