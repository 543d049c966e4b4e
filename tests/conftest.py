import itertools
from typing import Dict, List, Optional

import pytest

from phoneauth.core.orchestrator import PhoneAuthStateMachine
from phoneauth.identity.client import IdentityPlatformError
from phoneauth.identity.models import (
    AuthenticationChallenge,
    AuthenticationFactor,
    AuthenticationResponse,
    MagicAuth,
    OrganizationMembership,
    User,
    VerifyChallengeResponse,
)


class FakeIdentityPlatform:
    """
    In-memory stand-in for the identity platform.
    Follows the documented behaviour: duplicate emails are rejected, a new
    challenge supersedes the previous one for the same factor, magic codes are
    single use, and authentication is scoped to the user's only organization.
    """

    def __init__(self, sms_code: str = "123456"):
        self.sms_code = sms_code
        self.users: Dict[str, User] = {}
        self.factors: Dict[str, str] = {}
        self.challenges: Dict[str, dict] = {}
        self.latest_challenge: Dict[str, str] = {}
        self.magic_codes: Dict[str, str] = {}
        self.memberships: Dict[str, List[str]] = {}
        self.sms_outbox: List[tuple] = []
        self.calls: List[str] = []
        self.fail: Dict[str, IdentityPlatformError] = {}
        self._ids = itertools.count(1)

    def _next(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    def _maybe_fail(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise self.fail[name]

    def user_by_id(self, user_id: str) -> Optional[User]:
        for u in self.users.values():
            if u.id == user_id:
                return u
        return None

    def create_user(self, email, *, first_name=None, last_name=None, email_verified=True):
        self._maybe_fail("create_user")
        if email in self.users:
            raise IdentityPlatformError("This email is not available.", status_code=422, code="email_not_available")
        user = User(id=self._next("user"), email=email, firstName=first_name, lastName=last_name, emailVerified=email_verified)
        self.users[email] = user
        return user

    def enroll_factor(self, phone_number, *, type="sms"):
        self._maybe_fail("enroll_factor")
        if not phone_number:
            raise IdentityPlatformError("Phone number is invalid.", status_code=422, code="invalid_phone_number")
        factor = AuthenticationFactor(id=self._next("auth_factor"), type=type, phoneNumber=phone_number)
        self.factors[factor.id] = phone_number
        return factor

    def challenge_factor(self, authentication_factor_id, sms_template=None):
        self._maybe_fail("challenge_factor")
        if authentication_factor_id not in self.factors:
            raise IdentityPlatformError("Factor not found.", status_code=404, code="entity_not_found")
        previous = self.latest_challenge.get(authentication_factor_id)
        if previous:
            self.challenges[previous]["expired"] = True
        challenge = AuthenticationChallenge(id=self._next("auth_challenge"), authenticationFactorId=authentication_factor_id)
        self.challenges[challenge.id] = {"factor": authentication_factor_id, "code": self.sms_code, "expired": False, "verified": False}
        self.latest_challenge[authentication_factor_id] = challenge.id
        text = (sms_template or "").replace("{{code}}", self.sms_code)
        self.sms_outbox.append((self.factors[authentication_factor_id], text))
        return challenge

    def verify_challenge(self, authentication_challenge_id, code):
        self._maybe_fail("verify_challenge")
        ch = self.challenges.get(authentication_challenge_id)
        if ch is None:
            raise IdentityPlatformError("Challenge not found.", status_code=404, code="entity_not_found")
        if ch["expired"]:
            raise IdentityPlatformError("The challenge has expired.", status_code=422, code="authentication_challenge_expired")
        if ch["verified"]:
            raise IdentityPlatformError("Already verified.", status_code=422, code="authentication_challenge_previously_verified")
        valid = code == ch["code"]
        if valid:
            ch["verified"] = True
        return VerifyChallengeResponse(valid=valid, challenge=AuthenticationChallenge(id=authentication_challenge_id))

    def create_magic_auth(self, email):
        self._maybe_fail("create_magic_auth")
        user = self.users.get(email)
        if user is None:
            raise IdentityPlatformError("User not found.", status_code=404, code="user_not_found")
        code = f"{next(self._ids):06d}"
        self.magic_codes[email] = code
        return MagicAuth(id=self._next("magic_auth"), email=email, code=code, userId=user.id)

    def authenticate_with_magic_auth(self, client_id, email, code):
        self._maybe_fail("authenticate_with_magic_auth")
        if not client_id:
            raise IdentityPlatformError("Invalid client id.", status_code=400, code="invalid_client")
        if self.magic_codes.get(email) != code:
            raise IdentityPlatformError("Invalid one-time code.", status_code=400, code="invalid_one_time_code")
        del self.magic_codes[email]
        user = self.users[email]
        orgs = self.memberships.get(user.id, [])
        return AuthenticationResponse(
            user=user,
            organizationId=orgs[0] if len(orgs) == 1 else None,
            accessToken="access-token",
            refreshToken="refresh-token",
            authenticationMethod="MagicAuth",
        )

    def create_organization_membership(self, user_id, organization_id, role_slug=None):
        self._maybe_fail("create_organization_membership")
        if self.user_by_id(user_id) is None:
            raise IdentityPlatformError("User not found.", status_code=404, code="entity_not_found")
        orgs = self.memberships.setdefault(user_id, [])
        if organization_id in orgs:
            raise IdentityPlatformError("Membership already exists.", status_code=422, code="organization_membership_already_exists")
        orgs.append(organization_id)
        return OrganizationMembership(
            id=self._next("om"),
            userId=user_id,
            organizationId=organization_id,
            roleSlug=role_slug,
            status="active",
        )


class FakeSessionBridge:
    def __init__(self):
        self.persisted: List[AuthenticationResponse] = []
        self.terminated: List[str] = []
        self.error: Optional[Exception] = None

    def persist(self, response):
        if self.error is not None:
            raise self.error
        self.persisted.append(response)
        return f"sess_{len(self.persisted)}"

    def terminate(self, session_id):
        self.terminated.append(session_id)
        return True


@pytest.fixture
def platform():
    return FakeIdentityPlatform()


@pytest.fixture
def bridge():
    return FakeSessionBridge()


@pytest.fixture
def machine(platform, bridge):
    return PhoneAuthStateMachine(
        platform,
        bridge,
        email_domain="sms.example",
        client_id="client_123",
        membership_role="member",
    )


@pytest.fixture
def org_machine(platform, bridge):
    return PhoneAuthStateMachine(
        platform,
        bridge,
        email_domain="sms.example",
        client_id="client_123",
        membership_role="member",
        organization_required=True,
    )
