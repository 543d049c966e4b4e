"""
Identity platform (WorkOS) REST client
--------------------------------------
Thin synchronous wrapper over the user-management and MFA endpoints the phone
login flow needs. No retries: every call either returns a parsed model or
raises IdentityPlatformError, and the caller decides what that means.
"""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

import httpx

from phoneauth.identity.models import (
    AuthenticationChallenge,
    AuthenticationFactor,
    AuthenticationResponse,
    MagicAuth,
    OrganizationMembership,
    User,
    VerifyChallengeResponse,
)
from phoneauth.observability.logging import log
from phoneauth.settings import settings

MAGIC_AUTH_GRANT_TYPE = "urn:workos:oauth:grant-type:magic-auth:code"


class IdentityPlatformError(Exception):
    """Non-2xx response or transport failure from the identity platform."""

    def __init__(self, message: str, *, status_code: int = 0, code: str = "", path: str = ""):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.path = path

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"code={self.code}")
        if self.status_code:
            parts.append(f"status={self.status_code}")
        return " ".join(parts)


def _error_from_response(resp: httpx.Response, path: str) -> IdentityPlatformError:
    code = ""
    message = ""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = str(body.get("code") or body.get("error") or "")
        message = str(body.get("message") or body.get("error_description") or "")
        errors = body.get("errors")
        if not message and isinstance(errors, list) and errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            code = code or str(first.get("code") or "")
            message = str(first.get("message") or "")
    if not message:
        message = (resp.text or "").strip()[:300] or f"HTTP {resp.status_code}"
    return IdentityPlatformError(message, status_code=resp.status_code, code=code, path=path)



def _parse(model, payload: Dict[str, Any], path: str):
    try:
        return model.from_payload(payload)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        log(event="identity_response_malformed", path=path, model=model.__name__, errorType=type(e).__name__)
        raise IdentityPlatformError(
            f"malformed {model.__name__} response: {type(e).__name__}: {e}",
            code="malformed_response",
            path=path,
        ) from e


class IdentityPlatformClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.workos.com",
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise IdentityPlatformError("WORKOS_API_KEY is not set", path=path)

        url = f"{self.base_url}{path}"
        start = time.time()
        try:
            resp = self._client.post(url, headers=self._headers(), json=body)
        except httpx.HTTPError as e:
            log(event="identity_transport_error", path=path, errorType=type(e).__name__, error=str(e)[:300])
            raise IdentityPlatformError(f"transport error: {e}", path=path) from e

        elapsed_ms = int((time.time() - start) * 1000)
        if resp.status_code >= 400:
            err = _error_from_response(resp, path)
            log(
                event="identity_call_failed",
                path=path,
                statusCode=resp.status_code,
                errorCode=err.code,
                providerMessage=err.message[:300],
                elapsedMs=elapsed_ms,
            )
            raise err

        log(event="identity_call_ok", path=path, statusCode=resp.status_code, elapsedMs=elapsed_ms)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise IdentityPlatformError(
                "malformed response body", status_code=resp.status_code, code="malformed_response", path=path
            ) from e

    # -- user management -------------------------------------------------

    def create_user(
        self,
        email: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email_verified: bool = True,
    ) -> User:
        body: Dict[str, Any] = {"email": email, "email_verified": bool(email_verified)}
        if first_name:
            body["first_name"] = first_name
        if last_name:
            body["last_name"] = last_name
        path = "/user_management/users"
        return _parse(User, self._post(path, body), path)

    def create_organization_membership(
        self, user_id: str, organization_id: str, role_slug: Optional[str] = None
    ) -> OrganizationMembership:
        body: Dict[str, Any] = {"user_id": user_id, "organization_id": organization_id}
        if role_slug:
            body["role_slug"] = role_slug
        path = "/user_management/organization_memberships"
        return _parse(OrganizationMembership, self._post(path, body), path)

    def create_magic_auth(self, email: str) -> MagicAuth:
        path = "/user_management/magic_auth"
        return _parse(MagicAuth, self._post(path, {"email": email}), path)

    def authenticate_with_magic_auth(self, client_id: str, email: str, code: str) -> AuthenticationResponse:
        body = {
            "client_id": client_id,
            "client_secret": self.api_key,
            "grant_type": MAGIC_AUTH_GRANT_TYPE,
            "email": email,
            "code": code,
        }
        path = "/user_management/authenticate"
        return _parse(AuthenticationResponse, self._post(path, body), path)

    # -- multi-factor -----------------------------------------------------

    def enroll_factor(self, phone_number: str, *, type: str = "sms") -> AuthenticationFactor:
        body = {"type": type, "phone_number": phone_number}
        path = "/auth/factors/enroll"
        return _parse(AuthenticationFactor, self._post(path, body), path)

    def challenge_factor(self, authentication_factor_id: str, sms_template: Optional[str] = None) -> AuthenticationChallenge:
        body: Dict[str, Any] = {}
        if sms_template:
            body["sms_template"] = sms_template
        path = f"/auth/factors/{authentication_factor_id}/challenge"
        return _parse(AuthenticationChallenge, self._post(path, body), path)

    def verify_challenge(self, authentication_challenge_id: str, code: str) -> VerifyChallengeResponse:
        path = f"/auth/challenges/{authentication_challenge_id}/verify"
        return _parse(VerifyChallengeResponse, self._post(path, {"code": code}), path)

    def close(self) -> None:
        self._client.close()


_identity_client: Optional[IdentityPlatformClient] = None


def get_identity_client() -> IdentityPlatformClient:
    """Process-wide client; keeps a single keep-alive pool."""
    global _identity_client
    if _identity_client is None:
        _identity_client = IdentityPlatformClient(
            settings.WORKOS_API_KEY,
            base_url=settings.WORKOS_API_BASE_URL,
            timeout=settings.IDENTITY_TIMEOUT_SEC,
        )
    return _identity_client


def close_identity_client() -> None:
    global _identity_client
    if _identity_client is not None:
        _identity_client.close()
        _identity_client = None
