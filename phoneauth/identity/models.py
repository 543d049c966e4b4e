from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class User:
    id: str
    email: str = ""
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    emailVerified: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            email=data.get("email") or "",
            firstName=data.get("first_name"),
            lastName=data.get("last_name"),
            emailVerified=bool(data.get("email_verified", False)),
        )


@dataclass
class AuthenticationFactor:
    id: str
    type: str = "sms"
    phoneNumber: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "AuthenticationFactor":
        sms = data.get("sms") or {}
        return cls(
            id=data["id"],
            type=data.get("type") or "sms",
            phoneNumber=sms.get("phone_number"),
        )


@dataclass
class AuthenticationChallenge:
    id: str
    authenticationFactorId: str = ""
    expiresAt: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "AuthenticationChallenge":
        return cls(
            id=data["id"],
            authenticationFactorId=data.get("authentication_factor_id") or "",
            expiresAt=data.get("expires_at"),
        )


@dataclass
class VerifyChallengeResponse:
    valid: bool
    challenge: Optional[AuthenticationChallenge] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "VerifyChallengeResponse":
        ch = data.get("challenge")
        return cls(
            valid=bool(data.get("valid", False)),
            challenge=AuthenticationChallenge.from_payload(ch) if isinstance(ch, dict) and ch.get("id") else None,
        )


@dataclass
class MagicAuth:
    id: str
    email: str
    code: str
    userId: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "MagicAuth":
        return cls(
            id=data.get("id") or "",
            email=data.get("email") or "",
            code=data["code"],
            userId=data.get("user_id"),
        )


@dataclass
class AuthenticationResponse:
    user: User
    organizationId: Optional[str] = None
    accessToken: str = ""
    refreshToken: str = ""
    authenticationMethod: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "AuthenticationResponse":
        return cls(
            user=User.from_payload(data["user"]),
            organizationId=data.get("organization_id"),
            accessToken=data.get("access_token") or "",
            refreshToken=data.get("refresh_token") or "",
            authenticationMethod=data.get("authentication_method"),
            raw=data,
        )


@dataclass
class OrganizationMembership:
    id: str
    userId: str
    organizationId: str
    roleSlug: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "OrganizationMembership":
        role = data.get("role") or {}
        return cls(
            id=data.get("id") or "",
            userId=data.get("user_id") or "",
            organizationId=data.get("organization_id") or "",
            roleSlug=role.get("slug") if isinstance(role, dict) else None,
            status=data.get("status"),
        )
