import os
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()

SMS_EMAIL_DOMAIN_FALLBACK = "sms.localhost"


def resolve_sms_email_domain(explicit: Optional[str], redirect_uri: Optional[str]) -> str:
    """
    Pick the domain suffix used for phone-derived emails.
    Priority: explicit override, then sms.<redirect host>, then sms.localhost.
    """
    if explicit and explicit.strip():
        return explicit.strip().lstrip("@")
    if redirect_uri:
        host = urlparse(redirect_uri).hostname
        if host:
            return f"sms.{host}"
    return SMS_EMAIL_DOMAIN_FALLBACK


class Settings:
    API_KEY: str = os.getenv("API_KEY", "")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE_NAME: str = os.getenv("RQ_QUEUE_NAME", "reconcile")

    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")

    # Identity platform
    WORKOS_API_KEY: str = os.getenv("WORKOS_API_KEY", "")
    WORKOS_CLIENT_ID: str = os.getenv("WORKOS_CLIENT_ID", "")
    WORKOS_API_BASE_URL: str = os.getenv("WORKOS_API_BASE_URL", "https://api.workos.com").rstrip("/")
    WORKOS_REDIRECT_URI: str = os.getenv("WORKOS_REDIRECT_URI", "")
    WORKOS_SMS_EMAIL_DOMAIN: str = os.getenv("WORKOS_SMS_EMAIL_DOMAIN", "")
    IDENTITY_TIMEOUT_SEC: float = float(os.getenv("IDENTITY_TIMEOUT_SEC", "10"))

    # Resolved once; the state machine only ever sees this value
    SMS_EMAIL_DOMAIN: str = resolve_sms_email_domain(WORKOS_SMS_EMAIL_DOMAIN, WORKOS_REDIRECT_URI)

    # Phone flow
    ORGANIZATION_REQUIRED: bool = os.getenv("ORGANIZATION_REQUIRED", "false").lower() == "true"
    DEFAULT_MEMBERSHIP_ROLE: str = os.getenv("DEFAULT_MEMBERSHIP_ROLE", "member")
    SMS_TEMPLATE: str = os.getenv("SMS_TEMPLATE", "Your verification code is {{code}}")

    # Session
    COOKIE_NAME: str = os.getenv("COOKIE_NAME", "wos_session")
    COOKIE_SECURE: bool = os.getenv("COOKIE_SECURE", "true").lower() == "true"
    SESSION_TTL_SEC: int = int(os.getenv("SESSION_TTL_SEC", str(60 * 60 * 24 * 7)))

    # Reconciliation of abandoned attempts (users/factors left on the platform)
    ORPHAN_MAX_AGE_SEC: int = int(os.getenv("ORPHAN_MAX_AGE_SEC", "3600"))
    ORPHAN_LIST_MAX: int = int(os.getenv("ORPHAN_LIST_MAX", "500"))

    # Security & privacy
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

settings = Settings()
