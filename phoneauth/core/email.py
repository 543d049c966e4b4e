def synthesize_email(phone_number: str, domain_suffix: str) -> str:
    """
    Derive the identity-platform email for a phone-only user.

    Pure and deterministic: the magic-auth bridge after verification must target
    the same address the user was created with. The phone number is not
    validated here; a malformed number fails later at SMS delivery.
    """
    if not phone_number:
        raise ValueError("phone_number is required")
    if not domain_suffix:
        raise ValueError("domain_suffix is required")
    return f"{phone_number}@{domain_suffix}"
