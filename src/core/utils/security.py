import hashlib


def mask_email(email: str) -> str:
    """
    Masks an email address by replacing part of the local and domain parts
    with asterisks.
    Mask pattern: ab***@cd***

    Args:
        email: str
            A string containing the email address to be masked.

    Returns:
        str
            A masked version of the provided email address with part of
            the local and domain obscured.
    """
    local, sep, domain = str(email).partition("@")
    if not sep:
        return "***"
    masked_local = (local[:2] + "***") if local else "*****"
    masked_domain = (domain[:2] + "***") if domain else "*****"
    return f"{masked_local}@{masked_domain}"


def mask_token(token: str | None) -> str:
    """
    Keep only the last characters of a credential for log lines.
    """
    if not token:
        return "<empty>"
    return f"***{token[-6:]}" if len(token) > 12 else "***"


def build_token_key(prefix: str, token: str) -> str:
    """
    Builds a Redis key from a token digest so the raw credential is never stored as a key.
    """
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"
