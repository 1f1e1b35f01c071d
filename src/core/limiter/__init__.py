from fastapi import Request

from src.main.config import config

# Number of leading Authorization header characters folded into an attempt key
CREDENTIAL_PREFIX_LENGTH = 20


def get_client_ip(request: Request) -> str:
    """
    Resolve the client address, honouring X-Forwarded-For only when proxy
    headers are trusted.
    """
    if config.app.TRUST_PROXY_HEADERS:
        x_forwarded_for = request.headers.get("X-Forwarded-For")
        if x_forwarded_for:
            return x_forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def build_attempt_key(request: Request, credential: str | None) -> str:
    return f"{get_client_ip(request)}:{(credential or '')[:CREDENTIAL_PREFIX_LENGTH]}"

