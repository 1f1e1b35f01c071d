from src.core.errors.exceptions import InfrastructureException, UnauthorizedException


class InvalidTokenException(UnauthorizedException):
    code = "INVALID_TOKEN"


class TokenExpiredException(UnauthorizedException):
    code = "TOKEN_EXPIRED"


class TokenRevokedException(UnauthorizedException):
    code = "TOKEN_REVOKED"


class InvalidTokenPurposeException(UnauthorizedException):
    code = "INVALID_TOKEN_PURPOSE"


class TokenGenerationException(InfrastructureException):
    code = "TOKEN_GENERATION_ERROR"


class TokenVerificationException(InfrastructureException):
    code = "TOKEN_VERIFICATION_ERROR"


class TokenRevocationException(InfrastructureException):
    code = "TOKEN_REVOCATION_ERROR"
