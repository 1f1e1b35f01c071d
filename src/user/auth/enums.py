from enum import StrEnum


class TokenPurpose(StrEnum):
    ACCESS = "ACCESS"
    REFRESH = "REFRESH"
    RESET_PASSWORD = "RESET_PASSWORD"
    VERIFY_EMAIL = "VERIFY_EMAIL"
    API_KEY = "API_KEY"
    TEMPORARY_ACCESS = "TEMPORARY_ACCESS"
    IMPERSONATION = "IMPERSONATION"

    @property
    def has_fixed_lifetime(self) -> bool:
        """Session tokens always live exactly as long as configured."""
        return self in (TokenPurpose.ACCESS, TokenPurpose.REFRESH)
