from typing import Any


class CoreException(Exception):
    # Machine readable error code returned next to the message, when set
    code: str | None = None

    def __init__(
        self, message: str | None = None, additional_info: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.additional_info = additional_info


class InfrastructureException(CoreException):
    pass


class ValidationException(CoreException):
    pass


class UnauthorizedException(CoreException):
    pass


class PermissionDeniedException(CoreException):
    pass


class TooManyRequestsException(CoreException):
    def __init__(
        self,
        message: str | None = None,
        additional_info: dict[str, Any] | None = None,
        *,
        retry_after_ms: int = 0,
    ):
        super().__init__(message, additional_info)
        self.retry_after_ms = retry_after_ms
