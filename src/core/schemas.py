from pydantic import BaseModel, ConfigDict


class Base(BaseModel):
    model_config = ConfigDict(
        from_attributes=True, use_enum_values=True, extra="forbid"
    )


class SuccessResponse(Base):
    success: bool


class ErrorResponse(Base):
    """Body of every handled error response; `code` is set for token errors."""

    error: str
    message: str
    code: str | None = None
