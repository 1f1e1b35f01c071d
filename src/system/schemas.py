from typing import Literal

from src.core.schemas import Base


class HealthCheckResponse(Base):
    status: Literal["ok"] = "ok"
    redis: Literal["ok", "disabled"] = "disabled"


class TimeResponse(Base):
    time: str
