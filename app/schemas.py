"""Pydantic schemas for API request validation and response serialization."""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

Number = Union[int, float]
MetricValue = Optional[Union[int, float, str]]


class LoginRequest(BaseModel):
    """Credentials posted to the login endpoint."""

    username: str = Field("", description="Admin username")
    password: str = Field("", description="Admin password")

    @field_validator("username", "password", mode="before")
    @classmethod
    def non_strings_are_missing(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


class UserInfo(BaseModel):
    """Identity of the signed-in admin."""

    id: int = Field(..., description="Admin user id")
    username: str = Field(..., description="Admin username")


class LoginResponse(BaseModel):
    """Successful login response; the session is carried by the cookie."""

    status: str = Field("ok", description="Always 'ok'")
    user: UserInfo


class SessionResponse(BaseModel):
    """Current session as read back from the auth cookie."""

    status: str = Field("ok", description="Always 'ok'")
    user: UserInfo
    expires_at: int = Field(..., description="Expiry in milliseconds since the epoch")


class StatusResponse(BaseModel):
    status: str = Field("ok", description="Always 'ok'")


class InterfaceStatSchema(BaseModel):
    """Traffic counters of one router interface."""

    name: str
    rx: MetricValue = Field(None, description="Receive value, number or raw text")
    tx: MetricValue = Field(None, description="Transmit value, number or raw text")
    status: Optional[str] = None
    rx_unit: Optional[str] = None
    tx_unit: Optional[str] = None


class RouterMetricSchema(BaseModel):
    """Latest metrics of one router."""

    id: str
    name: str
    status: Optional[str] = None
    total: Optional[Number] = Field(None, description="Total PPPoE sessions")
    active: Optional[Number] = Field(None, description="Active PPPoE sessions")
    cpu: Optional[Number] = Field(None, description="CPU utilization percentage")
    memory: Optional[Number] = Field(None, description="Memory utilization percentage")
    interfaces: List[InterfaceStatSchema] = Field(default_factory=list)
    last_updated_at: int = Field(..., description="Last update in milliseconds since the epoch")


class MonitoringSnapshotResponse(BaseModel):
    """Router table together with the state of the upstream connection."""

    connection_state: str = Field(..., description="connecting, open or closed")
    last_error: Optional[str] = Field(None, description="Most recent non-fatal error")
    routers: List[RouterMetricSchema] = Field(..., description="Routers ordered by name")


class HistoryPointSchema(BaseModel):
    timestamp: int
    cpu: Optional[Number] = None
    memory: Optional[Number] = None
    active_sessions: Optional[Number] = None
    peak_interface_traffic: Optional[Number] = None


class RouterHistoryResponse(BaseModel):
    """Recent samples of one router, oldest first."""

    router_id: str
    points: List[HistoryPointSchema]


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(..., description="Error message")
