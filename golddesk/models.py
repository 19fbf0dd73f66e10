from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SupervisorState(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    DEGRADED = "degraded"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"

# Forward-only, except for the ready/degraded toggle.
ALLOWED_TRANSITIONS = {
    SupervisorState.NOT_STARTED: {SupervisorState.STARTING},
    SupervisorState.STARTING: {SupervisorState.READY, SupervisorState.FAILED, SupervisorState.STOPPING},
    SupervisorState.READY: {SupervisorState.DEGRADED, SupervisorState.STOPPING},
    SupervisorState.DEGRADED: {SupervisorState.READY, SupervisorState.STOPPING},
    SupervisorState.STOPPING: {SupervisorState.STOPPED},
    SupervisorState.STOPPED: set(),
    SupervisorState.FAILED: set(),
}

class HealthStatus(BaseModel):
    healthy: bool
    checked_at: datetime

class BridgeOperation(str, Enum):
    NOTIFY = "notify"
    EXPORT_DATA = "exportData"

class BridgeRequest(BaseModel):
    operation: BridgeOperation
    payload: Dict[str, Any] = {}

class BridgeResponse(BaseModel):
    ok: bool
    value: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[str] = None) -> "BridgeResponse":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, message: str) -> "BridgeResponse":
        """Failures always carry a non-empty message."""
        return cls(ok=False, error=message or "unknown error")

class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

class Transaction(BaseModel):
    """A gold trade as the backend stores it. Field names are camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    type: TransactionType
    trade_time: datetime = Field(alias="tradeTime")
    weight: float
    amount: float
    price_per_gram: float = Field(alias="pricePerGram")
    remark: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
