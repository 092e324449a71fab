from __future__ import annotations

from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone
from uuid import uuid4, UUID

from pydantic import BaseModel, Field, ConfigDict


# ----------------------------------------------------------------------
# Event Types
# ----------------------------------------------------------------------
class BridgeEventType(str, Enum):
    """
    Progression events emitted while the engine runs one operation.

    The phase events follow the engine's state machine order. Exactly one
    terminal event (completed, failed or rejected) closes every operation.
    """

    # ------------------------------------------------------------------
    # Operation lifecycle
    # ------------------------------------------------------------------
    OPERATION_STARTED = "operation_started"
    OPERATION_COMPLETED = "operation_completed"
    OPERATION_FAILED = "operation_failed"
    OPERATION_REJECTED = "operation_rejected"

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    PRECONDITIONS_CHECKED = "preconditions_checked"
    EXTRACTION_COMPLETED = "extraction_completed"
    TRANSFORMATION_COMPLETED = "transformation_completed"
    UPDATE_COMPLETED = "update_completed"

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    CACHE_INVALIDATED = "cache_invalidated"


TERMINAL_EVENT_TYPES = frozenset(
    {
        BridgeEventType.OPERATION_COMPLETED,
        BridgeEventType.OPERATION_FAILED,
        BridgeEventType.OPERATION_REJECTED,
    }
)


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class BridgeEvent(BaseModel):
    """
    An immutable observation of a phase transition within the engine.

    Events are:
    - strictly observational
    - transport-agnostic
    - never consulted for control flow
    """

    event_id: UUID = Field(default_factory=uuid4)
    operation_id: str = Field(..., description="The engine operation identifier")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: BridgeEventType

    # Optional contextual metadata (strategy, counts, data source, etc.)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
