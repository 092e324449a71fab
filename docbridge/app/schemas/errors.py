"""
Structured error schemas.

An ErrorDetails record is created once per failure by the error classifier
and attached to the engine's operation result. Recovery fields are
advisory: the bridge never retries on its own.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet

from pydantic import BaseModel, ConfigDict, Field


class ErrorSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ErrorCategory(str, Enum):
    NETWORK_RELATED = "NETWORK_RELATED"
    CRITICAL_SYSTEM = "CRITICAL_SYSTEM"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    HIGH_OPERATION = "HIGH_OPERATION"
    MEDIUM_VALIDATION = "MEDIUM_VALIDATION"
    DATA_PROCESSING = "DATA_PROCESSING"
    BRIDGE_SPECIFIC = "BRIDGE_SPECIFIC"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class OperationName(str, Enum):
    """
    Bridge operation during which an error was observed.
    """

    TRANSFER = "TRANSFER"
    REVERSE_TRANSFER = "REVERSE_TRANSFER"
    VALIDATION = "VALIDATION"
    EXTRACTION = "EXTRACTION"
    TRANSFORMATION = "TRANSFORMATION"
    UPDATE = "UPDATE"


class RecoveryStrategy(str, Enum):
    RETRY_OPERATION = "RETRY_OPERATION"
    FALLBACK_EXECUTION = "FALLBACK_EXECUTION"
    USER_INTERVENTION = "USER_INTERVENTION"


class ErrorContext(BaseModel):
    operation: OperationName
    data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Caller-supplied contextual key/value pairs",
    )
    severity: ErrorSeverity
    recoverable: bool

    model_config = ConfigDict(frozen=True, extra="forbid")


class ErrorDetails(BaseModel):
    """
    Severity- and recoverability-tagged description of one failure.
    """

    code: str = Field(
        ...,
        description="Synthetic code of the form '{category}-{timestamp suffix}'",
    )
    message: str
    timestamp: int = Field(..., description="Epoch milliseconds")
    context: ErrorContext
    severity: ErrorSeverity
    category: ErrorCategory
    is_recoverable: bool
    recovery_attempts: int = Field(0, ge=0)
    max_recovery_attempts: int = Field(0, ge=0)
    recovery_strategies: FrozenSet[RecoveryStrategy] = Field(
        default_factory=frozenset
    )

    model_config = ConfigDict(frozen=True, extra="forbid")
