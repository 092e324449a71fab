"""
Runtime configuration for the document/wizard bridge.

Pydantic v2 settings management: every field is validated once at
construction and the resulting object is frozen. Values may come from
keyword arguments or from ``DOCBRIDGE_``-prefixed environment variables.

Configuration is read-only at runtime. It selects behaviour (validation,
logging verbosity, timeouts) but never changes how content is derived.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Callable, Dict, FrozenSet

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docbridge.app.utils.type_guards import to_str

MIN_CONTENT_LENGTH = 10

ValidationRule = Callable[[Any], bool]


def min_content_rule(data: Any) -> bool:
    return len(to_str(data)) >= MIN_CONTENT_LENGTH


def not_none_rule(data: Any) -> bool:
    return data is not None


class BridgeConfig(BaseSettings):
    """
    Bridge engine configuration.

    Unspecified fields fall back to the documented defaults.
    """

    # ---------------------------------------------------------------------
    # Execution gates
    # ---------------------------------------------------------------------

    enable_validation: Annotated[
        bool,
        Field(
            default=True,
            description="Run the structural validator before transfers",
        ),
    ]

    enable_error_recovery: Annotated[
        bool,
        Field(
            default=True,
            description=(
                "Allow caller-side retry runners to re-run recoverable "
                "failures. The engine itself never retries."
            ),
        ),
    ]

    strict_type_checking: Annotated[
        bool,
        Field(
            default=True,
            description="Apply strict entity guards in the validator",
        ),
    ]

    # ---------------------------------------------------------------------
    # Diagnostics
    # ---------------------------------------------------------------------

    debug_mode: Annotated[
        bool,
        Field(default=False, description="Emit verbose debug log records"),
    ]

    performance_logging: Annotated[
        bool,
        Field(default=False, description="Log per-phase timings"),
    ]

    # ---------------------------------------------------------------------
    # Operational boundaries
    # ---------------------------------------------------------------------

    max_retry_attempts: Annotated[
        int,
        Field(default=3, ge=1, le=10, description="Upper bound for retry runners"),
    ]

    timeout_ms: Annotated[
        int,
        Field(
            default=5000,
            ge=1,
            le=30000,
            description="Deadline for a single engine operation",
        ),
    ]

    # ---------------------------------------------------------------------
    # Result cache
    # ---------------------------------------------------------------------

    cache_expiry_ms: Annotated[
        int,
        Field(default=300_000, ge=1, description="Cache entry lifetime"),
    ]

    cache_max_size: Annotated[
        int,
        Field(default=100, ge=1, description="Maximum cached results"),
    ]

    cache_sweep_interval_s: Annotated[
        float,
        Field(default=60.0, gt=0, description="Background sweep period"),
    ]

    # ---------------------------------------------------------------------
    # Wizard updater
    # ---------------------------------------------------------------------

    update_settle_delay_s: Annotated[
        float,
        Field(
            default=0.2,
            ge=0,
            description="Delay before re-reading the store to verify a write",
        ),
    ]

    update_timeout_s: Annotated[
        float,
        Field(default=10.0, gt=0, description="Deadline for apply + verify"),
    ]

    # ---------------------------------------------------------------------
    # Extension points
    # ---------------------------------------------------------------------

    custom_validation_rules: Annotated[
        Dict[str, ValidationRule],
        Field(
            default_factory=dict,
            description=(
                "Named predicates evaluated against the flattened content. "
                "Failures are reported as validation warnings."
            ),
        ),
    ]

    feature_flags: Annotated[
        FrozenSet[str],
        Field(default_factory=frozenset, description="Opaque feature toggles"),
    ]

    model_config = SettingsConfigDict(
        env_prefix="DOCBRIDGE_",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        arbitrary_types_allowed=True,
    )

    # ---------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ---------------------------------------------------------------------

    @field_validator("custom_validation_rules")
    @classmethod
    def rules_must_be_callable(
        cls, v: Dict[str, ValidationRule]
    ) -> Dict[str, ValidationRule]:
        for name, rule in v.items():
            if not callable(rule):
                raise ValueError(
                    f"Validation rule '{name}' is not callable"
                )
        return v

    # ---------------------------------------------------------------------
    # Presets
    # ---------------------------------------------------------------------

    @classmethod
    def development(cls) -> "BridgeConfig":
        return cls(
            debug_mode=True,
            enable_error_recovery=True,
            performance_logging=True,
            strict_type_checking=False,
            max_retry_attempts=5,
            timeout_ms=10000,
            custom_validation_rules={"basicCheck": not_none_rule},
            feature_flags=frozenset({"BASIC_VALIDATION", "DEBUG_LOGGING"}),
        )

    @classmethod
    def production(cls) -> "BridgeConfig":
        return cls(
            debug_mode=False,
            enable_error_recovery=True,
            max_retry_attempts=3,
            timeout_ms=5000,
            custom_validation_rules={"minContent": min_content_rule},
            feature_flags=frozenset(
                {"STRICT_VALIDATION", "PERFORMANCE_MONITORING"}
            ),
        )

    @classmethod
    def testing(cls) -> "BridgeConfig":
        return cls(
            debug_mode=True,
            enable_error_recovery=False,
            max_retry_attempts=1,
            timeout_ms=1000,
            update_settle_delay_s=0.0,
        )


@lru_cache(maxsize=1)
def get_config() -> BridgeConfig:
    """
    Process-wide configuration provider.

    Reads the environment on first call only.
    """
    return BridgeConfig()
