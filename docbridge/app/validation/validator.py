"""
Structural and consistency validation of snapshots.

IMPORTANT:
The validator is LENIENT by contract.

It MUST:
- never raise
- report cross-entity inconsistencies (duplicates, orphans, empty
  containers) as warnings, never as errors
- treat any snapshot carrying at least one container or paragraph as
  valid for transfer

Errors are produced only when the snapshot is not structurally a
snapshot at all.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set

from docbridge.app.config import BridgeConfig
from docbridge.app.schemas.document import (
    SNAPSHOT_TYPES,
    Container,
    ParagraphBlock,
)
from docbridge.app.schemas.validation import (
    ValidationFlag,
    ValidationMetrics,
    ValidationResult,
)
from docbridge.app.schemas.wizard import WizardSnapshot
from docbridge.app.utils.timing import elapsed_ms, monotonic_ms
from docbridge.app.utils.type_guards import is_strict_container, is_strict_paragraph

logger = logging.getLogger(__name__)

MIN_CONTAINERS = 1
MIN_PARAGRAPHS = 1
MIN_CONTENT_LENGTH = 10

MAX_WIZARD_STEP = 10


def _failure(
    errors: List[str],
    *,
    error_details: Dict[str, str],
    flags: Set[ValidationFlag],
    duration_ms: float = 0.0,
) -> ValidationResult:
    return ValidationResult(
        is_valid_for_transfer=False,
        errors=errors,
        warnings=[],
        has_minimum_content=False,
        has_required_structure=False,
        error_details=error_details,
        metrics=ValidationMetrics(
            validation_failed=1,
            validation_duration_ms=duration_ms,
        ),
        flags=frozenset(flags),
    )


def _duplicates(ids: Sequence[str]) -> List[str]:
    return sorted(key for key, count in Counter(ids).items() if count > 1)


class StructuralValidator:
    """
    Re-checks snapshot shape, per-entity validity and cross-entity
    consistency.
    """

    def __init__(
        self,
        *,
        strict_type_checking: bool = True,
        custom_rules: Optional[Mapping[str, Callable[[Any], bool]]] = None,
    ) -> None:
        self._strict = strict_type_checking
        self._custom_rules = dict(custom_rules or {})

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "StructuralValidator":
        return cls(
            strict_type_checking=config.strict_type_checking,
            custom_rules=config.custom_validation_rules,
        )

    # ------------------------------------------------------------------
    # Document snapshots
    # ------------------------------------------------------------------

    def validate(self, snapshot: Any) -> ValidationResult:
        started = monotonic_ms()
        try:
            return self._validate_document(snapshot, started)
        except Exception as exc:
            logger.warning("Snapshot validation aborted: %s", exc)
            return _failure(
                [f"Validation aborted: {exc}"],
                error_details={"validationAborted": str(exc)},
                flags={ValidationFlag.INVALID_STRUCTURE},
                duration_ms=elapsed_ms(started),
            )

    def _validate_document(self, snapshot: Any, started: float) -> ValidationResult:
        # ----------------------------------------------------------
        # 1. Structure (the only short-circuit)
        # ----------------------------------------------------------
        structure_error = self._check_structure(snapshot)
        if structure_error is not None:
            key, message = structure_error
            return _failure(
                [message],
                error_details={key: message},
                flags={ValidationFlag.INVALID_STRUCTURE},
                duration_ms=elapsed_ms(started),
            )

        warnings: List[str] = []

        # ----------------------------------------------------------
        # 2. Per-entity validity
        # ----------------------------------------------------------
        containers, paragraphs = self._valid_entities(snapshot, warnings)

        # ----------------------------------------------------------
        # 3. Cross-entity consistency
        # ----------------------------------------------------------
        consistency_warnings, empty_container_count = self._check_consistency(
            containers, paragraphs
        )
        warnings.extend(consistency_warnings)

        # ----------------------------------------------------------
        # Minimum content and custom rules
        # ----------------------------------------------------------
        total_content_length = sum(len(p.content) for p in paragraphs)
        flattened_length = len(snapshot.flattened_content.strip())

        if len(containers) < MIN_CONTAINERS:
            warnings.append(f"Fewer than {MIN_CONTAINERS} container(s) present")
        if len(paragraphs) < MIN_PARAGRAPHS:
            warnings.append(f"Fewer than {MIN_PARAGRAPHS} paragraph(s) present")
        if max(total_content_length, flattened_length) < MIN_CONTENT_LENGTH:
            warnings.append(
                f"Total content is shorter than {MIN_CONTENT_LENGTH} characters"
            )

        warnings.extend(self._run_custom_rules(snapshot.flattened_content))

        # ----------------------------------------------------------
        # Verdict
        # ----------------------------------------------------------
        has_any_data = bool(snapshot.containers) or bool(snapshot.paragraphs)
        has_content = flattened_length > 0 or any(
            p.content.strip() for p in paragraphs
        )

        assigned = sum(1 for p in paragraphs if p.container_id is not None)

        flags = {
            ValidationFlag.VALID_STRUCTURE,
            ValidationFlag.HAS_DATA if has_any_data else ValidationFlag.NO_DATA,
            ValidationFlag.HAS_CONTENT if has_content else ValidationFlag.NO_CONTENT,
            (
                ValidationFlag.CONSISTENT
                if not consistency_warnings
                else ValidationFlag.INCONSISTENT
            ),
        }

        metrics = ValidationMetrics(
            total_containers=len(containers),
            total_paragraphs=len(paragraphs),
            total_content_length=total_content_length,
            assigned_paragraphs=assigned,
            unassigned_paragraphs=len(paragraphs) - assigned,
            empty_containers=empty_container_count,
            average_content_length=(
                round(total_content_length / len(paragraphs), 2)
                if paragraphs
                else 0.0
            ),
            validation_duration_ms=elapsed_ms(started),
        )

        return ValidationResult(
            is_valid_for_transfer=has_any_data,
            errors=[],
            warnings=warnings,
            has_minimum_content=has_content or has_any_data,
            has_required_structure=True,
            error_details={},
            metrics=metrics,
            flags=frozenset(flags),
        )

    @staticmethod
    def _check_structure(snapshot: Any) -> Optional[tuple[str, str]]:
        if snapshot is None:
            return "snapshotNull", "Snapshot is missing"
        if not isinstance(snapshot, SNAPSHOT_TYPES):
            return (
                "invalidType",
                f"Expected a document snapshot, got {type(snapshot).__name__}",
            )
        if not isinstance(snapshot.containers, list):
            return "containersNotList", "Snapshot containers are not a list"
        if not isinstance(snapshot.paragraphs, list):
            return "paragraphsNotList", "Snapshot paragraphs are not a list"
        if not isinstance(snapshot.flattened_content, str):
            return "contentNotString", "Snapshot content is not a string"
        if not isinstance(snapshot.is_completed, bool):
            return "completedNotBool", "Snapshot completion flag is not a boolean"
        return None

    def _valid_entities(
        self,
        snapshot: Any,
        warnings: List[str],
    ) -> tuple[List[Container], List[ParagraphBlock]]:
        containers = [c for c in snapshot.containers if isinstance(c, Container)]
        paragraphs = [p for p in snapshot.paragraphs if isinstance(p, ParagraphBlock)]

        if self._strict:
            containers = [c for c in containers if is_strict_container(c)]
            paragraphs = [p for p in paragraphs if is_strict_paragraph(p)]

        invalid_containers = len(snapshot.containers) - len(containers)
        invalid_paragraphs = len(snapshot.paragraphs) - len(paragraphs)

        if invalid_containers:
            warnings.append(f"{invalid_containers} invalid container(s) ignored")
        if invalid_paragraphs:
            warnings.append(f"{invalid_paragraphs} invalid paragraph(s) ignored")

        return containers, paragraphs

    @staticmethod
    def _check_consistency(
        containers: Sequence[Container],
        paragraphs: Sequence[ParagraphBlock],
    ) -> tuple[List[str], int]:
        warnings: List[str] = []

        duplicate_containers = _duplicates([c.id for c in containers])
        if duplicate_containers:
            warnings.append(
                "Duplicate container ids: " + ", ".join(duplicate_containers)
            )

        duplicate_paragraphs = _duplicates([p.id for p in paragraphs])
        if duplicate_paragraphs:
            warnings.append(
                "Duplicate paragraph ids: " + ", ".join(duplicate_paragraphs)
            )

        container_ids = {c.id for c in containers}
        orphan_count = sum(
            1
            for p in paragraphs
            if p.container_id is not None and p.container_id not in container_ids
        )
        if orphan_count:
            warnings.append(
                f"{orphan_count} paragraph(s) reference a missing container"
            )

        used_ids = {p.container_id for p in paragraphs if p.container_id is not None}
        empty_container_count = sum(1 for c in containers if c.id not in used_ids)
        if empty_container_count:
            warnings.append(f"{empty_container_count} empty container(s)")

        return warnings, empty_container_count

    def _run_custom_rules(self, content: str) -> List[str]:
        warnings: List[str] = []

        for name, rule in self._custom_rules.items():
            try:
                passed = bool(rule(content))
            except Exception as exc:
                logger.warning("Custom validation rule %s raised: %s", name, exc)
                warnings.append(f"Custom validation rule '{name}' raised an error")
                continue

            if not passed:
                warnings.append(f"Custom validation rule '{name}' failed")

        return warnings

    # ------------------------------------------------------------------
    # Wizard snapshots
    # ------------------------------------------------------------------

    def validate_wizard_snapshot(
        self, snapshot: Optional[WizardSnapshot]
    ) -> ValidationResult:
        """
        Lenient wizard snapshot check.

        Only a missing or mistyped snapshot fails. Step, timestamp and
        form-value problems become warnings.
        """
        if snapshot is None:
            return _failure(
                ["Wizard snapshot is missing"],
                error_details={"snapshotNull": "Wizard snapshot is missing"},
                flags={ValidationFlag.SNAPSHOT_NULL},
            )

        if not isinstance(snapshot, WizardSnapshot):
            message = f"Expected a wizard snapshot, got {type(snapshot).__name__}"
            return _failure(
                [message],
                error_details={"invalidStructure": message},
                flags={ValidationFlag.INVALID_STRUCTURE},
            )

        warnings: List[str] = []
        flags = {ValidationFlag.STRUCTURE_VALIDATED}

        if isinstance(snapshot.form_values, dict):
            flags.add(ValidationFlag.VALID_FORM_VALUES)
        else:
            warnings.append("Form values are not a mapping; continuing")
            flags.add(ValidationFlag.INVALID_FORM_VALUES)

        if 0 < snapshot.current_step <= MAX_WIZARD_STEP:
            flags.add(ValidationFlag.VALID_STEP)
        else:
            warnings.append(f"Current step is out of range: {snapshot.current_step}")
            flags.add(ValidationFlag.INVALID_STEP)

        if snapshot.snapshot_timestamp > 0:
            flags.add(ValidationFlag.VALID_TIMESTAMP)
        else:
            warnings.append("Snapshot timestamp is not positive")
            flags.add(ValidationFlag.INVALID_TIMESTAMP)

        return ValidationResult(
            is_valid_for_transfer=True,
            errors=[],
            warnings=warnings,
            has_minimum_content=bool(snapshot.form_values),
            has_required_structure=True,
            flags=frozenset(flags),
        )
