import pytest

from docbridge.app.errors.classifier import ErrorClassifier, extract_message
from docbridge.app.schemas.errors import (
    ErrorCategory,
    ErrorSeverity,
    OperationName,
    RecoveryStrategy,
)


def _classifier() -> ErrorClassifier:
    return ErrorClassifier(clock=lambda: 1_700_000_123_456)


def test_timeout_is_network_related():
    details = _classifier().classify(TimeoutError("Operation timeout after 5000ms"))

    assert details.category == ErrorCategory.NETWORK_RELATED
    assert details.severity == ErrorSeverity.MEDIUM
    assert details.is_recoverable is True
    assert details.max_recovery_attempts == 3
    assert RecoveryStrategy.RETRY_OPERATION in details.recovery_strategies


def test_network_wins_over_generic_failure_keywords():
    details = _classifier().classify("request failed with an error")

    assert details.category == ErrorCategory.NETWORK_RELATED


@pytest.mark.parametrize(
    "message, category, severity, recoverable",
    [
        ("Fatal corruption detected", ErrorCategory.CRITICAL_SYSTEM, ErrorSeverity.CRITICAL, False),
        ("Permission denied", ErrorCategory.PERMISSION_DENIED, ErrorSeverity.HIGH, False),
        ("Update failed", ErrorCategory.HIGH_OPERATION, ErrorSeverity.HIGH, True),
        ("invalid payload", ErrorCategory.MEDIUM_VALIDATION, ErrorSeverity.MEDIUM, True),
        ("cannot parse input", ErrorCategory.DATA_PROCESSING, ErrorSeverity.MEDIUM, True),
        ("bridge busy", ErrorCategory.BRIDGE_SPECIFIC, ErrorSeverity.HIGH, True),
        ("something odd", ErrorCategory.UNKNOWN_ERROR, ErrorSeverity.MEDIUM, True),
    ],
)
def test_keyword_table(message, category, severity, recoverable):
    details = _classifier().classify(message)

    assert details.category == category
    assert details.severity == severity
    assert details.is_recoverable is recoverable


def test_unrecoverable_errors_get_no_strategies():
    details = _classifier().classify("Permission denied")

    assert details.recovery_strategies == frozenset()
    assert details.max_recovery_attempts == 0


def test_code_uses_last_six_timestamp_digits():
    details = _classifier().classify("Update failed")

    assert details.code == "HIGH_OPERATION-123456"
    assert details.timestamp == 1_700_000_123_456


def test_classification_is_deterministic():
    first = _classifier().classify("connection reset")
    second = _classifier().classify("connection reset")

    assert first.category == second.category
    assert first.severity == second.severity
    assert first.code == second.code


def test_message_extraction():
    assert extract_message(None) == "Unknown error"
    assert extract_message("") == "Empty error message"
    assert extract_message("   ") == "Empty error message"
    assert extract_message(ValueError()) == "ValueError"
    assert extract_message(42) == "42"


def test_operation_helpers_tag_context():
    details = _classifier().handle_update_error("write failed", store="wizard")

    assert details.context.operation == OperationName.UPDATE
    assert details.context.data == {"store": "wizard"}
    assert details.context.recoverable is True


@pytest.mark.parametrize(
    "message, category, recoverable",
    [
        ("Save failed: access denied", ErrorCategory.HIGH_OPERATION, True),
        ("invalid permission set", ErrorCategory.MEDIUM_VALIDATION, True),
        ("connection refused: access denied", ErrorCategory.NETWORK_RELATED, True),
        ("fatal error while saving", ErrorCategory.CRITICAL_SYSTEM, False),
        ("access denied while parsing", ErrorCategory.PERMISSION_DENIED, False),
    ],
)
def test_first_matching_category_wins(message, category, recoverable):
    details = _classifier().classify(message)

    assert details.category == category
    assert details.is_recoverable is recoverable


@pytest.mark.parametrize("operation", list(OperationName))
def test_handle_routes_to_operation_helper(operation):
    details = _classifier().handle(operation, "write failed", phase="update")

    assert details.context.operation == operation
    assert details.context.data == {"phase": "update"}
