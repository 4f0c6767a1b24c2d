"""
Tests for Ledger Guard models

Test strategy:
1. Unit tests for the pydantic records (accounts, results, overrides)
2. Diagnostic entry construction and serialization
3. No engine wiring here; see the component test modules
"""

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from ledger_guard.models.account import (
    POSTING_TYPES,
    VALID_SUBTYPES,
    Account,
    AccountSubtype,
    AccountType,
    EntrySide,
    Transaction,
    TransactionStatus,
)
from ledger_guard.models.audit import (
    DiagnosticEntry,
    DiagnosticEntryBuilder,
    DiagnosticLevel,
    DiagnosticStage,
)
from ledger_guard.models.validation import (
    OverrideAuthorization,
    ValidationIssue,
    ValidationLevel,
    ValidationOverride,
    ValidationResult,
    ValidationSeverity,
    has_valid_override,
)


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestAccountModels:
    """Tests for the chart of accounts vocabulary."""

    def test_account_creation(self):
        """Test Account model creation."""
        account = Account(
            id="acc-1",
            code="1100",
            name="Cash",
            type=AccountType.ASSET,
            subtype=AccountSubtype.CASH,
        )
        assert account.is_active is True
        assert account.is_contra is False
        assert account.label == "1100 - Cash"

    def test_account_strips_whitespace(self):
        """Test that whitespace is stripped from the code and name."""
        account = Account(id="a", code=" 1100 ", name="  Cash ", type="asset", subtype="cash")
        assert account.code == "1100"
        assert account.name == "Cash"

    def test_account_is_frozen(self):
        """Test that accounts cannot be mutated."""
        account = Account(id="a", code="1100", name="Cash", type="asset", subtype="cash")
        with pytest.raises(ValidationError):
            account.name = "Petty Cash"

    def test_account_rejects_unknown_type(self):
        """Test that types outside the vocabulary are rejected."""
        with pytest.raises(ValidationError):
            Account(id="a", code="1100", name="Cash", type="cash-ish", subtype="cash")

    def test_posting_types(self):
        """Test that only the five double-entry types are posting types."""
        assert AccountType.MEMO not in POSTING_TYPES
        assert len(POSTING_TYPES) == 5

    def test_valid_subtypes_cover_every_type(self):
        """Test that every account type has a subtype list."""
        assert set(VALID_SUBTYPES) == set(AccountType)
        assert AccountSubtype.HEADER in VALID_SUBTYPES[AccountType.OFF]
        assert AccountSubtype.CASH not in VALID_SUBTYPES[AccountType.LIABILITY]

    def test_entry_side_opposite(self):
        """Test EntrySide.opposite."""
        assert EntrySide.DEBIT.opposite == EntrySide.CREDIT
        assert EntrySide.CREDIT.opposite == EntrySide.DEBIT


class TestTransactionModel:
    """Tests for imported transactions."""

    def test_transaction_defaults(self):
        """Test that a bare transaction is pending and unmapped."""
        transaction = Transaction()
        assert transaction.status == TransactionStatus.PENDING
        assert transaction.amount is None
        assert transaction.is_mapped is False

    def test_transaction_amount_coerced_to_decimal(self):
        """Test that string amounts become Decimals."""
        transaction = Transaction(id="t", amount="12.50")
        assert transaction.amount == Decimal("12.50")

    def test_transaction_assignment_is_validated(self):
        """Test that status assignment is checked against the enum."""
        transaction = Transaction(id="t")
        transaction.status = "mapped"
        assert transaction.status == TransactionStatus.MAPPED
        with pytest.raises(ValidationError):
            transaction.status = "posted"

    def test_is_mapped(self):
        """Test is_mapped needs both sides."""
        transaction = Transaction(id="t", debit_account_id="a")
        assert transaction.is_mapped is False
        transaction.credit_account_id = "b"
        assert transaction.is_mapped is True


class TestOverrideModels:
    """Tests for override authorizations."""

    def test_authorization_requires_reason(self):
        """Test that an empty reason is rejected."""
        with pytest.raises(ValidationError):
            OverrideAuthorization(reason="   ", approved_by="controller")

    def test_authorization_requires_approver(self):
        """Test that an empty approver is rejected."""
        with pytest.raises(ValidationError):
            OverrideAuthorization(reason="Year-end adjustment", approved_by="")

    def test_authorization_without_expiry_is_active(self):
        """Test that an authorization with no expiry never lapses."""
        authorization = OverrideAuthorization(reason="ok", approved_by="controller")
        assert authorization.is_active(NOW + timedelta(days=3650))

    def test_authorization_expiry(self):
        """Test that expiry is strict: active before, inactive at and after."""
        authorization = OverrideAuthorization(
            reason="ok",
            approved_by="controller",
            expires_at=NOW,
        )
        assert authorization.is_active(NOW - timedelta(seconds=1))
        assert not authorization.is_active(NOW)
        assert not authorization.is_active(NOW + timedelta(seconds=1))

    def test_naive_timestamps_read_as_utc(self):
        """Test that a naive expiry is normalized to UTC."""
        override = ValidationOverride(
            rule_id="sign-convention",
            reason="ok",
            approved_by="controller",
            expires_at=datetime(2024, 6, 1, 12, 0),
        )
        assert override.expires_at.tzinfo is not None
        assert override.expires_at == NOW


class TestValidationResult:
    """Tests for ValidationResult helpers."""

    def _issue(self, code: str, severity: ValidationSeverity) -> ValidationIssue:
        return ValidationIssue(
            code=code,
            message=code,
            level=ValidationLevel.ACCOUNTING,
            severity=severity,
            rule_id="account-type-compatibility",
        )

    def test_validation_result_has_errors(self):
        """Test ValidationResult with errors."""
        result = ValidationResult(
            is_valid=False,
            errors=[self._issue("INVALID_ACCOUNT_COMBINATION", ValidationSeverity.ERROR)],
            level=ValidationLevel.ACCOUNTING,
        )
        assert result.has_errors
        assert not result.has_warnings
        assert result.error_codes == ["INVALID_ACCOUNT_COMBINATION"]

    def test_validation_result_warnings_only(self):
        """Test ValidationResult with only warnings."""
        result = ValidationResult(
            is_valid=True,
            warnings=[self._issue("ABNORMAL_DEBIT", ValidationSeverity.WARNING)],
            level=ValidationLevel.ACCOUNTING,
        )
        assert result.is_valid
        assert result.warning_codes == ["ABNORMAL_DEBIT"]
        assert result.to_log_dict()["warnings"] == ["ABNORMAL_DEBIT"]

    def test_has_valid_override_is_evaluated_per_call(self):
        """Test that an override stops counting once it expires."""
        result = ValidationResult(
            is_valid=True,
            level=ValidationLevel.ACCOUNTING,
            overrides=[ValidationOverride(
                rule_id="account-type-compatibility",
                reason="ok",
                approved_by="controller",
                expires_at=NOW,
            )],
        )
        assert has_valid_override(result, NOW - timedelta(minutes=1))
        assert not has_valid_override(result, NOW + timedelta(minutes=1))

    def test_has_valid_override_without_overrides(self):
        """Test that a result with no overrides has no valid override."""
        result = ValidationResult(is_valid=False, level=ValidationLevel.STRUCTURAL)
        assert not has_valid_override(result)


class TestDiagnosticModels:
    """Tests for diagnostic entries."""

    def test_entry_creation(self):
        """Test DiagnosticEntry creation."""
        entry = DiagnosticEntry(
            stage=DiagnosticStage.MAPPING,
            message="Mapped",
            transaction_id="txn-1",
        )
        assert entry.level == DiagnosticLevel.INFO
        assert entry.timestamp.tzinfo is not None

    def test_entry_message_length_limit(self):
        """Test that messages longer than 500 characters are rejected."""
        with pytest.raises(ValidationError):
            DiagnosticEntry(stage=DiagnosticStage.MAPPING, message="x" * 501)

    def test_entry_to_log_dict(self):
        """Test conversion to a structured-logging dict."""
        entry = DiagnosticEntry(stage=DiagnosticStage.OVERRIDE, message="Override added")
        log_dict = entry.to_log_dict()
        assert log_dict["stage"] == "override"
        assert log_dict["level"] == "info"
        assert isinstance(log_dict["entry_id"], str)

    def test_entry_to_json_line(self):
        """Test that one entry serializes to one JSON line."""
        entry = DiagnosticEntryBuilder.mapping_failed("txn-1", "No matching accounts")
        line = entry.to_json_line()
        assert "\n" not in line
        assert json.loads(line)["details"]["error"] == "No matching accounts"

    def test_builder_validation_completed_levels(self):
        """Test that the entry level follows the validation outcome."""
        failed = DiagnosticEntryBuilder.validation_completed("t", False, {"errors": ["X"], "warnings": []})
        warned = DiagnosticEntryBuilder.validation_completed("t", True, {"errors": [], "warnings": ["W"]})
        passed = DiagnosticEntryBuilder.validation_completed("t", True, {"errors": [], "warnings": []})
        assert failed.level == DiagnosticLevel.ERROR
        assert warned.level == DiagnosticLevel.WARNING
        assert passed.level == DiagnosticLevel.INFO
        assert "1 errors" in failed.message

    def test_builder_override_added(self):
        """Test the override-added entry carries who and why."""
        entry = DiagnosticEntryBuilder.override_added(
            rule_id="sign-convention",
            approved_by="controller",
            reason="Loan repayment",
            expires_at=NOW,
        )
        assert entry.stage == DiagnosticStage.OVERRIDE
        assert entry.details["approved_by"] == "controller"
        assert entry.details["expires_at"] == NOW.isoformat()

    def test_builder_oracle_fallback_is_warning(self):
        """Test that oracle fallbacks are recorded at warning level."""
        entry = DiagnosticEntryBuilder.oracle_fallback("t", "timeout")
        assert entry.level == DiagnosticLevel.WARNING
        assert entry.stage == DiagnosticStage.MAPPING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
