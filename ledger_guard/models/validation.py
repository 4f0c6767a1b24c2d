"""
Validation Models

Rules report what they found as ValidationIssue objects grouped into a
ValidationResult. Overrides are time-bound human authorizations that
suppress the blocking effect of one rule's errors without hiding them.

IMPORTANT: An override never removes an issue from a result. It only
changes whether that issue blocks the posting.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledger_guard.models.account import Account, Transaction


# =============================================================================
# ENUMS
# =============================================================================

class ValidationLevel(str, Enum):
    """
    Validation phases, executed in declaration order.

    A level that ends with an uncovered error stops the run: accounting
    checks are meaningless on structurally broken input.
    """
    STRUCTURAL = "structural"
    ACCOUNTING = "accounting"
    BUSINESS = "business"
    HISTORICAL = "historical"


class ValidationSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


def utc_now() -> datetime:
    """Timezone-aware current time used for every expiry comparison."""
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# ISSUES AND RESULTS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single error or warning produced by a rule."""

    code: str = Field(
        ...,
        min_length=1,
        description="Machine-readable issue code (e.g. 'SAME_ACCOUNT')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    level: ValidationLevel
    severity: ValidationSeverity
    affected_fields: list[str] = Field(default_factory=list)
    rule_id: Optional[str] = Field(
        default=None,
        description="Rule that produced the issue"
    )
    suggested_fix: Optional[str] = None


class OverrideAuthorization(BaseModel):
    """
    A human sign-off: who approved, why, and until when.

    Reason and approver are mandatory and may not be blank.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    reason: str = Field(..., min_length=1, max_length=500)
    approved_by: str = Field(..., min_length=1, max_length=200)
    expires_at: Optional[datetime] = None
    granted_at: datetime = Field(default_factory=utc_now)

    @field_validator("expires_at", "granted_at")
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps are read as UTC."""
        if v is None:
            return v
        return _as_aware(v)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """True when the authorization has no expiry or expires strictly later than now."""
        if self.expires_at is None:
            return True
        now = _as_aware(now) if now else utc_now()
        return self.expires_at > now


class ValidationOverride(OverrideAuthorization):
    """An authorization bound to one validation rule, for every transaction."""

    rule_id: str = Field(..., min_length=1)


class ValidationResult(BaseModel):
    """
    Outcome of one rule, one level, or a whole validation run.

    For aggregated runs, is_valid is True iff every error is covered by
    an active override. Warnings never affect is_valid.
    """

    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    overrides: list[ValidationOverride] = Field(default_factory=list)
    level: ValidationLevel

    transaction_id: Optional[str] = None
    debit_account_id: Optional[str] = None
    credit_account_id: Optional[str] = None
    rule_id: Optional[str] = None
    rules_evaluated: list[str] = Field(default_factory=list)
    rules_skipped: list[str] = Field(default_factory=list)
    validated_at: datetime = Field(default_factory=utc_now)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def error_codes(self) -> list[str]:
        return [issue.code for issue in self.errors]

    @property
    def warning_codes(self) -> list[str]:
        return [issue.code for issue in self.warnings]

    def covers_pair(self, debit_account_id: Optional[str], credit_account_id: Optional[str]) -> bool:
        """True if this result was produced for exactly this debit/credit pair."""
        return (
            self.debit_account_id == debit_account_id
            and self.credit_account_id == credit_account_id
        )

    def to_log_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "level": self.level.value,
            "errors": self.error_codes,
            "warnings": self.warning_codes,
            "overrides": [o.rule_id for o in self.overrides],
            "rules_evaluated": list(self.rules_evaluated),
            "rules_skipped": list(self.rules_skipped),
        }


def has_valid_override(
    result: ValidationResult,
    now: Optional[datetime] = None,
) -> bool:
    """
    True iff the result carries at least one override that is still active.

    Evaluated on every call, never cached, so an override that expires
    between two checks stops counting at the second one.
    """
    return any(override.is_active(now) for override in result.overrides)


# =============================================================================
# CONTEXT
# =============================================================================

class ValidationContext(BaseModel):
    """
    Everything a rule may look at.

    Either account may be missing: the account existence rule reports it.
    The override tuple is a snapshot taken when the run starts.
    """
    model_config = ConfigDict(frozen=True)

    transaction: Optional[Transaction] = None
    debit_account: Optional[Account] = None
    credit_account: Optional[Account] = None
    overrides: tuple[ValidationOverride, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def transaction_id(self) -> Optional[str]:
        if self.transaction is None:
            return None
        return self.transaction.id or None
