"""
Data Models Package

This package contains all Pydantic models used by ledger_guard.
Every record that crosses a component boundary conforms to these schemas.
"""

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
from ledger_guard.models.mapping import (
    CONFIDENCE_CEILING,
    AccountMatchResult,
    AccountTarget,
    BatchItemResult,
    CategoryMatch,
    MappingSource,
    SelectionContext,
    TransactionIndicators,
    TransactionMapping,
)
from ledger_guard.models.validation import (
    OverrideAuthorization,
    ValidationContext,
    ValidationIssue,
    ValidationLevel,
    ValidationOverride,
    ValidationResult,
    ValidationSeverity,
    has_valid_override,
    utc_now,
)

__all__ = [
    # Account models
    "POSTING_TYPES",
    "VALID_SUBTYPES",
    "Account",
    "AccountSubtype",
    "AccountType",
    "EntrySide",
    "Transaction",
    "TransactionStatus",
    # Diagnostic models
    "DiagnosticEntry",
    "DiagnosticEntryBuilder",
    "DiagnosticLevel",
    "DiagnosticStage",
    # Mapping models
    "CONFIDENCE_CEILING",
    "AccountMatchResult",
    "AccountTarget",
    "BatchItemResult",
    "CategoryMatch",
    "MappingSource",
    "SelectionContext",
    "TransactionIndicators",
    "TransactionMapping",
    # Validation models
    "OverrideAuthorization",
    "ValidationContext",
    "ValidationIssue",
    "ValidationLevel",
    "ValidationOverride",
    "ValidationResult",
    "ValidationSeverity",
    "has_valid_override",
    "utc_now",
]
