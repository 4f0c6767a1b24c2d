"""
Diagnostic Event Models

Every validation and mapping decision of consequence produces one of
these entries. Operators read them for audit and debugging.

Entries are append-only: nothing in this package edits or deletes them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class DiagnosticLevel(str, Enum):
    """Severity of a diagnostic entry."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class DiagnosticStage(str, Enum):
    """Pipeline stage that emitted the entry."""
    VALIDATION = "validation"
    MAPPING = "mapping"
    OVERRIDE = "override"
    APPROVAL = "approval"


class DiagnosticEntry(BaseModel):
    """A single structured diagnostic record."""

    entry_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the entry was created (UTC)"
    )
    level: DiagnosticLevel = DiagnosticLevel.INFO
    stage: DiagnosticStage
    message: str = Field(..., max_length=500)
    transaction_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "entry_id": str(self.entry_id),
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "stage": self.stage.value,
            "message": self.message,
            "transaction_id": self.transaction_id,
            "details": self.details,
        }

    def to_json_line(self) -> str:
        """One JSON object, no trailing newline."""
        return json.dumps(self.to_log_dict(), default=str, sort_keys=True)


class DiagnosticEntryBuilder:
    """
    Helper class to build diagnostic entries for common decisions.

    Usage:
        entry = DiagnosticEntryBuilder.validation_completed(transaction_id, result)
        entry = DiagnosticEntryBuilder.override_added(override)
    """

    @staticmethod
    def validation_completed(
        transaction_id: Optional[str],
        is_valid: bool,
        summary: dict[str, Any],
    ) -> DiagnosticEntry:
        errors = summary.get("errors", [])
        warnings = summary.get("warnings", [])
        if not is_valid:
            level = DiagnosticLevel.ERROR
        elif warnings:
            level = DiagnosticLevel.WARNING
        else:
            level = DiagnosticLevel.INFO
        return DiagnosticEntry(
            level=level,
            stage=DiagnosticStage.VALIDATION,
            transaction_id=transaction_id,
            message=(
                f"Validation {'passed' if is_valid else 'failed'} with "
                f"{len(errors)} errors and {len(warnings)} warnings"
            ),
            details=summary,
        )

    @staticmethod
    def rule_skipped(
        transaction_id: Optional[str],
        rule_id: str,
        unmet_dependencies: list[str],
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            level=DiagnosticLevel.DEBUG,
            stage=DiagnosticStage.VALIDATION,
            transaction_id=transaction_id,
            message=f"Rule {rule_id} skipped: dependencies not met",
            details={
                "rule_id": rule_id,
                "unmet_dependencies": unmet_dependencies,
            },
        )

    @staticmethod
    def rule_fault(
        transaction_id: Optional[str],
        rule_id: str,
        error: Exception,
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            level=DiagnosticLevel.ERROR,
            stage=DiagnosticStage.VALIDATION,
            transaction_id=transaction_id,
            message=f"Rule {rule_id} raised {type(error).__name__}",
            details={
                "rule_id": rule_id,
                "error": str(error),
            },
        )

    @staticmethod
    def mapping_completed(
        transaction_id: Optional[str],
        debit_code: str,
        credit_code: str,
        confidence: float,
        source: str,
        category: Optional[str],
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            stage=DiagnosticStage.MAPPING,
            transaction_id=transaction_id,
            message=(
                f"Mapped to debit {debit_code} / credit {credit_code} "
                f"with {confidence:.0%} confidence"
            ),
            details={
                "debit_code": debit_code,
                "credit_code": credit_code,
                "confidence": confidence,
                "source": source,
                "category": category,
            },
        )

    @staticmethod
    def mapping_failed(
        transaction_id: Optional[str],
        error_message: str,
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            level=DiagnosticLevel.ERROR,
            stage=DiagnosticStage.MAPPING,
            transaction_id=transaction_id,
            message="Mapping failed",
            details={"error": error_message},
        )

    @staticmethod
    def mapping_recorded(
        transaction_id: Optional[str],
        history_key: str,
        debit_code: str,
        credit_code: str,
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            level=DiagnosticLevel.DEBUG,
            stage=DiagnosticStage.MAPPING,
            transaction_id=transaction_id,
            message="Confirmed mapping recorded in usage history",
            details={
                "history_key": history_key,
                "debit_code": debit_code,
                "credit_code": credit_code,
            },
        )

    @staticmethod
    def oracle_fallback(
        transaction_id: Optional[str],
        reason: str,
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            level=DiagnosticLevel.WARNING,
            stage=DiagnosticStage.MAPPING,
            transaction_id=transaction_id,
            message="Suggestion oracle unusable, falling back to heuristic ranking",
            details={"reason": reason},
        )

    @staticmethod
    def override_added(
        rule_id: str,
        approved_by: str,
        reason: str,
        expires_at: Optional[datetime],
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            stage=DiagnosticStage.OVERRIDE,
            message=f"Override added for rule {rule_id}",
            details={
                "rule_id": rule_id,
                "approved_by": approved_by,
                "reason": reason,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )

    @staticmethod
    def override_rejected(rule_id: str, reason: str) -> DiagnosticEntry:
        return DiagnosticEntry(
            level=DiagnosticLevel.WARNING,
            stage=DiagnosticStage.OVERRIDE,
            message=f"Override rejected for rule {rule_id}",
            details={"rule_id": rule_id, "reason": reason},
        )

    @staticmethod
    def override_removed(rule_id: str, removed: int) -> DiagnosticEntry:
        return DiagnosticEntry(
            stage=DiagnosticStage.OVERRIDE,
            message=f"Removed {removed} override(s) for rule {rule_id}",
            details={"rule_id": rule_id, "removed": removed},
        )

    @staticmethod
    def overrides_pruned(removed: int) -> DiagnosticEntry:
        return DiagnosticEntry(
            stage=DiagnosticStage.OVERRIDE,
            message=f"Pruned {removed} expired override(s)",
            details={"removed": removed},
        )

    @staticmethod
    def approval_granted(
        transaction_id: Optional[str],
        approved_by: Optional[str],
        warning_codes: list[str],
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            stage=DiagnosticStage.APPROVAL,
            transaction_id=transaction_id,
            message="Transaction approved",
            details={
                "approved_by": approved_by,
                "acknowledged_warnings": warning_codes,
            },
        )

    @staticmethod
    def transaction_reopened(
        transaction_id: Optional[str],
        approved_by: str,
        reason: str,
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            level=DiagnosticLevel.WARNING,
            stage=DiagnosticStage.APPROVAL,
            transaction_id=transaction_id,
            message="Approved transaction re-opened for reassignment",
            details={"approved_by": approved_by, "reason": reason},
        )

    @staticmethod
    def approval_blocked(
        transaction_id: Optional[str],
        reason: str,
        codes: list[str],
    ) -> DiagnosticEntry:
        return DiagnosticEntry(
            level=DiagnosticLevel.WARNING,
            stage=DiagnosticStage.APPROVAL,
            transaction_id=transaction_id,
            message=f"Approval blocked: {reason}",
            details={"codes": codes},
        )
