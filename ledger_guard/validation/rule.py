"""
Validation Rule Interface

Every rule implements a single capability: validate(context) -> ValidationResult.
Rules hold no per-run state, so one instance can serve concurrent
validations. Helper predicates live as plain module functions next to
the rules that use them.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ledger_guard.models.validation import (
    ValidationContext,
    ValidationIssue,
    ValidationLevel,
    ValidationResult,
    ValidationSeverity,
)


class ValidationRule(ABC):
    """
    Base class for validation rules.

    Subclasses set the class attributes below and implement validate().
    """

    id: str = ""
    name: str = ""
    description: str = ""
    level: ValidationLevel = ValidationLevel.STRUCTURAL
    priority: int = 0
    dependencies: tuple[str, ...] = ()
    can_override: bool = False

    @abstractmethod
    def validate(self, context: ValidationContext) -> ValidationResult:
        """Check the context. May raise; the service turns faults into VALIDATION_ERROR."""
        pass

    # =========================================================================
    # Result helpers
    # =========================================================================

    def error(
        self,
        code: str,
        message: str,
        affected_fields: Optional[list[str]] = None,
        suggested_fix: Optional[str] = None,
    ) -> ValidationIssue:
        return ValidationIssue(
            code=code,
            message=message,
            level=self.level,
            severity=ValidationSeverity.ERROR,
            affected_fields=affected_fields or [],
            rule_id=self.id,
            suggested_fix=suggested_fix,
        )

    def warning(
        self,
        code: str,
        message: str,
        affected_fields: Optional[list[str]] = None,
        suggested_fix: Optional[str] = None,
    ) -> ValidationIssue:
        return ValidationIssue(
            code=code,
            message=message,
            level=self.level,
            severity=ValidationSeverity.WARNING,
            affected_fields=affected_fields or [],
            rule_id=self.id,
            suggested_fix=suggested_fix,
        )

    def result(
        self,
        errors: Optional[list[ValidationIssue]] = None,
        warnings: Optional[list[ValidationIssue]] = None,
    ) -> ValidationResult:
        errors = errors or []
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings or [],
            level=self.level,
            rule_id=self.id,
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id!r}, level={self.level.value}, "
            f"priority={self.priority})"
        )
