"""
Validation Service

Runs the registered rules against a posting, level by level.

DESIGN DECISION: Validation is a sequence of gates, not a checklist.
1. Levels run in order: Structural -> Accounting -> Business -> Historical
2. Within a level, rules run by descending priority
3. A rule whose dependencies did not pass (or are not overridden) is skipped
4. The first uncovered error stops the level AND every later level

Errors covered by an active override are still reported; the override only
removes their blocking effect.

A rule that raises is reported as a single VALIDATION_ERROR at its level,
so one broken rule cannot take the whole pipeline down.
"""

import threading
from datetime import datetime
from typing import Optional

import structlog

from ledger_guard.audit.logger import EventLog
from ledger_guard.models.account import Account, Transaction
from ledger_guard.models.audit import DiagnosticEntryBuilder
from ledger_guard.models.validation import (
    ValidationContext,
    ValidationIssue,
    ValidationLevel,
    ValidationOverride,
    ValidationResult,
    ValidationSeverity,
    has_valid_override,
    utc_now,
)
from ledger_guard.validation.overrides import OverrideStore
from ledger_guard.validation.registry import RuleRegistry
from ledger_guard.validation.rule import ValidationRule


logger = structlog.get_logger(__name__)


class _Run:
    """Per-call memo: every rule is evaluated at most once per validate()."""

    def __init__(self, context: ValidationContext, now: datetime):
        self.context = context
        self.now = now
        self.results: dict[str, Optional[ValidationResult]] = {}
        self.unmet: dict[str, list[str]] = {}


class ValidationService:
    """
    Orchestrates rule execution and override handling.

    The registry's dependency graph is checked at construction: an engine
    with a cyclic rule set refuses to start.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        overrides: Optional[OverrideStore] = None,
        event_log: Optional[EventLog] = None,
    ):
        registry.validate_dependency_graph()
        self._registry = registry
        self._event_log = event_log if event_log is not None else EventLog()
        if overrides is None:
            overrides = OverrideStore(registry, self._event_log)
        self._overrides = overrides
        self._cache: dict[str, ValidationResult] = {}
        self._cache_lock = threading.Lock()

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    @property
    def overrides(self) -> OverrideStore:
        return self._overrides

    # =========================================================================
    # Rules and overrides
    # =========================================================================

    def register_rule(self, rule: ValidationRule) -> None:
        """Register a rule and re-check the dependency graph."""
        self._registry.register(rule)
        self._registry.validate_dependency_graph()

    def add_override(self, override: ValidationOverride) -> None:
        """
        Raises:
            UnknownRuleError: If the rule is not registered
            RuleNotOverridableError: If the rule cannot be overridden
        """
        self._overrides.add(override)

    def remove_override(self, rule_id: str) -> bool:
        return self._overrides.remove(rule_id)

    def clear_expired_overrides(self, now: Optional[datetime] = None) -> int:
        return self._overrides.clear_expired(now)

    def cached_result(self, transaction_id: str) -> Optional[ValidationResult]:
        """Most recent result for a transaction id, if any."""
        with self._cache_lock:
            return self._cache.get(transaction_id)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(
        self,
        transaction: Optional[Transaction],
        debit_account: Optional[Account],
        credit_account: Optional[Account],
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """
        Validate a proposed posting.

        Args:
            transaction: The transaction being posted
            debit_account: Proposed debit account, None if not chosen
            credit_account: Proposed credit account, None if not chosen
            now: Reference time for override expiry (defaults to the current time)

        Returns:
            Aggregated ValidationResult. is_valid is True iff every error
            is covered by an active override.
        """
        now = now or utc_now()
        context = ValidationContext(
            transaction=transaction,
            debit_account=debit_account,
            credit_account=credit_account,
            overrides=self._overrides.snapshot(),
        )
        run = _Run(context, now)

        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        applied: dict[str, ValidationOverride] = {}
        evaluated: list[str] = []
        skipped: list[str] = []
        blocked = False
        last_level = ValidationLevel.STRUCTURAL

        for level in ValidationLevel:
            rules = self._registry.rules_for_level(level)
            if not rules:
                continue
            last_level = level

            for rule in rules:
                result = self._evaluate(rule, run)
                if result is None:
                    skipped.append(rule.id)
                    self._event_log.record(DiagnosticEntryBuilder.rule_skipped(
                        context.transaction_id, rule.id, run.unmet.get(rule.id, []),
                    ))
                    continue

                evaluated.append(rule.id)
                errors.extend(result.errors)
                warnings.extend(result.warnings)
                for override in result.overrides:
                    applied[override.rule_id] = override

                if result.has_errors and not has_valid_override(result, now):
                    blocked = True
                    break

            if blocked:
                break

        aggregated = ValidationResult(
            is_valid=not blocked,
            errors=errors,
            warnings=warnings,
            overrides=list(applied.values()),
            level=last_level,
            transaction_id=context.transaction_id,
            debit_account_id=debit_account.id if debit_account is not None else None,
            credit_account_id=credit_account.id if credit_account is not None else None,
            rules_evaluated=evaluated,
            rules_skipped=skipped,
        )

        if aggregated.transaction_id:
            with self._cache_lock:
                self._cache[aggregated.transaction_id] = aggregated

        self._event_log.record(DiagnosticEntryBuilder.validation_completed(
            aggregated.transaction_id,
            aggregated.is_valid,
            aggregated.to_log_dict(),
        ))
        return aggregated

    def _evaluate(self, rule: ValidationRule, run: _Run) -> Optional[ValidationResult]:
        """
        Evaluate a rule once per run, resolving its dependencies first.

        Returns None when the rule is not applicable because a dependency
        neither passed nor is covered by an active override.
        """
        if rule.id in run.results:
            return run.results[rule.id]

        unmet = []
        for dependency_id in sorted(self._registry.dependencies_of(rule.id)):
            dependency = self._registry.require(dependency_id)
            dependency_result = self._evaluate(dependency, run)
            if dependency_result is None:
                unmet.append(dependency_id)
            elif not dependency_result.is_valid and not has_valid_override(dependency_result, run.now):
                unmet.append(dependency_id)

        if unmet:
            run.unmet[rule.id] = unmet
            run.results[rule.id] = None
            return None

        result = self._execute(rule, run.context)
        if result.has_errors and rule.can_override:
            active = [
                override for override in run.context.overrides
                if override.rule_id == rule.id and override.is_active(run.now)
            ]
            if active:
                result = result.model_copy(update={"overrides": active})

        run.results[rule.id] = result
        return result

    def _execute(self, rule: ValidationRule, context: ValidationContext) -> ValidationResult:
        try:
            result = rule.validate(context)
        except Exception as e:
            logger.error(
                "validation_rule_fault",
                rule_id=rule.id,
                error=str(e),
                exc_info=True,
            )
            self._event_log.record(
                DiagnosticEntryBuilder.rule_fault(context.transaction_id, rule.id, e)
            )
            return ValidationResult(
                is_valid=False,
                errors=[ValidationIssue(
                    code="VALIDATION_ERROR",
                    message=f"Rule {rule.name or rule.id} failed: {e}",
                    level=rule.level,
                    severity=ValidationSeverity.ERROR,
                    rule_id=rule.id,
                )],
                level=rule.level,
                rule_id=rule.id,
            )

        # Results are attributed to the rule that produced them
        updates = {}
        if result.rule_id is None:
            updates["rule_id"] = rule.id
        if result.errors and result.is_valid:
            updates["is_valid"] = False
        if updates:
            result = result.model_copy(update=updates)
        return result
