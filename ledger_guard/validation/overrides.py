"""
Override Store

Holds human-approved overrides, one per rule id. An override applies to
every transaction validated while it is active.

IMPORTANT: Expired overrides are not removed on their own. They are
filtered out at check time and only disappear through clear_expired().
"""

import threading
from datetime import datetime
from typing import Optional

from ledger_guard.audit.logger import EventLog
from ledger_guard.models.audit import DiagnosticEntryBuilder
from ledger_guard.models.validation import ValidationOverride, utc_now
from ledger_guard.validation.registry import RuleRegistry, UnknownRuleError


class OverrideError(Exception):
    """Base exception for override errors."""
    pass


class RuleNotOverridableError(OverrideError):
    """Raised when an override targets a rule declared non-overridable."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Rule {rule_id} cannot be overridden")


class OverrideStore:
    """
    Lock-guarded map of rule id -> override.

    Adding an override for a rule that already has one replaces it.
    """

    def __init__(self, registry: RuleRegistry, event_log: Optional[EventLog] = None):
        self._registry = registry
        self._event_log = event_log if event_log is not None else EventLog()
        self._overrides: dict[str, ValidationOverride] = {}
        self._lock = threading.Lock()

    def add(self, override: ValidationOverride) -> None:
        """
        Store an override.

        Raises:
            UnknownRuleError: If the rule is not registered
            RuleNotOverridableError: If the rule declares can_override = False
        """
        rule = self._registry.get(override.rule_id)
        if rule is None:
            self._event_log.record(
                DiagnosticEntryBuilder.override_rejected(override.rule_id, "unknown rule")
            )
            raise UnknownRuleError(override.rule_id)
        if not rule.can_override:
            self._event_log.record(
                DiagnosticEntryBuilder.override_rejected(override.rule_id, "rule is not overridable")
            )
            raise RuleNotOverridableError(override.rule_id)

        with self._lock:
            self._overrides[override.rule_id] = override

        self._event_log.record(
            DiagnosticEntryBuilder.override_added(
                rule_id=override.rule_id,
                approved_by=override.approved_by,
                reason=override.reason,
                expires_at=override.expires_at,
            )
        )

    def remove(self, rule_id: str) -> bool:
        """Revoke the override for a rule. Returns False if there was none."""
        with self._lock:
            removed = self._overrides.pop(rule_id, None)
        if removed is not None:
            self._event_log.record(DiagnosticEntryBuilder.override_removed(rule_id, 1))
        return removed is not None

    def clear_expired(self, now: Optional[datetime] = None) -> int:
        """Physically remove overrides that are no longer active. Returns the count."""
        now = now or utc_now()
        with self._lock:
            expired = [
                rule_id for rule_id, override in self._overrides.items()
                if not override.is_active(now)
            ]
            for rule_id in expired:
                del self._overrides[rule_id]
        self._event_log.record(DiagnosticEntryBuilder.overrides_pruned(len(expired)))
        return len(expired)

    def get(self, rule_id: str) -> Optional[ValidationOverride]:
        """The stored override for a rule, active or not."""
        with self._lock:
            return self._overrides.get(rule_id)

    def snapshot(self) -> tuple[ValidationOverride, ...]:
        """Every stored override, including expired ones."""
        with self._lock:
            return tuple(self._overrides.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._overrides)
