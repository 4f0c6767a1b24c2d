"""
Rule Registry

Holds the validation rules, indexed by level and by dependency edges.

DESIGN DECISION: Dependencies must be registered before their dependents.
Single registrations therefore can never create a cycle; a cycle can only
enter through register_many, and validate_dependency_graph() must be run
before the registry serves a validation.
"""

from typing import Iterable, Optional

import structlog

from ledger_guard.models.validation import ValidationLevel
from ledger_guard.validation.rule import ValidationRule


logger = structlog.get_logger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class RuleRegistryError(Exception):
    """Base exception for rule registration errors."""
    pass


class DuplicateRuleError(RuleRegistryError):
    """Raised when a rule id is registered twice."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Rule already registered: {rule_id}")


class UnknownDependencyError(RuleRegistryError):
    """Raised when a rule depends on a rule that is not registered."""

    def __init__(self, rule_id: str, dependency_id: str):
        self.rule_id = rule_id
        self.dependency_id = dependency_id
        super().__init__(
            f"Rule {rule_id} depends on unknown rule: {dependency_id}"
        )


class CircularDependencyError(RuleRegistryError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Circular dependency detected at rule: {rule_id}")


class UnknownRuleError(RuleRegistryError):
    """Raised when a rule id is looked up but not registered."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Unknown rule: {rule_id}")


# =============================================================================
# REGISTRY
# =============================================================================

class RuleRegistry:
    """
    Registry of validation rules.

    Read-only once validation starts; not synchronized.
    """

    def __init__(self):
        self._rules: dict[str, ValidationRule] = {}
        self._order: dict[str, int] = {}
        self._by_level: dict[ValidationLevel, list[ValidationRule]] = {
            level: [] for level in ValidationLevel
        }
        self._dependencies: dict[str, frozenset[str]] = {}
        self._sequence = 0

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def register(self, rule: ValidationRule) -> None:
        """
        Register one rule.

        Raises:
            DuplicateRuleError: If the id already exists
            UnknownDependencyError: If a dependency is not registered yet
        """
        if rule.id in self._rules:
            raise DuplicateRuleError(rule.id)
        for dependency_id in rule.dependencies:
            if dependency_id not in self._rules:
                raise UnknownDependencyError(rule.id, dependency_id)
        self._add(rule)

    def register_many(self, rules: Iterable[ValidationRule]) -> None:
        """
        Register a batch atomically.

        Dependencies may point at rules registered earlier or at any rule
        of the same batch. Nothing is registered if any rule is rejected.
        """
        batch = list(rules)
        batch_ids: set[str] = set()
        for rule in batch:
            if rule.id in self._rules or rule.id in batch_ids:
                raise DuplicateRuleError(rule.id)
            batch_ids.add(rule.id)

        for rule in batch:
            for dependency_id in rule.dependencies:
                if dependency_id not in self._rules and dependency_id not in batch_ids:
                    raise UnknownDependencyError(rule.id, dependency_id)

        added: list[str] = []
        try:
            for rule in batch:
                self._add(rule)
                added.append(rule.id)
        except Exception:
            for rule_id in added:
                self._remove(rule_id)
            raise

    def _add(self, rule: ValidationRule) -> None:
        self._rules[rule.id] = rule
        self._order[rule.id] = self._sequence
        self._sequence += 1
        self._dependencies[rule.id] = frozenset(rule.dependencies)
        bucket = self._by_level[rule.level]
        bucket.append(rule)
        # Stable sort keeps registration order among equal priorities
        bucket.sort(key=lambda r: (-r.priority, self._order[r.id]))
        logger.debug(
            "rule_registered",
            rule_id=rule.id,
            level=rule.level.value,
            priority=rule.priority,
        )

    def _remove(self, rule_id: str) -> None:
        rule = self._rules.pop(rule_id)
        self._order.pop(rule_id, None)
        self._dependencies.pop(rule_id, None)
        self._by_level[rule.level] = [
            r for r in self._by_level[rule.level] if r.id != rule_id
        ]

    def get(self, rule_id: str) -> Optional[ValidationRule]:
        return self._rules.get(rule_id)

    def require(self, rule_id: str) -> ValidationRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise UnknownRuleError(rule_id)
        return rule

    def all_rules(self) -> list[ValidationRule]:
        return sorted(self._rules.values(), key=lambda r: self._order[r.id])

    def rules_for_level(self, level: ValidationLevel) -> list[ValidationRule]:
        """Rules of a level, by descending priority then registration order."""
        return list(self._by_level[level])

    def dependencies_of(self, rule_id: str) -> frozenset[str]:
        if rule_id not in self._rules:
            raise UnknownRuleError(rule_id)
        return self._dependencies[rule_id]

    def validate_dependency_graph(self) -> None:
        """
        Depth-first cycle detection over every registered rule.

        The visited set is per path, so two rules sharing a dependency
        (a diamond) are not mistaken for a cycle.

        Raises:
            CircularDependencyError: Naming one rule on the cycle
        """
        verified: set[str] = set()

        def visit(rule_id: str, path: frozenset[str]) -> None:
            if rule_id in path:
                raise CircularDependencyError(rule_id)
            if rule_id in verified:
                return
            path = path | {rule_id}
            for dependency_id in sorted(self._dependencies.get(rule_id, ())):
                visit(dependency_id, path)
            verified.add(rule_id)

        for rule in self.all_rules():
            visit(rule.id, frozenset())

        logger.debug("dependency_graph_validated", rules=len(self._rules))
