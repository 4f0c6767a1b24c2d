"""
Validation package.

Rule registry, override store, validation service and the built-in rules.
"""

from ledger_guard.validation.overrides import (
    OverrideError,
    OverrideStore,
    RuleNotOverridableError,
)
from ledger_guard.validation.registry import (
    CircularDependencyError,
    DuplicateRuleError,
    RuleRegistry,
    RuleRegistryError,
    UnknownDependencyError,
    UnknownRuleError,
)
from ledger_guard.validation.rule import ValidationRule
from ledger_guard.validation.rules import build_default_registry, default_rules
from ledger_guard.validation.service import ValidationService

__all__ = [
    "CircularDependencyError",
    "DuplicateRuleError",
    "OverrideError",
    "OverrideStore",
    "RuleNotOverridableError",
    "RuleRegistry",
    "RuleRegistryError",
    "UnknownDependencyError",
    "UnknownRuleError",
    "ValidationRule",
    "ValidationService",
    "build_default_registry",
    "default_rules",
]
