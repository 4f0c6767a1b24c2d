"""Built-in validation rules."""

from typing import Optional

from ledger_guard.config.settings import EngineSettings
from ledger_guard.validation.registry import RuleRegistry
from ledger_guard.validation.rule import ValidationRule
from ledger_guard.validation.rules.accounting import (
    ACCOUNT_TYPE_COMPATIBILITY,
    CONTRA_ACCOUNT,
    DEBIT_CREDIT_EQUALITY,
    DISTINCT_ACCOUNTS,
    SIGN_CONVENTION,
    AccountTypeCompatibilityRule,
    ContraAccountRule,
    DebitCreditEqualityRule,
    DistinctAccountsRule,
    SignConventionRule,
    compatibility_error,
    normal_balance,
)
from ledger_guard.validation.rules.structural import (
    ACCOUNT_EXISTENCE,
    ACCOUNT_TYPE,
    TRANSACTION_STRUCTURE,
    AccountExistenceRule,
    AccountTypeRule,
    TransactionStructureRule,
)


def default_rules(settings: Optional[EngineSettings] = None) -> list[ValidationRule]:
    """The built-in rule set, dependencies before dependents."""
    settings = settings if settings is not None else EngineSettings()
    return [
        AccountExistenceRule(),
        TransactionStructureRule(min_description_length=settings.min_description_length),
        AccountTypeRule(),
        DebitCreditEqualityRule(decimal_places=settings.amount_decimal_places),
        DistinctAccountsRule(),
        AccountTypeCompatibilityRule(),
        SignConventionRule(),
        ContraAccountRule(),
    ]


def build_default_registry(settings: Optional[EngineSettings] = None) -> RuleRegistry:
    """A registry holding the built-in rules, with its dependency graph checked."""
    registry = RuleRegistry()
    for rule in default_rules(settings):
        registry.register(rule)
    registry.validate_dependency_graph()
    return registry


__all__ = [
    "ACCOUNT_EXISTENCE",
    "ACCOUNT_TYPE",
    "ACCOUNT_TYPE_COMPATIBILITY",
    "CONTRA_ACCOUNT",
    "DEBIT_CREDIT_EQUALITY",
    "DISTINCT_ACCOUNTS",
    "SIGN_CONVENTION",
    "TRANSACTION_STRUCTURE",
    "AccountExistenceRule",
    "AccountTypeCompatibilityRule",
    "AccountTypeRule",
    "ContraAccountRule",
    "DebitCreditEqualityRule",
    "DistinctAccountsRule",
    "SignConventionRule",
    "TransactionStructureRule",
    "build_default_registry",
    "compatibility_error",
    "default_rules",
    "normal_balance",
]
