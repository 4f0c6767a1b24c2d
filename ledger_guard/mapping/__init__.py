"""Account mapping package: classification, ranking and usage history."""

from ledger_guard.mapping.categories import (
    DEFAULT_CATEGORIES,
    ContextRule,
    TransactionCategory,
    TransactionClassifier,
)
from ledger_guard.mapping.engine import (
    PRIORITY_RULES,
    AccountMappingEngine,
    MappingError,
    NoMatchingAccountsError,
    NotInitializedError,
)
from ledger_guard.mapping.history import UsageHistory
from ledger_guard.mapping.text import (
    detect_indicators,
    extract_keywords,
    normalize_description,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "PRIORITY_RULES",
    "AccountMappingEngine",
    "ContextRule",
    "MappingError",
    "NoMatchingAccountsError",
    "NotInitializedError",
    "TransactionCategory",
    "TransactionClassifier",
    "UsageHistory",
    "detect_indicators",
    "extract_keywords",
    "normalize_description",
]
