"""
Account Mapping Engine

Suggests a debit and a credit account for a transaction.

Two scores per candidate, computed independently:
- priority: sum of fixed weights from PRIORITY_RULES, used for ordering
- confidence: bounded [0, 0.95] estimate that the candidate is right

Candidates are sorted by priority, then confidence, both descending.
The input order is the account index order (by code), and the sort is
stable, so ranking is deterministic for a fixed index and history.
"""

from decimal import Decimal
from typing import Callable, Iterable, NamedTuple, Optional

import structlog

from ledger_guard.accounts.index import AccountIndex
from ledger_guard.audit.logger import EventLog
from ledger_guard.config.settings import EngineSettings
from ledger_guard.mapping.categories import TransactionClassifier
from ledger_guard.mapping.history import UsageHistory
from ledger_guard.mapping.text import code_pattern
from ledger_guard.models.account import (
    Account,
    AccountSubtype,
    AccountType,
    EntrySide,
    Transaction,
)
from ledger_guard.models.audit import DiagnosticEntryBuilder
from ledger_guard.models.mapping import (
    CONFIDENCE_CEILING,
    AccountMatchResult,
    AccountTarget,
    CategoryMatch,
    SelectionContext,
    TransactionMapping,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class MappingError(Exception):
    """Base exception for mapping errors."""
    pass


class NotInitializedError(MappingError):
    """Raised when a mapping is requested before a chart of accounts was loaded."""
    pass


class NoMatchingAccountsError(MappingError):
    """Raised when no active account is eligible for a posting target."""

    def __init__(self, account_type: AccountType, subtype: Optional[AccountSubtype] = None):
        self.account_type = account_type
        self.subtype = subtype
        target = account_type.value if subtype is None else f"{account_type.value}/{subtype.value}"
        super().__init__(f"No matching accounts found for type: {target}")


# =============================================================================
# PATTERNS
# =============================================================================

TYPE_PATTERNS: dict[AccountType, tuple[str, ...]] = {
    AccountType.ASSET: ("purchase", "buy", "acquire", "investment"),
    AccountType.LIABILITY: ("loan", "borrow", "credit", "debt"),
    AccountType.REVENUE: ("revenue", "income", "earn", "receive"),
    AccountType.EXPENSE: ("expense", "cost", "pay", "spend"),
    AccountType.EQUITY: ("capital", "equity", "owner", "share"),
}

SUBTYPE_PATTERNS: dict[AccountSubtype, tuple[str, ...]] = {
    AccountSubtype.CASH: ("cash", "money", "currency", "atm"),
    AccountSubtype.BANK_ACCOUNT: ("bank", "deposit", "transfer", "wire"),
    AccountSubtype.ACCOUNTS_RECEIVABLE: ("invoice", "receivable", "customer", "due"),
    AccountSubtype.ACCOUNTS_PAYABLE: ("bill", "payable", "vendor", "supplier"),
}

HISTORY_CONFIDENCE_WEIGHT = 0.2
CODE_MATCH_BONUS = 0.15


def account_patterns(account: Account) -> list[str]:
    """Lower-case fragments whose presence in a description points at the account."""
    return [
        account.name.lower(),
        account.code.lower(),
        *TYPE_PATTERNS.get(account.type, ()),
        *SUBTYPE_PATTERNS.get(account.subtype, ()),
    ]


def matches_transaction_pattern(account: Account, description: str) -> bool:
    text = description.lower()
    return any(pattern and pattern in text for pattern in account_patterns(account))


def matches_account_code(account: Account, description: str) -> bool:
    return bool(code_pattern(account.code).search(description))


class PriorityRule(NamedTuple):
    reason: str
    weight: float
    applies: Callable[[Account, SelectionContext, UsageHistory], bool]


PRIORITY_RULES: tuple[PriorityRule, ...] = (
    PriorityRule(
        "Matches transaction pattern",
        0.3,
        lambda account, context, history: matches_transaction_pattern(account, context.description),
    ),
    PriorityRule(
        "Historical usage pattern",
        0.2,
        lambda account, context, history: history.has_usage(context.description, account.id),
    ),
    PriorityRule(
        "Within typical amount range",
        0.15,
        lambda account, context, history: history.within_range(account, context.amount),
    ),
    PriorityRule(
        "Default account for type",
        0.1,
        lambda account, context, history: account.is_default,
    ),
)


# =============================================================================
# ENGINE
# =============================================================================

class AccountMappingEngine:
    """
    Ranks candidate accounts and learns from confirmed mappings.

    The account index is replaced wholesale by initialize(); the usage
    history survives re-initialization.
    """

    def __init__(
        self,
        event_log: Optional[EventLog] = None,
        history: Optional[UsageHistory] = None,
        classifier: Optional[TransactionClassifier] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._event_log = event_log if event_log is not None else EventLog()
        self._history = history if history is not None else UsageHistory()
        self._classifier = classifier if classifier is not None else TransactionClassifier()
        self._settings = settings if settings is not None else EngineSettings()
        self._index: Optional[AccountIndex] = None

    def initialize(self, accounts: Iterable[Account]) -> None:
        """
        Load a chart of accounts snapshot.

        Raises:
            NoAccountsProvidedError: If the chart is empty
            DuplicateAccountCodeError: If a code repeats within a standard
        """
        self._index = AccountIndex(accounts)
        logger.info("mapping_engine_initialized", accounts=len(self._index))

    @property
    def is_initialized(self) -> bool:
        return self._index is not None

    @property
    def index(self) -> AccountIndex:
        if self._index is None:
            raise NotInitializedError("Transaction mapper not initialized")
        return self._index

    @property
    def history(self) -> UsageHistory:
        return self._history

    @property
    def classifier(self) -> TransactionClassifier:
        return self._classifier

    # =========================================================================
    # Ranking
    # =========================================================================

    def evaluate(self, account: Account, context: SelectionContext) -> AccountMatchResult:
        priority = 0.0
        reasons = []
        for rule in PRIORITY_RULES:
            if rule.applies(account, context, self._history):
                priority += rule.weight
                reasons.append(rule.reason)

        confidence = context.base_confidence
        confidence += self._history.accuracy(context.description, account.id) * HISTORY_CONFIDENCE_WEIGHT
        if matches_account_code(account, context.description):
            confidence += CODE_MATCH_BONUS
            reasons.append("Account code appears in description")

        return AccountMatchResult(
            account=account,
            confidence=max(0.0, min(CONFIDENCE_CEILING, confidence)),
            priority=round(priority, 6),
            match_reasons=reasons,
        )

    def rank_accounts(
        self,
        account_type: AccountType,
        subtype: Optional[AccountSubtype],
        context: SelectionContext,
    ) -> list[AccountMatchResult]:
        """
        Rank the active accounts eligible for a target.

        Raises:
            NotInitializedError: If no chart has been loaded
            NoMatchingAccountsError: If nothing is eligible
        """
        candidates = self.index.eligible(account_type, subtype)
        if not candidates:
            raise NoMatchingAccountsError(account_type, subtype)
        results = [self.evaluate(account, context) for account in candidates]
        results.sort(key=lambda r: (-r.priority, -r.confidence))
        return results

    def best_account(
        self,
        account_type: AccountType,
        subtype: Optional[AccountSubtype],
        context: SelectionContext,
    ) -> AccountMatchResult:
        return self.rank_accounts(account_type, subtype, context)[0]

    def _rank_target(
        self,
        target: AccountTarget,
        role: EntrySide,
        transaction: Transaction,
        match: CategoryMatch,
    ) -> list[AccountMatchResult]:
        context = SelectionContext(
            role=role,
            description=transaction.description,
            amount=transaction.amount,
            base_confidence=match.confidence,
        )
        return self.rank_accounts(target.type, target.subtype, context)

    def map_transaction(self, transaction: Transaction) -> TransactionMapping:
        """
        Classify a transaction and pick the best debit and credit accounts.

        Raises:
            NotInitializedError: If no chart has been loaded
            NoMatchingAccountsError: If a side has no eligible account
        """
        index = self.index
        try:
            match = self._classifier.classify(transaction.description, transaction.amount)
            debit_ranked = self._rank_target(match.debit, EntrySide.DEBIT, transaction, match)
            credit_ranked = self._rank_target(match.credit, EntrySide.CREDIT, transaction, match)
        except NoMatchingAccountsError as e:
            self._event_log.record(
                DiagnosticEntryBuilder.mapping_failed(transaction.id or None, str(e))
            )
            raise

        debit = debit_ranked[0]
        credit = next(
            (c for c in credit_ranked if c.account.id != debit.account.id),
            credit_ranked[0],
        )

        reasoning = [
            *match.reasoning,
            *debit.match_reasons,
            *credit.match_reasons,
            f"Selected debit account: {debit.account.name} "
            f"({debit.account.type.value}/{debit.account.subtype.value})",
            f"Selected credit account: {credit.account.name} "
            f"({credit.account.type.value}/{credit.account.subtype.value})",
        ]
        mapping = TransactionMapping(
            transaction_id=transaction.id or None,
            debit=debit,
            credit=credit,
            category=match.category,
            confidence=min(debit.confidence, credit.confidence),
            reasoning=reasoning,
        )

        self._event_log.record(DiagnosticEntryBuilder.mapping_completed(
            transaction_id=mapping.transaction_id,
            debit_code=debit.account.code,
            credit_code=credit.account.code,
            confidence=mapping.confidence,
            source=mapping.source.value,
            category=mapping.category,
        ))
        logger.debug("candidates_ranked", accounts=len(index), category=match.category)
        return mapping

    # =========================================================================
    # Learning
    # =========================================================================

    def record_mapping(self, transaction: Transaction, debit: Account, credit: Account) -> None:
        """Learn from a confirmed mapping: usage frequencies and amount ranges."""
        amount: Optional[Decimal] = transaction.amount
        self._history.record(transaction.description, debit, amount)
        self._history.record(transaction.description, credit, amount)
        self._event_log.record(DiagnosticEntryBuilder.mapping_recorded(
            transaction_id=transaction.id or None,
            history_key=UsageHistory.key_for(transaction.description),
            debit_code=debit.code,
            credit_code=credit.code,
        ))

    def historical_suggestions(self, description: str, limit: Optional[int] = None) -> list[Account]:
        """Accounts most often confirmed for this exact (normalized) description."""
        limit = limit or self._settings.history_suggestion_limit
        index = self.index
        suggestions = []
        for account_id, _ in self._history.frequencies(description):
            account = index.get(account_id)
            if account is not None:
                suggestions.append(account)
            if len(suggestions) >= limit:
                break
        return suggestions
