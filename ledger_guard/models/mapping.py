"""
Account Mapping Models

Transient outputs of the mapping engine. Nothing here is persisted:
rankings are recomputed on every request. The only learned state lives
in UsageHistory (ledger_guard.mapping.history).
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ledger_guard.models.account import Account, AccountSubtype, AccountType, EntrySide


CONFIDENCE_CEILING = 0.95


class AccountTarget(BaseModel):
    """The account type (and preferred subtype) wanted for one posting side."""

    type: AccountType
    subtype: Optional[AccountSubtype] = None

    def describe(self) -> str:
        if self.subtype is None:
            return self.type.value
        return f"{self.type.value} - {self.subtype.value}"


class TransactionIndicators(BaseModel):
    """Cheap textual signals detected in a description."""

    is_recurring: bool = False
    is_correction: bool = False
    is_refund: bool = False
    is_capital_expense: bool = False


class CategoryMatch(BaseModel):
    """
    Result of classifying a transaction into a transaction category.

    category is None when nothing matched and the default
    expense/liability pairing was used.
    """

    category: Optional[str] = None
    score: float = 0.0
    debit: AccountTarget
    credit: AccountTarget
    confidence: float = Field(ge=0.0, le=CONFIDENCE_CEILING)
    keyword_hits: list[str] = Field(default_factory=list)
    indicators: TransactionIndicators = Field(default_factory=TransactionIndicators)
    reasoning: list[str] = Field(default_factory=list)

    @property
    def is_default(self) -> bool:
        return self.category is None


class SelectionContext(BaseModel):
    """What the ranking function knows about the transaction being mapped."""

    role: EntrySide
    description: str = ""
    amount: Optional[Decimal] = None
    base_confidence: float = 0.0


class AccountMatchResult(BaseModel):
    """
    One ranked candidate.

    priority orders candidates; confidence is the bounded estimate
    that the candidate is right. They are computed independently.
    """

    account: Account
    confidence: float = Field(ge=0.0, le=CONFIDENCE_CEILING)
    priority: float = 0.0
    match_reasons: list[str] = Field(default_factory=list)


class MappingSource(str, Enum):
    HEURISTIC = "heuristic"
    ORACLE = "oracle"


class TransactionMapping(BaseModel):
    """A suggested debit/credit pair for one transaction."""

    transaction_id: Optional[str] = None
    debit: AccountMatchResult
    credit: AccountMatchResult
    category: Optional[str] = None
    confidence: float = Field(ge=0.0, le=CONFIDENCE_CEILING)
    reasoning: list[str] = Field(default_factory=list)
    source: MappingSource = MappingSource.HEURISTIC

    @property
    def debit_account(self) -> Account:
        return self.debit.account

    @property
    def credit_account(self) -> Account:
        return self.credit.account


class BatchItemResult(BaseModel):
    """Outcome of one transaction inside a batch mapping request."""

    transaction_id: str
    mapping: Optional[TransactionMapping] = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.mapping is not None
