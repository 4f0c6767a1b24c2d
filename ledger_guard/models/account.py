"""
Chart of Accounts and Transaction Models

These models describe the two inputs every posting decision starts from:
1. An Account from the chart of accounts (read-only to this package)
2. A Transaction imported from a source ledger

A single Account shape is shared by the mapping engine and the
validation rules.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Closed vocabularies
# =============================================================================

class AccountType(str, Enum):
    """
    Account types.

    The first five are the posting types of double-entry bookkeeping.
    PRODUCTION, MEMO and OFF are non-posting types kept for charts
    imported from other standards.
    """
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"
    PRODUCTION = "production"
    MEMO = "memo"
    OFF = "off"


class AccountSubtype(str, Enum):
    """Account subtypes. Which ones are valid depends on the type."""
    # Asset
    CURRENT_ASSET = "current-asset"
    NON_CURRENT_ASSET = "non-current-asset"
    CASH = "cash"
    BANK_ACCOUNT = "bank-account"
    ACCOUNTS_RECEIVABLE = "accounts-receivable"
    INVENTORY = "inventory"
    FIXED_ASSET = "fixed-asset"
    ALLOWANCE_DOUBTFUL_ACCOUNTS = "allowance-doubtful-accounts"
    ACCUMULATED_DEPRECIATION = "accumulated-depreciation"

    # Liability
    CURRENT_LIABILITY = "current-liability"
    NON_CURRENT_LIABILITY = "non-current-liability"
    ACCOUNTS_PAYABLE = "accounts-payable"
    SHORT_TERM_LIABILITY = "short-term-liability"
    LONG_TERM_LIABILITY = "long-term-liability"
    DISCOUNT_BONDS_PAYABLE = "discount-bonds-payable"

    # Equity
    CONTRIBUTED_CAPITAL = "contributed-capital"
    RETAINED_EARNINGS = "retained-earnings"
    COMMON_STOCK = "common-stock"

    # Revenue
    OPERATING_REVENUE = "operating-revenue"
    OTHER_REVENUE = "other-revenue"
    SALES_REVENUE = "sales-revenue"
    SERVICE_REVENUE = "service-revenue"
    SALES_RETURNS = "sales-returns"
    SALES_DISCOUNTS = "sales-discounts"

    # Expense
    OPERATING_EXPENSE = "operating-expense"
    OTHER_EXPENSE = "other-expense"
    NON_OPERATING_EXPENSE = "non-operating-expense"
    PURCHASE_RETURNS = "purchase-returns"
    PURCHASE_DISCOUNTS = "purchase-discounts"

    # Structural (non-posting types only)
    HEADER = "header"
    GROUP = "group"
    DETAIL = "detail"


class EntrySide(str, Enum):
    """Side of a posting an account is touched on."""
    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def opposite(self) -> "EntrySide":
        return EntrySide.CREDIT if self is EntrySide.DEBIT else EntrySide.DEBIT


class TransactionStatus(str, Enum):
    """
    Transaction lifecycle.

    pending -> mapped -> approved, with "error" reachable from pending
    and mapped. APPROVED is terminal.
    """
    PENDING = "pending"
    MAPPED = "mapped"
    APPROVED = "approved"
    ERROR = "error"


POSTING_TYPES: frozenset[AccountType] = frozenset({
    AccountType.ASSET,
    AccountType.LIABILITY,
    AccountType.EQUITY,
    AccountType.REVENUE,
    AccountType.EXPENSE,
})

_STRUCTURAL_SUBTYPES = frozenset({
    AccountSubtype.HEADER,
    AccountSubtype.GROUP,
    AccountSubtype.DETAIL,
})

VALID_SUBTYPES: dict[AccountType, frozenset[AccountSubtype]] = {
    AccountType.ASSET: frozenset({
        AccountSubtype.CURRENT_ASSET,
        AccountSubtype.NON_CURRENT_ASSET,
        AccountSubtype.CASH,
        AccountSubtype.BANK_ACCOUNT,
        AccountSubtype.ACCOUNTS_RECEIVABLE,
        AccountSubtype.INVENTORY,
        AccountSubtype.FIXED_ASSET,
        AccountSubtype.ALLOWANCE_DOUBTFUL_ACCOUNTS,
        AccountSubtype.ACCUMULATED_DEPRECIATION,
    }),
    AccountType.LIABILITY: frozenset({
        AccountSubtype.CURRENT_LIABILITY,
        AccountSubtype.NON_CURRENT_LIABILITY,
        AccountSubtype.ACCOUNTS_PAYABLE,
        AccountSubtype.SHORT_TERM_LIABILITY,
        AccountSubtype.LONG_TERM_LIABILITY,
        AccountSubtype.DISCOUNT_BONDS_PAYABLE,
    }),
    AccountType.EQUITY: frozenset({
        AccountSubtype.CONTRIBUTED_CAPITAL,
        AccountSubtype.RETAINED_EARNINGS,
        AccountSubtype.COMMON_STOCK,
    }),
    AccountType.REVENUE: frozenset({
        AccountSubtype.OPERATING_REVENUE,
        AccountSubtype.OTHER_REVENUE,
        AccountSubtype.SALES_REVENUE,
        AccountSubtype.SERVICE_REVENUE,
        AccountSubtype.SALES_RETURNS,
        AccountSubtype.SALES_DISCOUNTS,
    }),
    AccountType.EXPENSE: frozenset({
        AccountSubtype.OPERATING_EXPENSE,
        AccountSubtype.OTHER_EXPENSE,
        AccountSubtype.NON_OPERATING_EXPENSE,
        AccountSubtype.PURCHASE_RETURNS,
        AccountSubtype.PURCHASE_DISCOUNTS,
    }),
    AccountType.PRODUCTION: _STRUCTURAL_SUBTYPES,
    AccountType.MEMO: _STRUCTURAL_SUBTYPES,
    AccountType.OFF: _STRUCTURAL_SUBTYPES,
}


# =============================================================================
# ACCOUNT
# =============================================================================

class Account(BaseModel):
    """
    A single account from the chart of accounts.

    Codes use "." as the hierarchy separator: "1000.100" is a child
    of "1000". Code uniqueness is enforced per standard by the
    AccountIndex, and the subtype/type combination is checked by the
    structural validation rules rather than at construction.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique account identifier"
    )
    code: str = Field(
        ...,
        min_length=1,
        description="Account code, unique within an accounting standard"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Display name"
    )
    type: AccountType
    subtype: AccountSubtype
    is_active: bool = True
    is_contra: bool = Field(
        default=False,
        description="Carries the balance opposite its parent type"
    )
    is_default: bool = Field(
        default=False,
        description="Default account for its type"
    )
    standard_id: Optional[str] = None
    description: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.code} - {self.name}"


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A transaction imported from a source ledger.

    Most fields are optional at the import boundary: the
    structural validation rules, not the model, decide whether a
    transaction is complete enough to post.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: str = Field(
        default="",
        description="Transaction identifier from the source ledger"
    )
    description: str = ""
    amount: Optional[Decimal] = Field(
        default=None,
        description="Positive amount, two decimal places expected"
    )
    date: Optional[dt.date] = None
    customer_name: Optional[str] = None
    reference: Optional[str] = None

    status: TransactionStatus = TransactionStatus.PENDING
    debit_account_id: Optional[str] = None
    credit_account_id: Optional[str] = None

    metadata: dict[str, Any] = Field(default_factory=dict)
    updated_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)

    @property
    def is_mapped(self) -> bool:
        return bool(self.debit_account_id and self.credit_account_id)
