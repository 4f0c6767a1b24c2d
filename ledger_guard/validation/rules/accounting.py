"""
Accounting Rules

Double-entry correctness of a posting that is already structurally sound.

DESIGN DECISION: Compatibility, sign convention and contra checks are
overridable. They encode accounting policy, and an accountant may have a
legitimate reason to post an unusual entry. Amount and pairing checks are
not overridable.
"""

from decimal import Decimal
from typing import Optional

from ledger_guard.models.account import Account, AccountSubtype, AccountType, EntrySide
from ledger_guard.models.validation import ValidationContext, ValidationLevel, ValidationResult
from ledger_guard.validation.rule import ValidationRule
from ledger_guard.validation.rules.structural import (
    ACCOUNT_EXISTENCE,
    ACCOUNT_TYPE,
    TRANSACTION_STRUCTURE,
    is_valid_amount,
)


DEBIT_CREDIT_EQUALITY = "debit-credit-equality"
DISTINCT_ACCOUNTS = "distinct-accounts"
ACCOUNT_TYPE_COMPATIBILITY = "account-type-compatibility"
SIGN_CONVENTION = "sign-convention"
CONTRA_ACCOUNT = "contra-account"


# =============================================================================
# REFERENCE TABLES
# =============================================================================

_BOTH = frozenset({EntrySide.DEBIT, EntrySide.CREDIT})

# (source type, target type) -> operations allowed on the source account
COMPATIBILITY_TABLE: dict[tuple[AccountType, AccountType], frozenset[EntrySide]] = {
    (AccountType.ASSET, AccountType.ASSET): _BOTH,
    (AccountType.ASSET, AccountType.LIABILITY): _BOTH,
    (AccountType.ASSET, AccountType.EQUITY): _BOTH,
    (AccountType.ASSET, AccountType.REVENUE): _BOTH,
    (AccountType.EXPENSE, AccountType.ASSET): _BOTH,
    (AccountType.EXPENSE, AccountType.LIABILITY): frozenset({EntrySide.DEBIT}),
    (AccountType.LIABILITY, AccountType.LIABILITY): _BOTH,
    (AccountType.LIABILITY, AccountType.EQUITY): frozenset({EntrySide.DEBIT}),
    (AccountType.REVENUE, AccountType.LIABILITY): frozenset({EntrySide.CREDIT}),
    (AccountType.REVENUE, AccountType.EQUITY): frozenset({EntrySide.DEBIT}),
    (AccountType.EXPENSE, AccountType.EQUITY): frozenset({EntrySide.CREDIT}),
    (AccountType.EQUITY, AccountType.EQUITY): _BOTH,
    (AccountType.REVENUE, AccountType.REVENUE): _BOTH,
    (AccountType.EXPENSE, AccountType.EXPENSE): _BOTH,
}

NORMAL_BALANCE: dict[AccountType, EntrySide] = {
    AccountType.ASSET: EntrySide.DEBIT,
    AccountType.EXPENSE: EntrySide.DEBIT,
    AccountType.LIABILITY: EntrySide.CREDIT,
    AccountType.EQUITY: EntrySide.CREDIT,
    AccountType.REVENUE: EntrySide.CREDIT,
}

# Parent type -> subtypes a contra account of that type may have
CONTRA_SUBTYPES: dict[AccountType, frozenset[AccountSubtype]] = {
    AccountType.ASSET: frozenset({
        AccountSubtype.ALLOWANCE_DOUBTFUL_ACCOUNTS,
        AccountSubtype.ACCUMULATED_DEPRECIATION,
    }),
    AccountType.LIABILITY: frozenset({
        AccountSubtype.DISCOUNT_BONDS_PAYABLE,
    }),
    AccountType.REVENUE: frozenset({
        AccountSubtype.SALES_RETURNS,
        AccountSubtype.SALES_DISCOUNTS,
    }),
    AccountType.EXPENSE: frozenset({
        AccountSubtype.PURCHASE_RETURNS,
        AccountSubtype.PURCHASE_DISCOUNTS,
    }),
}


def compatibility_error(debit_type: AccountType, credit_type: AccountType) -> Optional[str]:
    """
    Error code for a (debit type, credit type) pair, or None when allowed.

    A direct table entry must allow "debit" on the debit account. A
    reverse entry (credit type as source) must allow "credit" on the
    credit account.
    """
    direct = COMPATIBILITY_TABLE.get((debit_type, credit_type))
    if direct is not None:
        return None if EntrySide.DEBIT in direct else "INVALID_DEBIT_OPERATION"

    reverse = COMPATIBILITY_TABLE.get((credit_type, debit_type))
    if reverse is not None:
        return None if EntrySide.CREDIT in reverse else "INVALID_CREDIT_OPERATION"

    return "INVALID_ACCOUNT_COMBINATION"


def normal_balance(account_type: AccountType) -> EntrySide:
    """
    Side on which the account type increases.

    Raises:
        ValueError: For non-posting types
    """
    side = NORMAL_BALANCE.get(account_type)
    if side is None:
        raise ValueError(f"No sign convention found for account type: {account_type.value}")
    return side


def contra_normal_balance(parent_type: AccountType) -> EntrySide:
    """A contra account increases on the side opposite its parent type."""
    return normal_balance(parent_type).opposite


def decimal_places(amount: Decimal) -> int:
    exponent = amount.normalize().as_tuple().exponent
    return max(0, -exponent)


# =============================================================================
# RULES
# =============================================================================

class DebitCreditEqualityRule(ValidationRule):
    """
    Single-amount form of the debit = credit check.

    A posting carries one amount on both sides, so equality holds by
    construction; what remains is that the amount is positive and not
    more precise than the ledger can store.
    """

    id = DEBIT_CREDIT_EQUALITY
    name = "Debit/Credit Equality"
    description = "Posting amount must be positive with ledger precision"
    level = ValidationLevel.ACCOUNTING
    priority = 100
    dependencies = (TRANSACTION_STRUCTURE,)

    def __init__(self, decimal_places: int = 2):
        self.decimal_places = decimal_places

    def validate(self, context: ValidationContext) -> ValidationResult:
        amount = context.transaction.amount if context.transaction else None
        if amount is None or not is_valid_amount(amount):
            return self.result([self.error(
                "INVALID_TRANSACTION_AMOUNT",
                "Transaction amount is not a valid number",
                ["transaction.amount"],
            )])
        if amount <= 0:
            return self.result([self.error(
                "NEGATIVE_OR_ZERO_AMOUNT",
                "Transaction amount must be greater than zero",
                ["transaction.amount"],
            )])

        warnings = []
        if decimal_places(Decimal(str(amount))) > self.decimal_places:
            warnings.append(self.warning(
                "AMOUNT_PRECISION_WARNING",
                f"Amount has more than {self.decimal_places} decimal places",
                ["transaction.amount"],
                suggested_fix=f"Round the amount to {self.decimal_places} decimal places",
            ))
        return self.result(warnings=warnings)


class DistinctAccountsRule(ValidationRule):
    id = DISTINCT_ACCOUNTS
    name = "Distinct Accounts"
    description = "Debit and credit must be different accounts"
    level = ValidationLevel.ACCOUNTING
    priority = 95
    dependencies = (ACCOUNT_EXISTENCE,)

    def validate(self, context: ValidationContext) -> ValidationResult:
        if context.debit_account.id == context.credit_account.id:
            return self.result([self.error(
                "SAME_ACCOUNT",
                "Debit and credit accounts cannot be the same",
                ["debitAccount", "creditAccount"],
                suggested_fix="Choose a different account for one side",
            )])
        return self.result()


class AccountTypeCompatibilityRule(ValidationRule):
    id = ACCOUNT_TYPE_COMPATIBILITY
    name = "Account Type Compatibility"
    description = "The debit/credit account type pair must be an allowed combination"
    level = ValidationLevel.ACCOUNTING
    priority = 90
    dependencies = (ACCOUNT_TYPE, DEBIT_CREDIT_EQUALITY)
    can_override = True

    _MESSAGES = {
        "INVALID_ACCOUNT_COMBINATION": "Invalid account type combination: {debit} and {credit}",
        "INVALID_DEBIT_OPERATION": "Cannot debit a {debit} account against a {credit} account",
        "INVALID_CREDIT_OPERATION": "Cannot credit a {credit} account against a {debit} account",
    }

    def validate(self, context: ValidationContext) -> ValidationResult:
        debit_type = context.debit_account.type
        credit_type = context.credit_account.type
        code = compatibility_error(debit_type, credit_type)
        if code is None:
            return self.result()
        message = self._MESSAGES[code].format(debit=debit_type.value, credit=credit_type.value)
        return self.result([self.error(
            code,
            message,
            ["debitAccount.type", "creditAccount.type"],
        )])


class SignConventionRule(ValidationRule):
    """
    Warns when an account is touched on its non-normal side.

    Contra accounts are left to the contra account rule.
    """

    id = SIGN_CONVENTION
    name = "Sign Convention"
    description = "Accounts should be touched on their normal balance side"
    level = ValidationLevel.ACCOUNTING
    priority = 85
    dependencies = (ACCOUNT_TYPE_COMPATIBILITY,)
    can_override = True

    def validate(self, context: ValidationContext) -> ValidationResult:
        debit = context.debit_account
        credit = context.credit_account
        warnings = []

        debit_normal = normal_balance(debit.type)
        credit_normal = normal_balance(credit.type)

        if not debit.is_contra and debit_normal != EntrySide.DEBIT:
            warnings.append(self.warning(
                "ABNORMAL_DEBIT",
                f"Debiting a {debit.type.value} account decreases its balance",
                ["debitAccount"],
            ))
        if not credit.is_contra and credit_normal != EntrySide.CREDIT:
            warnings.append(self.warning(
                "ABNORMAL_CREDIT",
                f"Crediting a {credit.type.value} account decreases its balance",
                ["creditAccount"],
            ))
        if debit.type == credit.type:
            warnings.append(self.warning(
                "SAME_TYPE_TRANSACTION",
                f"Both accounts are of type {debit.type.value}",
                ["debitAccount.type", "creditAccount.type"],
            ))

        return self.result(warnings=warnings)


class ContraAccountRule(ValidationRule):
    id = CONTRA_ACCOUNT
    name = "Contra Account"
    description = "Contra accounts must have a contra subtype and be used in their own direction"
    level = ValidationLevel.ACCOUNTING
    priority = 80
    dependencies = (SIGN_CONVENTION,)
    can_override = True

    def validate(self, context: ValidationContext) -> ValidationResult:
        errors = []
        warnings = []

        for account, side, field in (
            (context.debit_account, EntrySide.DEBIT, "debitAccount"),
            (context.credit_account, EntrySide.CREDIT, "creditAccount"),
        ):
            if not account.is_contra:
                continue
            errors_for, warnings_for = self._check(account, side, field)
            errors.extend(errors_for)
            warnings.extend(warnings_for)

        if context.debit_account.is_contra and context.credit_account.is_contra:
            warnings.append(self.warning(
                "CONTRA_ACCOUNT_INTERACTION",
                "Both sides of the posting are contra accounts",
                ["debitAccount", "creditAccount"],
            ))

        return self.result(errors, warnings)

    def _check(self, account: Account, side: EntrySide, field: str):
        allowed = CONTRA_SUBTYPES.get(account.type)
        if allowed is None:
            return [self.error(
                "INVALID_CONTRA_ACCOUNT_TYPE",
                f"Account type {account.type.value} cannot have contra accounts",
                [f"{field}.type"],
            )], []
        if account.subtype not in allowed:
            return [self.error(
                "INVALID_CONTRA_ACCOUNT_SUBTYPE",
                f"Subtype {account.subtype.value} is not a contra subtype of {account.type.value}",
                [f"{field}.subtype"],
            )], []

        if side != contra_normal_balance(account.type):
            return [], [self.warning(
                "CONTRA_ACCOUNT_UNUSUAL_DIRECTION",
                f"Contra account {account.code} is {side.value}ed against its normal balance",
                [field],
            )]
        return [], []
