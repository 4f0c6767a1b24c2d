"""
Structural Rules

Checks that the posting is complete enough to reason about: both accounts
exist, the transaction carries an id, a date and a positive amount, and
each account's type/subtype pair is part of the closed vocabulary.

None of these rules can be overridden.
"""

import datetime as dt
import math
from decimal import Decimal
from typing import Any, Optional

from ledger_guard.models.account import VALID_SUBTYPES, Account, AccountSubtype, AccountType
from ledger_guard.models.validation import ValidationContext, ValidationLevel, ValidationResult
from ledger_guard.validation.rule import ValidationRule


ACCOUNT_EXISTENCE = "account-existence"
TRANSACTION_STRUCTURE = "transaction-structure"
ACCOUNT_TYPE = "account-type"


def coerce_account_type(value: Any) -> Optional[AccountType]:
    """The AccountType for a raw value, or None when it is not in the vocabulary."""
    if isinstance(value, AccountType):
        return value
    try:
        return AccountType(value)
    except ValueError:
        return None


def coerce_account_subtype(value: Any) -> Optional[AccountSubtype]:
    if isinstance(value, AccountSubtype):
        return value
    try:
        return AccountSubtype(value)
    except ValueError:
        return None


def is_valid_subtype(account_type: AccountType, subtype: AccountSubtype) -> bool:
    return subtype in VALID_SUBTYPES.get(account_type, frozenset())


def is_valid_amount(amount: Any) -> bool:
    """True for finite numbers. Booleans are not amounts."""
    if isinstance(amount, bool):
        return False
    if isinstance(amount, Decimal):
        return amount.is_finite()
    if isinstance(amount, (int, float)):
        return math.isfinite(amount)
    return False


class AccountExistenceRule(ValidationRule):
    id = ACCOUNT_EXISTENCE
    name = "Account Existence"
    description = "Both the debit and the credit account must be present"
    level = ValidationLevel.STRUCTURAL
    priority = 100

    def validate(self, context: ValidationContext) -> ValidationResult:
        errors = []
        if context.debit_account is None:
            errors.append(self.error(
                "DEBIT_ACCOUNT_MISSING",
                "Debit account does not exist",
                ["debitAccount"],
                suggested_fix="Select a debit account",
            ))
        if context.credit_account is None:
            errors.append(self.error(
                "CREDIT_ACCOUNT_MISSING",
                "Credit account does not exist",
                ["creditAccount"],
                suggested_fix="Select a credit account",
            ))
        return self.result(errors)


class TransactionStructureRule(ValidationRule):
    """
    Presence and type of id, date and amount.

    A missing or very short description is only a warning: it makes the
    entry harder to audit but does not make it wrong.
    """

    id = TRANSACTION_STRUCTURE
    name = "Transaction Structure"
    description = "Transaction must carry an id, a valid date and a positive amount"
    level = ValidationLevel.STRUCTURAL
    priority = 95
    dependencies = (ACCOUNT_EXISTENCE,)

    def __init__(self, min_description_length: int = 3):
        self.min_description_length = min_description_length

    def validate(self, context: ValidationContext) -> ValidationResult:
        transaction = context.transaction
        if transaction is None:
            return self.result([
                self.error("TRANSACTION_MISSING", "Transaction is required", ["transaction"])
            ])

        errors = []
        warnings = []

        if not transaction.id:
            errors.append(self.error(
                "TRANSACTION_ID_MISSING",
                "Transaction id is required",
                ["transaction.id"],
            ))

        if transaction.date is None:
            errors.append(self.error(
                "TRANSACTION_DATE_MISSING",
                "Transaction date is required",
                ["transaction.date"],
            ))
        elif not isinstance(transaction.date, dt.date):
            errors.append(self.error(
                "TRANSACTION_DATE_INVALID",
                "Transaction date is not a valid date",
                ["transaction.date"],
            ))

        amount = transaction.amount
        if amount is None:
            errors.append(self.error(
                "TRANSACTION_AMOUNT_MISSING",
                "Transaction amount is required",
                ["transaction.amount"],
            ))
        elif not is_valid_amount(amount):
            errors.append(self.error(
                "TRANSACTION_AMOUNT_INVALID",
                "Transaction amount must be a number",
                ["transaction.amount"],
            ))
        elif amount <= 0:
            errors.append(self.error(
                "TRANSACTION_AMOUNT_NEGATIVE",
                "Transaction amount must be greater than zero",
                ["transaction.amount"],
            ))

        description = (transaction.description or "").strip()
        if not description:
            warnings.append(self.warning(
                "TRANSACTION_DESCRIPTION_MISSING",
                "Transaction description is empty",
                ["transaction.description"],
                suggested_fix="Add a description for audit purposes",
            ))
        elif len(description) < self.min_description_length:
            warnings.append(self.warning(
                "TRANSACTION_DESCRIPTION_TOO_SHORT",
                f"Transaction description is shorter than {self.min_description_length} characters",
                ["transaction.description"],
            ))

        return self.result(errors, warnings)


class AccountTypeRule(ValidationRule):
    id = ACCOUNT_TYPE
    name = "Account Type"
    description = "Each account's type and subtype must belong to the chart vocabulary"
    level = ValidationLevel.STRUCTURAL
    priority = 90
    dependencies = (ACCOUNT_EXISTENCE,)

    def validate(self, context: ValidationContext) -> ValidationResult:
        errors = []
        errors.extend(self._check(context.debit_account, "DEBIT", "debitAccount"))
        errors.extend(self._check(context.credit_account, "CREDIT", "creditAccount"))
        return self.result(errors)

    def _check(self, account: Optional[Account], prefix: str, field: str) -> list:
        if account is None:
            return []

        account_type = coerce_account_type(account.type)
        if account_type is None:
            return [self.error(
                f"{prefix}_INVALID_ACCOUNT_TYPE",
                f"{prefix.title()} account has an invalid type: {account.type}",
                [f"{field}.type"],
            )]

        subtype = coerce_account_subtype(account.subtype)
        if subtype is None:
            return [self.error(
                f"{prefix}_INVALID_ACCOUNT_SUBTYPE",
                f"{prefix.title()} account has an invalid subtype: {account.subtype}",
                [f"{field}.subtype"],
            )]

        if not is_valid_subtype(account_type, subtype):
            return [self.error(
                f"{prefix}_INVALID_TYPE_SUBTYPE_COMBINATION",
                f"Subtype {subtype.value} is not valid for account type {account_type.value}",
                [f"{field}.type", f"{field}.subtype"],
            )]

        return []
