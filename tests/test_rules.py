"""
Tests for the built-in validation rules, each called directly.
"""

from decimal import Decimal

import pytest

from ledger_guard.models.account import Account, AccountSubtype, AccountType, EntrySide
from ledger_guard.models.validation import ValidationContext
from ledger_guard.validation.rules.accounting import (
    AccountTypeCompatibilityRule,
    ContraAccountRule,
    DebitCreditEqualityRule,
    DistinctAccountsRule,
    SignConventionRule,
    compatibility_error,
    contra_normal_balance,
    decimal_places,
    normal_balance,
)
from ledger_guard.validation.rules.structural import (
    AccountExistenceRule,
    AccountTypeRule,
    TransactionStructureRule,
    is_valid_amount,
)


def context(transaction=None, debit=None, credit=None) -> ValidationContext:
    return ValidationContext(transaction=transaction, debit_account=debit, credit_account=credit)


class TestAccountExistenceRule:
    """Tests for AccountExistenceRule."""

    def test_both_accounts_present(self, accounts, transaction):
        """Test that a complete pair passes."""
        result = AccountExistenceRule().validate(
            context(transaction, accounts["acc-cash"], accounts["acc-sales"])
        )
        assert result.is_valid
        assert result.rule_id == "account-existence"

    def test_missing_debit(self, accounts, transaction):
        """Test a missing debit account."""
        result = AccountExistenceRule().validate(context(transaction, None, accounts["acc-sales"]))
        assert result.error_codes == ["DEBIT_ACCOUNT_MISSING"]
        assert result.errors[0].message == "Debit account does not exist"

    def test_missing_both(self, transaction):
        """Test that both sides are reported."""
        result = AccountExistenceRule().validate(context(transaction))
        assert result.error_codes == ["DEBIT_ACCOUNT_MISSING", "CREDIT_ACCOUNT_MISSING"]

    def test_not_overridable(self):
        """Test that the rule is declared non-overridable."""
        assert AccountExistenceRule.can_override is False


class TestTransactionStructureRule:
    """Tests for TransactionStructureRule."""

    def test_complete_transaction(self, transaction):
        """Test that a complete transaction passes without warnings."""
        result = TransactionStructureRule().validate(context(transaction))
        assert result.is_valid
        assert not result.has_warnings

    def test_missing_transaction(self):
        """Test that a missing transaction is an error."""
        result = TransactionStructureRule().validate(context())
        assert result.error_codes == ["TRANSACTION_MISSING"]

    def test_missing_fields(self, make_transaction):
        """Test missing id, date and amount."""
        transaction = make_transaction(id="", date=None, amount=None)
        result = TransactionStructureRule().validate(context(transaction))
        assert set(result.error_codes) == {
            "TRANSACTION_ID_MISSING",
            "TRANSACTION_DATE_MISSING",
            "TRANSACTION_AMOUNT_MISSING",
        }

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    def test_non_positive_amount(self, make_transaction, amount):
        """Test that zero and negative amounts are rejected."""
        result = TransactionStructureRule().validate(context(make_transaction(amount=amount)))
        assert result.error_codes == ["TRANSACTION_AMOUNT_NEGATIVE"]

    def test_non_finite_amount(self, transaction):
        """Test that NaN is not a valid amount."""
        # The model rejects NaN; simulate an upstream record that bypassed it
        unchecked = transaction.model_construct(
            **{**transaction.__dict__, "amount": Decimal("NaN")}
        )
        result = TransactionStructureRule().validate(context(unchecked))
        assert result.error_codes == ["TRANSACTION_AMOUNT_INVALID"]

    def test_description_warnings(self, make_transaction):
        """Test that missing or short descriptions only warn."""
        empty = TransactionStructureRule().validate(context(make_transaction(description="")))
        short = TransactionStructureRule().validate(context(make_transaction(description="ab")))
        assert empty.is_valid and empty.warning_codes == ["TRANSACTION_DESCRIPTION_MISSING"]
        assert short.is_valid and short.warning_codes == ["TRANSACTION_DESCRIPTION_TOO_SHORT"]

    def test_configurable_description_length(self, make_transaction):
        """Test the minimum description length setting."""
        rule = TransactionStructureRule(min_description_length=10)
        result = rule.validate(context(make_transaction(description="Rent")))
        assert result.warning_codes == ["TRANSACTION_DESCRIPTION_TOO_SHORT"]

    def test_is_valid_amount(self):
        """Test the amount predicate."""
        assert is_valid_amount(Decimal("1.5"))
        assert is_valid_amount(3)
        assert not is_valid_amount(True)
        assert not is_valid_amount(float("inf"))
        assert not is_valid_amount("12")


class TestAccountTypeRule:
    """Tests for AccountTypeRule."""

    def test_valid_accounts(self, accounts):
        """Test that chart accounts pass."""
        result = AccountTypeRule().validate(context(None, accounts["acc-cash"], accounts["acc-sales"]))
        assert result.is_valid

    def test_invalid_type(self, accounts):
        """Test a type outside the vocabulary."""
        bad = Account.model_construct(
            id="bad", code="0001", name="Bad", type="cash-ish",
            subtype=AccountSubtype.CASH, is_contra=False,
        )
        result = AccountTypeRule().validate(context(None, bad, accounts["acc-sales"]))
        assert result.error_codes == ["DEBIT_INVALID_ACCOUNT_TYPE"]
        assert result.errors[0].affected_fields == ["debitAccount.type"]

    def test_invalid_subtype(self, accounts):
        """Test a subtype outside the vocabulary."""
        bad = Account.model_construct(
            id="bad", code="0001", name="Bad", type=AccountType.REVENUE,
            subtype="miscellaneous", is_contra=False,
        )
        result = AccountTypeRule().validate(context(None, accounts["acc-cash"], bad))
        assert result.error_codes == ["CREDIT_INVALID_ACCOUNT_SUBTYPE"]

    def test_invalid_combination(self, accounts):
        """Test a subtype that belongs to another type."""
        bad = Account(
            id="bad", code="0001", name="Bad",
            type=AccountType.LIABILITY, subtype=AccountSubtype.CASH,
        )
        result = AccountTypeRule().validate(context(None, bad, accounts["acc-sales"]))
        assert result.error_codes == ["DEBIT_INVALID_TYPE_SUBTYPE_COMBINATION"]


class TestDebitCreditEqualityRule:
    """Tests for DebitCreditEqualityRule."""

    def test_two_decimal_amount(self, make_transaction):
        """Test that ledger precision passes silently."""
        result = DebitCreditEqualityRule().validate(context(make_transaction(amount=Decimal("10.10"))))
        assert result.is_valid
        assert not result.has_warnings

    def test_precision_warning(self, make_transaction):
        """Test that extra decimals only warn."""
        result = DebitCreditEqualityRule().validate(context(make_transaction(amount=Decimal("10.125"))))
        assert result.is_valid
        assert result.warning_codes == ["AMOUNT_PRECISION_WARNING"]

    def test_trailing_zeros_are_not_precision(self, make_transaction):
        """Test that 10.1000 counts as one decimal place."""
        result = DebitCreditEqualityRule().validate(context(make_transaction(amount=Decimal("10.1000"))))
        assert not result.has_warnings

    def test_zero_amount(self, make_transaction):
        """Test that zero is rejected."""
        result = DebitCreditEqualityRule().validate(context(make_transaction(amount=Decimal("0"))))
        assert result.error_codes == ["NEGATIVE_OR_ZERO_AMOUNT"]

    def test_missing_amount(self, make_transaction):
        """Test that a missing amount is invalid."""
        result = DebitCreditEqualityRule().validate(context(make_transaction(amount=None)))
        assert result.error_codes == ["INVALID_TRANSACTION_AMOUNT"]

    def test_decimal_places(self):
        """Test the decimal place counter."""
        assert decimal_places(Decimal("100")) == 0
        assert decimal_places(Decimal("1E+2")) == 0
        assert decimal_places(Decimal("0.125")) == 3


class TestDistinctAccountsRule:
    """Tests for DistinctAccountsRule."""

    def test_same_account_rejected(self, accounts):
        """Test that the same account on both sides is an error."""
        cash = accounts["acc-cash"]
        result = DistinctAccountsRule().validate(context(None, cash, cash))
        assert result.error_codes == ["SAME_ACCOUNT"]
        assert result.errors[0].message == "Debit and credit accounts cannot be the same"

    def test_distinct_accounts_pass(self, accounts):
        """Test that two different accounts pass."""
        result = DistinctAccountsRule().validate(
            context(None, accounts["acc-cash"], accounts["acc-bank"])
        )
        assert result.is_valid

    def test_not_overridable(self):
        """Test that pairing errors cannot be overridden."""
        assert DistinctAccountsRule.can_override is False


class TestAccountTypeCompatibility:
    """Tests for the canonical compatibility table."""

    @pytest.mark.parametrize("debit_type,credit_type,expected", [
        (AccountType.ASSET, AccountType.REVENUE, None),
        (AccountType.REVENUE, AccountType.ASSET, None),
        (AccountType.EXPENSE, AccountType.LIABILITY, None),
        (AccountType.LIABILITY, AccountType.ASSET, None),
        (AccountType.ASSET, AccountType.EQUITY, None),
        (AccountType.LIABILITY, AccountType.EQUITY, None),
        (AccountType.REVENUE, AccountType.LIABILITY, "INVALID_DEBIT_OPERATION"),
        (AccountType.EXPENSE, AccountType.EQUITY, "INVALID_DEBIT_OPERATION"),
        (AccountType.EQUITY, AccountType.LIABILITY, "INVALID_CREDIT_OPERATION"),
        (AccountType.REVENUE, AccountType.EQUITY, None),
        (AccountType.EQUITY, AccountType.REVENUE, "INVALID_CREDIT_OPERATION"),
        (AccountType.LIABILITY, AccountType.EXPENSE, "INVALID_CREDIT_OPERATION"),
        (AccountType.REVENUE, AccountType.EXPENSE, "INVALID_ACCOUNT_COMBINATION"),
        (AccountType.MEMO, AccountType.ASSET, "INVALID_ACCOUNT_COMBINATION"),
    ])
    def test_compatibility_error(self, debit_type, credit_type, expected):
        """Test direct, reverse and missing table entries."""
        assert compatibility_error(debit_type, credit_type) == expected

    def test_rule_reports_combination(self, accounts):
        """Test the rule's error and affected fields."""
        result = AccountTypeCompatibilityRule().validate(
            context(None, accounts["acc-sales"], accounts["acc-rent"])
        )
        assert result.error_codes == ["INVALID_ACCOUNT_COMBINATION"]
        assert "revenue" in result.errors[0].message
        assert result.errors[0].affected_fields == ["debitAccount.type", "creditAccount.type"]

    def test_rule_is_overridable(self):
        """Test that compatibility is overridable."""
        assert AccountTypeCompatibilityRule.can_override is True


class TestSignConventionRule:
    """Tests for SignConventionRule."""

    def test_normal_sides(self, accounts):
        """Test debit asset / credit revenue."""
        result = SignConventionRule().validate(context(None, accounts["acc-cash"], accounts["acc-sales"]))
        assert result.is_valid
        assert not result.has_warnings

    def test_abnormal_sides(self, accounts):
        """Test debit liability / credit asset."""
        result = SignConventionRule().validate(context(None, accounts["acc-accrued"], accounts["acc-cash"]))
        assert result.is_valid
        assert result.warning_codes == ["ABNORMAL_DEBIT", "ABNORMAL_CREDIT"]

    def test_same_type(self, accounts):
        """Test a transfer between two asset accounts."""
        result = SignConventionRule().validate(context(None, accounts["acc-bank"], accounts["acc-cash"]))
        assert "SAME_TYPE_TRANSACTION" in result.warning_codes
        assert "ABNORMAL_CREDIT" in result.warning_codes

    def test_contra_accounts_skipped(self, accounts):
        """Test that contra accounts are not judged by their parent's side."""
        result = SignConventionRule().validate(
            context(None, accounts["acc-rent"], accounts["acc-depreciation"])
        )
        assert "ABNORMAL_CREDIT" not in result.warning_codes

    def test_non_posting_type_raises(self, accounts):
        """Test that memo accounts have no sign convention."""
        with pytest.raises(ValueError, match="No sign convention found for account type: memo"):
            SignConventionRule().validate(context(None, accounts["acc-memo"], accounts["acc-cash"]))

    def test_normal_balances(self):
        """Test the normal balance table."""
        assert normal_balance(AccountType.ASSET) == EntrySide.DEBIT
        assert normal_balance(AccountType.REVENUE) == EntrySide.CREDIT
        assert contra_normal_balance(AccountType.ASSET) == EntrySide.CREDIT


class TestContraAccountRule:
    """Tests for ContraAccountRule."""

    def test_contra_on_its_normal_side(self, accounts):
        """Test accumulated depreciation being credited."""
        result = ContraAccountRule().validate(
            context(None, accounts["acc-rent"], accounts["acc-depreciation"])
        )
        assert result.is_valid
        assert not result.has_warnings

    def test_contra_unusual_direction(self, accounts):
        """Test accumulated depreciation being debited."""
        result = ContraAccountRule().validate(
            context(None, accounts["acc-depreciation"], accounts["acc-cash"])
        )
        assert result.is_valid
        assert result.warning_codes == ["CONTRA_ACCOUNT_UNUSUAL_DIRECTION"]

    def test_revenue_contra_debited(self, accounts):
        """Test that sales returns are normally debited."""
        result = ContraAccountRule().validate(
            context(None, accounts["acc-returns"], accounts["acc-cash"])
        )
        assert not result.has_warnings

    def test_both_sides_contra(self, accounts):
        """Test the contra interaction warning."""
        result = ContraAccountRule().validate(
            context(None, accounts["acc-returns"], accounts["acc-depreciation"])
        )
        assert "CONTRA_ACCOUNT_INTERACTION" in result.warning_codes

    def test_contra_type_not_allowed(self, accounts):
        """Test that equity accounts cannot be contra accounts."""
        contra_equity = Account(
            id="x", code="3900", name="Treasury",
            type=AccountType.EQUITY, subtype=AccountSubtype.COMMON_STOCK, is_contra=True,
        )
        result = ContraAccountRule().validate(context(None, contra_equity, accounts["acc-cash"]))
        assert result.error_codes == ["INVALID_CONTRA_ACCOUNT_TYPE"]

    def test_contra_subtype_not_allowed(self, accounts):
        """Test a contra flag on a non-contra subtype."""
        contra_cash = Account(
            id="x", code="1199", name="Odd Cash",
            type=AccountType.ASSET, subtype=AccountSubtype.CASH, is_contra=True,
        )
        result = ContraAccountRule().validate(context(None, accounts["acc-rent"], contra_cash))
        assert result.error_codes == ["INVALID_CONTRA_ACCOUNT_SUBTYPE"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
