"""
Shared fixtures for the Ledger Guard tests.

No network, no files unless a test asks for tmp_path: the oracle is a
scripted fake and diagnostics go to an in-memory sink.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from ledger_guard.agents.oracle import SuggestionOracle
from ledger_guard.audit.logger import EventLog
from ledger_guard.audit.sinks import InMemoryDiagnosticsSink
from ledger_guard.mapping.engine import AccountMappingEngine
from ledger_guard.models.account import Account, AccountSubtype, AccountType, Transaction
from ledger_guard.models.validation import ValidationContext, ValidationLevel, ValidationResult
from ledger_guard.validation.rule import ValidationRule
from ledger_guard.validation.rules import build_default_registry
from ledger_guard.validation.service import ValidationService


# =============================================================================
# CHART OF ACCOUNTS
# =============================================================================

def make_account(
    account_id: str,
    code: str,
    name: str,
    account_type: AccountType,
    subtype: AccountSubtype,
    **extra,
) -> Account:
    return Account(
        id=account_id,
        code=code,
        name=name,
        type=account_type,
        subtype=subtype,
        **extra,
    )


@pytest.fixture
def chart() -> list[Account]:
    """A small but complete chart of accounts."""
    return [
        make_account("acc-cash", "1100", "Cash", AccountType.ASSET, AccountSubtype.CASH, is_default=True),
        make_account("acc-petty", "1150", "Petty Cash", AccountType.ASSET, AccountSubtype.CASH, is_active=False),
        make_account("acc-bank", "1200", "Bank", AccountType.ASSET, AccountSubtype.BANK_ACCOUNT),
        make_account("acc-ar", "1300", "Accounts Receivable", AccountType.ASSET, AccountSubtype.ACCOUNTS_RECEIVABLE),
        make_account("acc-equipment", "1500", "Equipment", AccountType.ASSET, AccountSubtype.NON_CURRENT_ASSET),
        make_account(
            "acc-depreciation", "1590", "Accumulated Depreciation",
            AccountType.ASSET, AccountSubtype.ACCUMULATED_DEPRECIATION, is_contra=True,
        ),
        make_account("acc-ap", "2100", "Accounts Payable", AccountType.LIABILITY, AccountSubtype.ACCOUNTS_PAYABLE),
        make_account("acc-accrued", "2200", "Accrued Liabilities", AccountType.LIABILITY, AccountSubtype.CURRENT_LIABILITY),
        make_account("acc-capital", "3100", "Owner Capital", AccountType.EQUITY, AccountSubtype.CONTRIBUTED_CAPITAL),
        make_account("acc-sales", "4100", "Sales Revenue", AccountType.REVENUE, AccountSubtype.SALES_REVENUE),
        make_account(
            "acc-returns", "4190", "Sales Returns",
            AccountType.REVENUE, AccountSubtype.SALES_RETURNS, is_contra=True,
        ),
        make_account("acc-salaries", "5100", "Salaries Expense", AccountType.EXPENSE, AccountSubtype.OPERATING_EXPENSE),
        make_account("acc-rent", "5200", "Rent Expense", AccountType.EXPENSE, AccountSubtype.OPERATING_EXPENSE),
        make_account("acc-memo", "9000", "Memo Header", AccountType.MEMO, AccountSubtype.HEADER),
    ]


@pytest.fixture
def accounts(chart) -> dict[str, Account]:
    """The sample chart keyed by account id."""
    return {account.id: account for account in chart}


# =============================================================================
# TRANSACTIONS
# =============================================================================

@pytest.fixture
def make_transaction():
    """Factory for complete transactions; keyword arguments override fields."""

    def factory(**overrides) -> Transaction:
        fields = {
            "id": "txn-001",
            "description": "Cash receipt from customer",
            "amount": Decimal("100.00"),
            "date": date(2024, 3, 15),
        }
        fields.update(overrides)
        return Transaction(**fields)

    return factory


@pytest.fixture
def transaction(make_transaction) -> Transaction:
    return make_transaction()


# =============================================================================
# ENGINE COMPONENTS
# =============================================================================

@pytest.fixture
def sink() -> InMemoryDiagnosticsSink:
    return InMemoryDiagnosticsSink()


@pytest.fixture
def event_log(sink) -> EventLog:
    return EventLog(sink)


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def validation_service(registry, event_log) -> ValidationService:
    return ValidationService(registry, event_log=event_log)


@pytest.fixture
def engine(chart, event_log) -> AccountMappingEngine:
    engine = AccountMappingEngine(event_log=event_log)
    engine.initialize(chart)
    return engine


# =============================================================================
# TEST DOUBLES
# =============================================================================

class StubRule(ValidationRule):
    """Configurable rule for registry and service tests."""

    def __init__(
        self,
        rule_id: str,
        level: ValidationLevel = ValidationLevel.BUSINESS,
        priority: int = 0,
        dependencies: tuple[str, ...] = (),
        can_override: bool = False,
        error_codes: tuple[str, ...] = (),
        warning_codes: tuple[str, ...] = (),
        raises: Optional[Exception] = None,
    ):
        self.id = rule_id
        self.name = rule_id.replace("-", " ").title()
        self.level = level
        self.priority = priority
        self.dependencies = dependencies
        self.can_override = can_override
        self.error_codes = error_codes
        self.warning_codes = warning_codes
        self.raises = raises
        self.calls = 0

    def validate(self, context: ValidationContext) -> ValidationResult:
        self.calls += 1
        if self.raises is not None:
            raise self.raises
        return self.result(
            [self.error(code, f"{code} raised by {self.id}") for code in self.error_codes],
            [self.warning(code, f"{code} raised by {self.id}") for code in self.warning_codes],
        )


@pytest.fixture
def make_rule():
    """Factory for StubRule instances."""
    return StubRule


class ScriptedOracle(SuggestionOracle):
    """
    Fake oracle answering from a script.

    Each entry is either a string (returned), an exception (raised) or a
    callable taking the prompt. The last entry repeats once the script is
    exhausted.
    """

    def __init__(self, *script, delay: float = 0.0):
        self.script = list(script)
        self.delay = delay
        self.prompts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        step = self.script[min(len(self.prompts), len(self.script)) - 1]
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if isinstance(step, Exception):
                raise step
            if callable(step):
                return step(prompt)
            return step
        finally:
            self.in_flight -= 1


@pytest.fixture
def scripted_oracle():
    """Factory for ScriptedOracle instances."""
    return ScriptedOracle
