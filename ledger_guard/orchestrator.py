"""
Main Orchestrator for Ledger Guard

This module ties together all the components and defines the
end-to-end posting flow:
suggest -> assign -> validate -> approve -> learn

DESIGN DECISION: The orchestrator enforces the approval boundaries:
- No approval while any error is uncovered by an active override
- No approval of a posting with warnings without a human authorization
- An approved posting is locked; re-opening it needs an authorization
- Only approved postings feed the usage history

The engine reports errors and warnings; this workflow is what turns
them into "may this be posted?".
"""

from typing import Iterable, NamedTuple, Optional

import structlog

from ledger_guard.accounts.index import AccountIndex
from ledger_guard.agents.oracle import (
    AssistedMapper,
    GeminiSuggestionOracle,
    OracleUnavailableError,
    SuggestionOracle,
)
from ledger_guard.audit.logger import EventLog, configure_logging
from ledger_guard.audit.sinks import DiagnosticsSink
from ledger_guard.config.settings import Settings, get_settings
from ledger_guard.mapping.engine import AccountMappingEngine
from ledger_guard.models.account import Account, Transaction, TransactionStatus
from ledger_guard.models.audit import DiagnosticEntryBuilder
from ledger_guard.models.mapping import TransactionMapping
from ledger_guard.models.validation import OverrideAuthorization, ValidationResult
from ledger_guard.validation.overrides import OverrideStore
from ledger_guard.validation.registry import RuleRegistry
from ledger_guard.validation.rules import build_default_registry
from ledger_guard.validation.service import ValidationService


logger = structlog.get_logger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class WorkflowError(Exception):
    """Base exception for approval workflow errors."""

    def __init__(self, message: str, result: Optional[ValidationResult] = None):
        self.result = result
        super().__init__(message)


class ApprovalBlockedError(WorkflowError):
    """Raised when errors without an active override remain."""
    pass


class OverrideRequiredError(WorkflowError):
    """Raised when warnings are outstanding and no authorization was given."""
    pass


class TransactionLockedError(WorkflowError):
    """Raised when an approved transaction is changed without authorization."""
    pass


class TransactionNotValidatedError(WorkflowError):
    """Raised when approval is requested before any validation ran."""
    pass


# =============================================================================
# WORKFLOW
# =============================================================================

def uncovered_error_rules(result: ValidationResult) -> set[str]:
    """
    Rules with errors that no active override covers, checked now.

    An override that was active at validation time but has expired
    since then no longer covers anything.
    """
    covered = {o.rule_id for o in result.overrides if o.is_active()}
    return {e.rule_id or e.code for e in result.errors} - covered


class PostingWorkflow:
    """
    Orchestrates the posting flow for one chart of accounts.

    Flow:
    1. Suggest -> heuristic (or oracle) mapping, validated like an assignment
    2. Assign  -> chosen accounts are validated, status "mapped" or "error"
    3. Approve -> gated on the validation result for the current pair
    4. Learn   -> the approved pair is recorded in the usage history

    Human authorization (step 3, when warnings exist) is MANDATORY.
    """

    def __init__(
        self,
        engine: AccountMappingEngine,
        validation: ValidationService,
        event_log: Optional[EventLog] = None,
        mapper: Optional[AssistedMapper] = None,
    ):
        self._engine = engine
        self._validation = validation
        self._event_log = event_log if event_log is not None else EventLog()
        self._mapper = mapper

    async def suggest(self, transaction: Transaction) -> TransactionMapping:
        """
        Suggest and pre-assign accounts for a transaction.

        Raises:
            TransactionLockedError: If the transaction is already approved
        """
        if transaction.status == TransactionStatus.APPROVED:
            raise TransactionLockedError(f"Transaction {transaction.id} is approved")

        if self._mapper is not None:
            mapping = await self._mapper.suggest(transaction)
        else:
            mapping = self._engine.map_transaction(transaction)

        transaction.debit_account_id = mapping.debit_account.id
        transaction.credit_account_id = mapping.credit_account.id
        self._validate_assignment(transaction)
        return mapping

    def assign(
        self,
        transaction: Transaction,
        debit_account_id: Optional[str],
        credit_account_id: Optional[str],
        authorization: Optional[OverrideAuthorization] = None,
    ) -> ValidationResult:
        """
        Assign accounts and validate the resulting posting.

        Args:
            transaction: The transaction to post
            debit_account_id: Chosen debit account id
            credit_account_id: Chosen credit account id
            authorization: Required only to re-open an approved transaction

        Raises:
            TransactionLockedError: If the transaction is approved and no
                active authorization was given
        """
        if transaction.status == TransactionStatus.APPROVED:
            if authorization is None or not authorization.is_active():
                raise TransactionLockedError(f"Transaction {transaction.id} is approved")
            self._event_log.record(DiagnosticEntryBuilder.transaction_reopened(
                transaction.id or None,
                authorization.approved_by,
                authorization.reason,
            ))

        transaction.debit_account_id = debit_account_id
        transaction.credit_account_id = credit_account_id
        return self._validate_assignment(transaction)

    def approve(
        self,
        transaction: Transaction,
        authorization: Optional[OverrideAuthorization] = None,
    ) -> ValidationResult:
        """
        Approve a validated posting.

        Raises:
            TransactionLockedError: If the transaction is already approved
            TransactionNotValidatedError: If no validation result is cached
            ApprovalBlockedError: If uncovered errors remain
            OverrideRequiredError: If warnings remain and no active
                authorization was given
        """
        if transaction.status == TransactionStatus.APPROVED:
            raise TransactionLockedError(f"Transaction {transaction.id} is already approved")

        result = self._validation.cached_result(transaction.id) if transaction.id else None
        if result is None:
            raise TransactionNotValidatedError(
                f"Transaction {transaction.id or '<no id>'} has not been validated"
            )

        if not result.covers_pair(transaction.debit_account_id, transaction.credit_account_id):
            # Accounts changed since the cached run
            result = self._validate_assignment(transaction)

        if not result.is_valid or uncovered_error_rules(result):
            self._event_log.record(DiagnosticEntryBuilder.approval_blocked(
                transaction.id, "unresolved errors", result.error_codes,
            ))
            raise ApprovalBlockedError(
                "Approval blocked by validation errors: " + ", ".join(result.error_codes),
                result,
            )

        if result.has_warnings and (authorization is None or not authorization.is_active()):
            self._event_log.record(DiagnosticEntryBuilder.approval_blocked(
                transaction.id, "override required for warnings", result.warning_codes,
            ))
            raise OverrideRequiredError(
                "Warnings require an override: " + ", ".join(result.warning_codes),
                result,
            )

        transaction.status = TransactionStatus.APPROVED

        debit = self._engine.index.get(transaction.debit_account_id)
        credit = self._engine.index.get(transaction.credit_account_id)
        if debit is not None and credit is not None:
            self._engine.record_mapping(transaction, debit, credit)

        self._event_log.record(DiagnosticEntryBuilder.approval_granted(
            transaction.id,
            authorization.approved_by if authorization else None,
            result.warning_codes,
        ))
        return result

    def _validate_assignment(self, transaction: Transaction) -> ValidationResult:
        """Validate the transaction's current pair and set its status from the result."""
        index = self._engine.index
        result = self._validation.validate(
            transaction,
            index.get(transaction.debit_account_id),
            index.get(transaction.credit_account_id),
        )
        transaction.status = (
            TransactionStatus.MAPPED if result.is_valid else TransactionStatus.ERROR
        )
        return result


# =============================================================================
# FACTORY
# =============================================================================

class EngineComponents(NamedTuple):
    registry: RuleRegistry
    overrides: OverrideStore
    validation: ValidationService
    engine: AccountMappingEngine
    event_log: EventLog
    mapper: AssistedMapper
    workflow: PostingWorkflow

    @property
    def index(self) -> AccountIndex:
        return self.engine.index


def create_engine_components(
    accounts: Iterable[Account],
    sink: Optional[DiagnosticsSink] = None,
    settings: Optional[Settings] = None,
    oracle: Optional[SuggestionOracle] = None,
) -> EngineComponents:
    """
    Factory function to create all engine components.

    Args:
        accounts: Chart of accounts snapshot
        sink: Diagnostics sink. None keeps entries in memory.
        settings: Settings to use instead of get_settings()
        oracle: Suggestion oracle. None builds the Gemini oracle when
                GEMINI_ENABLED is set, otherwise maps heuristically.

    Raises:
        NoAccountsProvidedError: If the chart is empty
        RuleRegistryError: If the rule set is inconsistent
    """
    settings = settings if settings is not None else get_settings()
    engine_settings = settings.engine
    oracle_settings = settings.oracle

    configure_logging(engine_settings.debug_mode, engine_settings.log_json)

    event_log = EventLog(sink)
    registry = build_default_registry(engine_settings)
    overrides = OverrideStore(registry, event_log)
    validation = ValidationService(registry, overrides, event_log)

    engine = AccountMappingEngine(event_log=event_log, settings=engine_settings)
    engine.initialize(accounts)

    if oracle is None and oracle_settings.enabled:
        try:
            oracle = GeminiSuggestionOracle(oracle_settings)
        except OracleUnavailableError as e:
            # Oracle not configured - continue with heuristics only
            logger.warning("oracle_not_configured", error=str(e))

    mapper = AssistedMapper(engine, oracle, oracle_settings, event_log)
    workflow = PostingWorkflow(engine, validation, event_log, mapper)

    return EngineComponents(
        registry=registry,
        overrides=overrides,
        validation=validation,
        engine=engine,
        event_log=event_log,
        mapper=mapper,
        workflow=workflow,
    )
