"""
Suggestion Oracle

An optional LLM that proposes a debit/credit pair for a transaction.

CRITICAL BOUNDARIES:
- The oracle only PROPOSES. Its answer is parsed strictly, resolved
  against the current account index and still goes through validation.
- The oracle is unreliable and rate-limited. Every call carries a
  timeout, and any failure falls back to the heuristic ranking.
- A malformed or unresolvable answer is rejected, never repaired.

The LLM is a SUGGESTER, not an AUTHORITY.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

import google.generativeai as genai
import structlog
from pydantic import BaseModel, ConfigDict, Field
from tenacity import retry, stop_after_attempt, wait_exponential

from ledger_guard.accounts.index import AccountIndex
from ledger_guard.audit.logger import EventLog
from ledger_guard.config.settings import OracleSettings
from ledger_guard.mapping.engine import AccountMappingEngine
from ledger_guard.models.account import Account, Transaction
from ledger_guard.models.audit import DiagnosticEntryBuilder
from ledger_guard.models.mapping import (
    CONFIDENCE_CEILING,
    AccountMatchResult,
    BatchItemResult,
    MappingSource,
    TransactionMapping,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class OracleError(Exception):
    """Base exception for suggestion oracle errors."""
    pass


class OracleUnavailableError(OracleError):
    """Raised when the oracle cannot be reached or does not answer in time."""
    pass


class InvalidOracleResponseError(OracleError):
    """Raised when the oracle's answer fails strict validation."""

    def __init__(self, message: str, raw_response: Optional[str] = None):
        self.raw_response = raw_response
        super().__init__(message)


# =============================================================================
# MODELS
# =============================================================================

class OracleSuggestion(BaseModel):
    """A validated oracle answer. Wire keys are camelCase."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    debit_account_code: str = Field(..., alias="debitAccountCode", min_length=1)
    credit_account_code: str = Field(..., alias="creditAccountCode", min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str


# =============================================================================
# ORACLE INTERFACE
# =============================================================================

class SuggestionOracle(ABC):
    """Anything that turns a prompt into a text completion."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """
        Return the raw completion text.

        Raises:
            OracleUnavailableError: If no completion could be obtained
        """
        pass


class GeminiSuggestionOracle(SuggestionOracle):
    """Google Gemini backed oracle."""

    def __init__(self, settings: OracleSettings):
        if not settings.api_key:
            raise OracleUnavailableError("GEMINI_API_KEY is not configured")
        self._settings = settings
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        response = await self._model.generate_content_async(prompt)
        return response.text

    async def complete(self, prompt: str) -> str:
        try:
            text = await self._generate(prompt)
        except Exception as e:
            raise OracleUnavailableError(f"Gemini request failed: {e}") from e
        if not text or not text.strip():
            raise OracleUnavailableError("Gemini returned an empty response")
        return text


# =============================================================================
# PROMPT AND PARSING
# =============================================================================

def build_mapping_prompt(transaction: Transaction, accounts: Iterable[Account]) -> str:
    """Prompt listing the transaction and every active account."""
    account_lines = "\n".join(
        f"- {a.code}: {a.name} ({a.type.value}/{a.subtype.value})"
        for a in accounts
        if a.is_active
    )
    amount = f"{transaction.amount}" if transaction.amount is not None else "unknown"
    date = transaction.date.isoformat() if transaction.date else "unknown"

    return f"""You are helping an accountant post a transaction in double-entry bookkeeping.

Transaction:
- Description: {transaction.description or "(none)"}
- Amount: {amount}
- Date: {date}
- Customer: {transaction.customer_name or "(none)"}

Chart of accounts:
{account_lines}

Pick exactly one debit account and one different credit account from the list above.

Respond with ONLY a JSON object in this exact format:
{{"debitAccountCode": "1000", "creditAccountCode": "4000", "confidence": 0.8, "reasoning": "brief explanation"}}

Use only codes from the list. Be conservative with confidence."""


def parse_oracle_response(text: str, index: AccountIndex) -> OracleSuggestion:
    """
    Strictly validate an oracle answer.

    Raises:
        InvalidOracleResponseError: On malformed JSON, missing or mistyped
            fields, unknown codes, or identical debit and credit codes
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise InvalidOracleResponseError("No JSON object in oracle response", text)

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise InvalidOracleResponseError(f"Malformed JSON: {e}", text) from e
    if not isinstance(data, dict):
        raise InvalidOracleResponseError("Oracle response is not a JSON object", text)

    for key in ("debitAccountCode", "creditAccountCode", "reasoning"):
        if not isinstance(data.get(key), str):
            raise InvalidOracleResponseError(f"Field {key} must be a string", text)
    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise InvalidOracleResponseError("Field confidence must be a number", text)

    debit_code = data["debitAccountCode"].strip()
    credit_code = data["creditAccountCode"].strip()
    if not debit_code or not credit_code:
        raise InvalidOracleResponseError("Account codes must not be empty", text)
    if not 0.0 <= confidence <= 1.0:
        raise InvalidOracleResponseError("Field confidence must be between 0 and 1", text)
    for code in (debit_code, credit_code):
        account = index.by_code(code)
        if account is None:
            raise InvalidOracleResponseError(f"Unknown account code: {code}", text)
        if not account.is_active:
            raise InvalidOracleResponseError(f"Inactive account code: {code}", text)
    if debit_code == credit_code:
        raise InvalidOracleResponseError("Debit and credit codes must differ", text)

    return OracleSuggestion(
        debit_account_code=debit_code,
        credit_account_code=credit_code,
        confidence=float(confidence),
        reasoning=data["reasoning"],
    )


# =============================================================================
# ASSISTED MAPPER
# =============================================================================

class AssistedMapper:
    """
    Oracle first, heuristics as the safety net.

    Batch mapping bounds the number of in-flight oracle calls, submits
    fixed-size batches separated by a fixed delay, and isolates each
    item's failure from the rest of the batch.
    """

    def __init__(
        self,
        engine: AccountMappingEngine,
        oracle: Optional[SuggestionOracle] = None,
        settings: Optional[OracleSettings] = None,
        event_log: Optional[EventLog] = None,
    ):
        self._engine = engine
        self._oracle = oracle
        self._settings = settings if settings is not None else OracleSettings()
        self._event_log = event_log if event_log is not None else EventLog()

    async def suggest(self, transaction: Transaction) -> TransactionMapping:
        """
        Suggest a mapping for one transaction.

        Raises:
            NotInitializedError, NoMatchingAccountsError: From the heuristic engine
        """
        if self._oracle is None:
            return self._engine.map_transaction(transaction)

        try:
            return await self._ask_oracle(transaction)
        except (OracleUnavailableError, InvalidOracleResponseError) as e:
            logger.warning(
                "oracle_fallback",
                transaction_id=transaction.id,
                error=str(e),
            )
            self._event_log.record(
                DiagnosticEntryBuilder.oracle_fallback(transaction.id or None, str(e))
            )
            return self._engine.map_transaction(transaction)

    async def _ask_oracle(self, transaction: Transaction) -> TransactionMapping:
        index = self._engine.index
        prompt = build_mapping_prompt(transaction, index.accounts)
        try:
            text = await asyncio.wait_for(
                self._oracle.complete(prompt),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise OracleUnavailableError(
                f"Oracle did not answer within {self._settings.timeout_seconds}s"
            ) from e

        suggestion = parse_oracle_response(text, index)
        confidence = min(CONFIDENCE_CEILING, suggestion.confidence)
        reasons = ["Suggested by oracle"]

        mapping = TransactionMapping(
            transaction_id=transaction.id or None,
            debit=AccountMatchResult(
                account=index.by_code(suggestion.debit_account_code),
                confidence=confidence,
                match_reasons=reasons,
            ),
            credit=AccountMatchResult(
                account=index.by_code(suggestion.credit_account_code),
                confidence=confidence,
                match_reasons=reasons,
            ),
            confidence=confidence,
            reasoning=[suggestion.reasoning],
            source=MappingSource.ORACLE,
        )
        self._event_log.record(DiagnosticEntryBuilder.mapping_completed(
            transaction_id=mapping.transaction_id,
            debit_code=suggestion.debit_account_code,
            credit_code=suggestion.credit_account_code,
            confidence=confidence,
            source=mapping.source.value,
            category=None,
        ))
        return mapping

    async def map_batch(
        self,
        transactions: Sequence[Transaction],
        stop: Optional[asyncio.Event] = None,
    ) -> list[BatchItemResult]:
        """
        Map many transactions.

        Results come back in input order. Once stop is set, no further
        batch is submitted and the remaining items are marked skipped.
        """
        semaphore = asyncio.Semaphore(self._settings.max_concurrent_calls)
        batch_size = self._settings.batch_size
        results: list[BatchItemResult] = []

        async def map_one(position: int, transaction: Transaction) -> BatchItemResult:
            item_id = transaction.id or f"#{position}"
            async with semaphore:
                try:
                    mapping = await self.suggest(transaction)
                except Exception as e:
                    logger.error(
                        "batch_item_failed",
                        transaction_id=item_id,
                        error=str(e),
                    )
                    self._event_log.record(
                        DiagnosticEntryBuilder.mapping_failed(transaction.id or None, str(e))
                    )
                    return BatchItemResult(transaction_id=item_id, error=str(e))
            return BatchItemResult(transaction_id=item_id, mapping=mapping)

        for start in range(0, len(transactions), batch_size):
            if start > 0 and self._settings.inter_batch_delay_seconds > 0:
                await asyncio.sleep(self._settings.inter_batch_delay_seconds)

            if stop is not None and stop.is_set():
                results.extend(
                    BatchItemResult(transaction_id=t.id or f"#{start + offset}", skipped=True)
                    for offset, t in enumerate(transactions[start:])
                )
                break

            batch = transactions[start:start + batch_size]
            results.extend(await asyncio.gather(
                *(map_one(start + offset, t) for offset, t in enumerate(batch))
            ))

        logger.info(
            "batch_mapped",
            total=len(transactions),
            succeeded=sum(1 for r in results if r.succeeded),
            skipped=sum(1 for r in results if r.skipped),
        )
        return results
