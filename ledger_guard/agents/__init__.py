"""Suggestion oracle package."""

from ledger_guard.agents.oracle import (
    AssistedMapper,
    GeminiSuggestionOracle,
    InvalidOracleResponseError,
    OracleError,
    OracleSuggestion,
    OracleUnavailableError,
    SuggestionOracle,
    build_mapping_prompt,
    parse_oracle_response,
)

__all__ = [
    "AssistedMapper",
    "GeminiSuggestionOracle",
    "InvalidOracleResponseError",
    "OracleError",
    "OracleSuggestion",
    "OracleUnavailableError",
    "SuggestionOracle",
    "build_mapping_prompt",
    "parse_oracle_response",
]
