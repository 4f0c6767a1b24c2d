"""
Configuration Management for Ledger Guard

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunables are centralized here.
The engine itself never reads the environment; components receive
their settings object from create_engine_components.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OracleSettings(BaseSettings):
    """
    Suggestion oracle (Gemini LLM) configuration.

    The oracle is optional: with enabled=False (the default) mapping
    runs on heuristics alone and no API key is needed.
    """

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=False,
        description="Consult the LLM for mapping suggestions"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )

    # Concurrency controls for batch mapping
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Per-call deadline for one suggestion"
    )
    max_concurrent_calls: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Upper bound on simultaneous oracle calls"
    )
    batch_size: int = Field(
        default=5,
        ge=1,
        description="Transactions submitted per batch"
    )
    inter_batch_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause between two consecutive batches"
    )


class EngineSettings(BaseSettings):
    """
    Main engine settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_GUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug logging"
    )
    log_json: bool = Field(
        default=True,
        description="Render log lines as JSON (False gives console output)"
    )

    # Validation thresholds
    min_description_length: int = Field(
        default=3,
        ge=0,
        description="Descriptions shorter than this produce a warning"
    )
    amount_decimal_places: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Amounts with more decimals produce a precision warning"
    )

    # Mapping
    history_suggestion_limit: int = Field(
        default=5,
        ge=1,
        description="Default number of historical suggestions returned"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def oracle(self) -> OracleSettings:
        return OracleSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus an
    "<name>_error" entry for each section that failed.
    Useful for startup checks.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    try:
        _ = settings.engine
        results["engine"] = True
    except ValueError as e:
        results["engine"] = False
        results["engine_error"] = str(e)

    try:
        oracle = settings.oracle
        if oracle.enabled and not oracle.api_key:
            results["oracle"] = False
            results["oracle_error"] = "GEMINI_ENABLED is set but GEMINI_API_KEY is missing"
        else:
            results["oracle"] = True
    except ValueError as e:
        results["oracle"] = False
        results["oracle_error"] = str(e)

    return results
