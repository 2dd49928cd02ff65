"""Runtime settings for the curation and relay services.

Values come from (lowest to highest precedence) field defaults, a ``.env``
file, and ``DATADAO_<SECTION>__<KEY>`` environment variables, e.g.
``DATADAO_RELAY__SWEEP_INTERVAL_SECONDS=60``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///./datadao.db"
    echo: bool = False
    pool_pre_ping: bool = True


class RelaySettings(BaseModel):
    """Relay queue, sweep and worker pool tuning."""

    sweep_interval_seconds: float = Field(default=30.0, gt=0)
    sweep_batch_size: int = Field(default=100, gt=0)
    claim_ttl_seconds: float = Field(default=300.0, gt=0)
    concurrency: int = Field(default=5, gt=0)
    max_attempts: int = Field(default=3, gt=0)
    backoff_base_seconds: float = Field(default=2.0, ge=0)
    call_timeout_seconds: float = Field(default=30.0, gt=0)
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    reputation_delta: int = Field(default=10, gt=0)
    keep_completed_jobs: int = Field(default=100, ge=0)
    keep_failed_jobs: int = Field(default=50, ge=0)
    stale_job_seconds: float = Field(default=600.0, gt=0)
    shutdown_timeout_seconds: float = Field(default=30.0, gt=0)


class RewardSettings(BaseModel):
    """Reward minting policy. Amounts are whole-unit decimal strings."""

    policy: str = "fixed"
    base_amount: str = "10"
    reviewer_amount: str | None = None

    @field_validator("policy")
    @classmethod
    def _known_policy(cls, value: str) -> str:
        if value not in ("fixed", "score_scaled"):
            raise ValueError(f"unknown reward policy: {value}")
        return value


class LedgerSettings(BaseModel):
    """Gateway endpoints for the two ledgers. Empty means not configured."""

    primary_url: str = ""
    secondary_url: str = ""
    api_key: str | None = None
    timeout_seconds: float = 30.0
    max_retries: int = 3


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DATADAO_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    rewards: RewardSettings = Field(default_factory=RewardSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    auto_approve_threshold: int = Field(default=85, ge=0, le=100)


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()


__all__ = [
    "DatabaseSettings",
    "LedgerSettings",
    "RelaySettings",
    "RewardSettings",
    "Settings",
    "load_settings",
]
