"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from accrual.constants import (
    DEFAULT_ACCRUAL_PRECISION,
    DEFAULT_DAILY_POINT_RATE,
    DEFAULT_SWEEP_INTERVAL_SECONDS,
)
from accrual.core.models import OutOfOrderPolicy
from tracker.config.constants import (
    BATCH_COMMIT_MAX_ATTEMPTS,
    BLOCKCHAIN_MAX_RETRIES,
    BLOCKCHAIN_RETRY_DELAY_BASE,
    BLOCKCHAIN_TIMEOUT,
    FINALITY_CONFIRMATIONS,
    INDEXER_CHUNK_SIZE,
    RPC_MAX_CONCURRENT,
)
from tracker.utils.enums import BalanceFallbackPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Blockchain
    rpc_url: str
    rpc_poa_chain: bool = Field(
        default=False, description="Inject extraData middleware for PoA chains"
    )
    chain_id: int = Field(default=1, ge=1, description="EVM chain id")
    token_contract_address: str
    token_decimals: int = Field(
        default=0,
        ge=0,
        le=36,
        description="Balance scaling; 0 keeps raw base units",
    )

    # Points accrual
    daily_point_rate: Decimal = Field(
        default=DEFAULT_DAILY_POINT_RATE,
        ge=0,
        description="Points per whole token held for one day",
    )
    sweep_interval_seconds: int = Field(
        default=DEFAULT_SWEEP_INTERVAL_SECONDS,
        ge=0,
        description="Seconds between registry-wide sweeps",
    )
    accrual_precision: int = Field(
        default=DEFAULT_ACCRUAL_PRECISION,
        ge=28,
        le=200,
        description="Significant digits for decimal accrual",
    )
    out_of_order_policy: OutOfOrderPolicy = Field(
        default=OutOfOrderPolicy.RECORD_BALANCE,
        description="Handling of observations older than the last snapshot",
    )

    # Balance lookups
    balance_fallback_policy: BalanceFallbackPolicy = Field(
        default=BalanceFallbackPolicy.LAST_KNOWN,
        description="What to do when a balance lookup keeps failing",
    )
    balance_lookup_max_retries: int = Field(default=BLOCKCHAIN_MAX_RETRIES, ge=1)
    balance_lookup_timeout: float = Field(default=BLOCKCHAIN_TIMEOUT, gt=0)
    balance_lookup_concurrency: int = Field(default=RPC_MAX_CONCURRENT, ge=1)
    balance_retry_base_delay: float = Field(default=BLOCKCHAIN_RETRY_DELAY_BASE, ge=0)

    # Batch pipeline
    batch_commit_max_attempts: int = Field(default=BATCH_COMMIT_MAX_ATTEMPTS, ge=1)
    indexer_chunk_size: int = Field(default=INDEXER_CHUNK_SIZE, ge=1)
    indexer_start_block: int = Field(default=0, ge=0)
    finality_confirmations: int = Field(default=FINALITY_CONFIRMATIONS, ge=0)

    # Redis (for Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("token_contract_address")
    @classmethod
    def normalize_token_address(cls, v: str) -> str:
        """Store the contract address lowercase, like every other address."""
        from tracker.validators.address import validate_address

        is_valid, error = validate_address(v)
        if not is_valid:
            raise ValueError(f"token_contract_address: {error}")
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept only levels loguru knows."""
        level = v.upper()
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return level


settings = Settings()
