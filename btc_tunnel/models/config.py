"""Configuration management using Pydantic settings."""

from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings

from btc_tunnel.models.ledger import FeeSchedule

# Hop budget for the spend-graph walk back to the live sweep UTXO
MAX_SWEEP_UTXO_WALKBACK = 10

# Inputs/outputs an oracle exposes inline before lookups go one by one
MAX_EXPOSED_ELEMENTS = 8


class TunnelConfig(BaseSettings):
    """Configuration for the tunnel validation engine."""

    # Validation Settings
    max_sweep_utxo_walkback: int = Field(
        default=MAX_SWEEP_UTXO_WALKBACK,
        description="Maximum ancestor hops walked by the spend-graph crawler"
    )
    min_deposit_sats: int = Field(default=10000, ge=0, description="Minimum deposit size in sats")

    # Fee Schedule
    deposit_fee_bps: int = Field(default=20, ge=0, le=10000, description="Deposit fee in basis points")
    min_deposit_fee_sats: int = Field(default=1000, ge=0, description="Minimum deposit fee in sats")
    withdrawal_fee_bps: int = Field(default=30, ge=0, le=10000, description="Withdrawal fee in basis points")
    min_withdrawal_fee_sats: int = Field(default=1000, ge=0, description="Minimum withdrawal fee in sats")

    # Bitcoin Core RPC Settings
    bitcoin_rpc_host: str = Field(default="localhost", description="Bitcoin Core RPC host")
    bitcoin_rpc_port: int = Field(default=8332, description="Bitcoin Core RPC port")
    bitcoin_rpc_user: Optional[str] = Field(default=None, description="Bitcoin Core RPC username")
    bitcoin_rpc_password: Optional[str] = Field(default=None, description="Bitcoin Core RPC password")
    bitcoin_rpc_timeout: int = Field(default=30, description="RPC timeout in seconds")
    rpc_retry_attempts: int = Field(default=3, ge=1, description="Retry attempts for failed RPC calls")
    rpc_retry_delay: float = Field(default=1.0, ge=0, description="Delay between retries in seconds")

    # Logging Settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json|text)")
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size_mb: int = Field(default=100, description="Max log file size in MB")
    log_backup_count: int = Field(default=5, description="Number of log backups")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "BTC_TUNNEL_"

    @validator('max_sweep_utxo_walkback')
    def validate_walkback(cls, v):
        """The walk-back budget must allow at least one hop."""
        if v < 1:
            raise ValueError("max_sweep_utxo_walkback must be at least 1")
        return v

    @validator('log_format')
    def validate_log_format(cls, v):
        """Only json and text renderers are supported."""
        if v.lower() not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v.lower()

    @property
    def bitcoin_rpc_url(self) -> str:
        """Generate Bitcoin Core RPC URL."""
        return f"http://{self.bitcoin_rpc_host}:{self.bitcoin_rpc_port}"

    def fee_schedule(self) -> FeeSchedule:
        """Build the fee schedule used by the in-memory ledger."""
        return FeeSchedule(
            deposit_fee_bps=self.deposit_fee_bps,
            min_deposit_fee_sats=self.min_deposit_fee_sats,
            withdrawal_fee_bps=self.withdrawal_fee_bps,
            min_withdrawal_fee_sats=self.min_withdrawal_fee_sats,
        )
