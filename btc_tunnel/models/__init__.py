"""Data models and configuration."""

from btc_tunnel.models.config import TunnelConfig
from btc_tunnel.models.bitcoin import (
    BitcoinTransaction, TransactionInput, TransactionOutput, SpentDetail, ZERO_TXID
)
from btc_tunnel.models.ledger import WithdrawalRecord, ConfirmedDepositRecord, FeeSchedule
from btc_tunnel.models.verdicts import DepositVerdict, WithdrawalVerdict, SweepVerdict, CrawlOutcome

__all__ = [
    "TunnelConfig",
    "BitcoinTransaction",
    "TransactionInput",
    "TransactionOutput",
    "SpentDetail",
    "ZERO_TXID",
    "WithdrawalRecord",
    "ConfirmedDepositRecord",
    "FeeSchedule",
    "DepositVerdict",
    "WithdrawalVerdict",
    "SweepVerdict",
    "CrawlOutcome",
]
