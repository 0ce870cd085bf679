"""Core tunnel validation components."""

from btc_tunnel.core.exceptions import (
    FailureReason,
    TunnelValidationError,
    MalformedClaimError,
    EconomicMismatchError,
)
from btc_tunnel.core.oracle import BitcoinDataOracle, InMemoryOracle, TransactionInputs
from btc_tunnel.core.ledger import TunnelLedger, InMemoryLedger
from btc_tunnel.core.deposit_validator import DepositValidator
from btc_tunnel.core.withdrawal_validator import WithdrawalValidator
from btc_tunnel.core.sweep_validator import SweepValidator
from btc_tunnel.core.spend_graph import SpendGraphCrawler
from btc_tunnel.core.engine import ValidationEngine
from btc_tunnel.core.rpc_client import BitcoinRPCClient, BitcoinRPCError
from btc_tunnel.core.rpc_oracle import BitcoinCoreOracle

__all__ = [
    "FailureReason",
    "TunnelValidationError",
    "MalformedClaimError",
    "EconomicMismatchError",
    "BitcoinDataOracle",
    "InMemoryOracle",
    "TransactionInputs",
    "TunnelLedger",
    "InMemoryLedger",
    "DepositValidator",
    "WithdrawalValidator",
    "SweepValidator",
    "SpendGraphCrawler",
    "ValidationEngine",
    "BitcoinRPCClient",
    "BitcoinRPCError",
    "BitcoinCoreOracle",
]
