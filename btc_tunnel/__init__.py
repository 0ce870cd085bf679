"""
Bitcoin Tunnel Validator

UTXO validation engine for a custodial Bitcoin tunnel: verifies claimed
deposits, withdrawal payouts, custody sweeps and fraud accusations using
only records supplied by a Bitcoin data oracle.
"""

__version__ = "1.0.0"
__author__ = "Bitcoin Data Engineering Team"
__description__ = "Oracle-driven UTXO validation for custodial Bitcoin tunnels"

from btc_tunnel.core.engine import ValidationEngine
from btc_tunnel.core.exceptions import FailureReason, MalformedClaimError, EconomicMismatchError
from btc_tunnel.core.oracle import InMemoryOracle
from btc_tunnel.core.ledger import InMemoryLedger
from btc_tunnel.models.config import TunnelConfig

__all__ = [
    "ValidationEngine",
    "FailureReason",
    "MalformedClaimError",
    "EconomicMismatchError",
    "InMemoryOracle",
    "InMemoryLedger",
    "TunnelConfig",
]
