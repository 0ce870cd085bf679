"""
Tunnel Validation Engine

Single entry point a vault layer uses to validate Bitcoin-side claims
against an oracle and its ledger. Every operation is a pure decision:
callers apply ledger changes only after a verdict is returned.
"""

from typing import Optional
import structlog

from btc_tunnel.core.deposit_validator import DepositValidator
from btc_tunnel.core.ledger import TunnelLedger
from btc_tunnel.core.oracle import BitcoinDataOracle
from btc_tunnel.core.spend_graph import SpendGraphCrawler
from btc_tunnel.core.sweep_validator import SweepValidator
from btc_tunnel.core.withdrawal_validator import WithdrawalValidator
from btc_tunnel.models.config import TunnelConfig
from btc_tunnel.models.verdicts import DepositVerdict, SweepVerdict, WithdrawalVerdict
from btc_tunnel.utils.logging import setup_logging

logger = structlog.get_logger(__name__)


class ValidationEngine:
    """Facade over the deposit, withdrawal, sweep and spend-graph validators."""

    def __init__(self, oracle: BitcoinDataOracle, ledger: TunnelLedger,
                 config: Optional[TunnelConfig] = None, configure_logging: bool = False):
        self.config = config or TunnelConfig()
        if configure_logging:
            setup_logging(self.config)
        self.oracle = oracle
        self.ledger = ledger

        self.deposits = DepositValidator(oracle, ledger)
        self.withdrawals = WithdrawalValidator(oracle, ledger)
        self.sweeps = SweepValidator(oracle, ledger)
        self.crawler = SpendGraphCrawler(oracle, ledger, self.config)

        logger.info("Validation engine initialized",
                    max_sweep_utxo_walkback=self.config.max_sweep_utxo_walkback,
                    min_deposit_sats=self.config.min_deposit_sats)

    def check_deposit_confirmation_validity(self, txid: str, claimed_output_index: int,
                                            custody_script_hash: bytes,
                                            min_deposit_sats: Optional[int] = None) -> DepositVerdict:
        """Validate a claimed deposit; ``min_deposit_sats`` defaults to the configured minimum."""
        if min_deposit_sats is None:
            min_deposit_sats = self.config.min_deposit_sats
        return self.deposits.check_deposit_confirmation_validity(
            txid, claimed_output_index, custody_script_hash, min_deposit_sats
        )

    def check_withdrawal_finalization_validity(self, txid: str, withdrawal_index: int,
                                               custody_script_hash: bytes, sweep_txid: str,
                                               sweep_output_index: int) -> WithdrawalVerdict:
        return self.withdrawals.check_withdrawal_finalization_validity(
            txid, withdrawal_index, custody_script_hash, sweep_txid, sweep_output_index
        )

    def check_sweep_validity(self, sweep_txid: str, custody_script_hash: bytes,
                             old_sweep_txid: str, old_sweep_output_index: int) -> SweepVerdict:
        return self.sweeps.check_sweep_validity(
            sweep_txid, custody_script_hash, old_sweep_txid, old_sweep_output_index
        )

    def check_confirmed_deposit_spend_invalidity(self, txid: str, input_index: int,
                                                 custody_script_hash: bytes,
                                                 current_sweep_txid: str,
                                                 current_sweep_output_index: int) -> bool:
        return self.crawler.check_confirmed_deposit_spend_invalidity(
            txid, input_index, custody_script_hash, current_sweep_txid, current_sweep_output_index
        )
