"""Sweep validation: consolidation of confirmed deposits into a new custody UTXO."""

from typing import List, NoReturn
import structlog

from btc_tunnel.core.exceptions import EconomicMismatchError, FailureReason, MalformedClaimError
from btc_tunnel.core.ledger import TunnelLedger
from btc_tunnel.core.oracle import BitcoinDataOracle, TransactionInputs
from btc_tunnel.models.bitcoin import ZERO_TXID
from btc_tunnel.models.verdicts import SweepVerdict
from btc_tunnel.utils.script import scripts_match

logger = structlog.get_logger(__name__)

# Old sweep UTXO plus one to seven deposits
MIN_SWEEP_INPUTS = 2
MAX_SWEEP_INPUTS = 8


def is_sweep_input_count(count: int) -> bool:
    return MIN_SWEEP_INPUTS <= count <= MAX_SWEEP_INPUTS


class SweepValidator:
    """Verify a sweep transaction and compute the values it moves into custody."""

    def __init__(self, oracle: BitcoinDataOracle, ledger: TunnelLedger):
        self.oracle = oracle
        self.ledger = ledger
        self.logger = logger.bind(component="sweep_validator")

    def check_sweep_validity(self, sweep_txid: str, custody_script_hash: bytes,
                             old_sweep_txid: str, old_sweep_output_index: int) -> SweepVerdict:
        """
        Validate ``sweep_txid`` as the successor of the old sweep UTXO.

        Input 0 must spend the old sweep UTXO and every other input must
        spend a confirmed-but-unswept deposit at its recorded output index.
        ``swept_value`` and ``net_deposit_value`` are both returned; they
        differ by the Bitcoin fee paid minus the protocol fees collected.
        """
        if sweep_txid == ZERO_TXID:
            self._reject(MalformedClaimError, FailureReason.SWEEP_ZERO_TXID, sweep_txid)

        tx = self.oracle.transaction_by_txid(sweep_txid)
        if tx is None:
            self._reject(MalformedClaimError, FailureReason.SWEEP_UNKNOWN, sweep_txid)

        if not is_sweep_input_count(tx.total_inputs):
            self._reject(MalformedClaimError, FailureReason.SWEEP_INPUT_COUNT, sweep_txid,
                         inputs=tx.total_inputs)

        if tx.total_outputs != 1 or not tx.outputs:
            self._reject(MalformedClaimError, FailureReason.SWEEP_OUTPUT_COUNT, sweep_txid,
                         outputs=tx.total_outputs)

        inputs = TransactionInputs(tx, self.oracle)
        old_sweep_input = inputs[0]
        if not old_sweep_input.spends(old_sweep_txid, old_sweep_output_index):
            self._reject(MalformedClaimError, FailureReason.SWEEP_WRONG_SWEEP_INPUT, sweep_txid,
                         spent_txid=old_sweep_input.input_txid,
                         spent_index=old_sweep_input.source_index)

        new_output = tx.outputs[0]
        if not scripts_match(new_output.script, custody_script_hash):
            self._reject(EconomicMismatchError, FailureReason.SWEEP_WRONG_SCRIPT, sweep_txid)

        net_deposit_value = 0
        swept_txids: List[str] = []
        for index in range(1, len(inputs)):
            deposit_input = inputs[index]
            deposit_txid = deposit_input.input_txid

            collectable_fee = self.ledger.collectable_fee(deposit_txid)
            if collectable_fee == 0:
                self._reject(MalformedClaimError, FailureReason.SWEEP_DEPOSIT_NOT_UNSWEPT, sweep_txid,
                             input_index=index, deposit_txid=deposit_txid)

            if self.ledger.deposit_output_index(deposit_txid) != deposit_input.source_index:
                self._reject(MalformedClaimError, FailureReason.SWEEP_DEPOSIT_WRONG_INDEX, sweep_txid,
                             input_index=index, deposit_txid=deposit_txid,
                             source_index=deposit_input.source_index)

            net_deposit_value += deposit_input.value - collectable_fee
            swept_txids.append(deposit_txid)

        swept_value = new_output.value - old_sweep_input.value
        if swept_value < 0:
            self._reject(EconomicMismatchError, FailureReason.SWEEP_OUTPUT_BELOW_OLD_SWEEP, sweep_txid,
                         new_output_value=new_output.value, old_sweep_value=old_sweep_input.value)

        verdict = SweepVerdict(
            swept_value=swept_value,
            net_deposit_value=net_deposit_value,
            new_output_value=new_output.value,
            swept_txids=swept_txids,
        )
        self.logger.info("Sweep confirmed",
                         sweep_txid=sweep_txid,
                         deposits=len(swept_txids),
                         swept_value=swept_value,
                         net_deposit_value=net_deposit_value,
                         new_output_value=new_output.value)
        return verdict

    def _reject(self, error_cls, reason: FailureReason, sweep_txid: str, **context) -> NoReturn:
        self.logger.warning("Sweep rejected", sweep_txid=sweep_txid, reason=reason.value, **context)
        raise error_cls(reason, sweep_txid=sweep_txid, **context)
