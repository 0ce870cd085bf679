"""
Spend-graph crawler for confirmed-deposit spend accusations.

A confirmed-but-unswept deposit may only be spent by a sweep that also
consumes the live custody UTXO, or by a sweep whose custody input derives
from it through already-validated withdrawals and sweeps. The crawler
walks that derivation backwards for a bounded number of hops.
"""

from typing import Optional
import structlog

from btc_tunnel.core.exceptions import FailureReason, MalformedClaimError
from btc_tunnel.core.ledger import TunnelLedger
from btc_tunnel.core.oracle import BitcoinDataOracle, TransactionInputs
from btc_tunnel.core.sweep_validator import is_sweep_input_count
from btc_tunnel.models.bitcoin import BitcoinTransaction, TransactionInput
from btc_tunnel.models.config import TunnelConfig
from btc_tunnel.models.verdicts import CrawlOutcome
from btc_tunnel.utils.script import scripts_match

logger = structlog.get_logger(__name__)

WITHDRAWAL_LINK = "withdrawal"
SWEEP_LINK = "sweep"

# Custody change of a withdrawal always sits at output 1
WITHDRAWAL_CHANGE_INDEX = 1


def classify_link(tx: BitcoinTransaction) -> Optional[str]:
    """
    Classify an ancestor of the custody chain by shape.

    One input with two outputs, or with three outputs ending in an OP_RETURN
    marker, is a withdrawal. Two to eight inputs with a single output is a
    sweep. Anything else cannot be part of the custody chain.
    """
    if tx.total_inputs == 1:
        if tx.total_outputs == 2:
            return WITHDRAWAL_LINK
        if tx.total_outputs == 3 and len(tx.outputs) == 3 and tx.outputs[2].is_op_return:
            return WITHDRAWAL_LINK
        return None

    if is_sweep_input_count(tx.total_inputs) and tx.total_outputs == 1:
        return SWEEP_LINK

    return None


class SpendGraphCrawler:
    """Decide whether an accused spend of a confirmed deposit is invalid."""

    def __init__(self, oracle: BitcoinDataOracle, ledger: TunnelLedger,
                 config: Optional[TunnelConfig] = None):
        self.oracle = oracle
        self.ledger = ledger
        self.config = config or TunnelConfig()
        self.logger = logger.bind(component="spend_graph_crawler")

    def check_confirmed_deposit_spend_invalidity(self, txid: str, input_index: int,
                                                 custody_script_hash: bytes,
                                                 current_sweep_txid: str,
                                                 current_sweep_output_index: int) -> bool:
        """
        Return True when the spend of a confirmed deposit by ``txid`` input
        ``input_index`` does not route into custody.

        Raises:
            MalformedClaimError: the transaction or input does not exist, or
                the input does not spend a confirmed-but-unswept deposit.
        """
        outcome = self.crawl(txid, input_index, custody_script_hash,
                             current_sweep_txid, current_sweep_output_index)
        return outcome.is_invalid

    def crawl(self, txid: str, input_index: int, custody_script_hash: bytes,
              current_sweep_txid: str, current_sweep_output_index: int) -> CrawlOutcome:
        """Run the accusation checks and return the full crawl outcome."""
        tx = self.oracle.transaction_by_txid(txid)
        if tx is None:
            raise MalformedClaimError(FailureReason.TRANSACTION_UNKNOWN, txid=txid)

        inputs = TransactionInputs(tx, self.oracle)
        accused = inputs[input_index]
        self._check_accused_input(txid, input_index, accused)

        shape_problem = self._accused_shape_problem(tx, inputs, custody_script_hash)
        if shape_problem is not None:
            return self._finish(txid, True, 0, shape_problem)

        budget = self.config.max_sweep_utxo_walkback
        cursor = inputs[0]
        hop = 0
        while not cursor.spends(current_sweep_txid, current_sweep_output_index):
            if hop == budget:
                return self._finish(txid, True, hop, "walk-back budget exhausted")

            ancestor = self.oracle.transaction_by_txid(cursor.input_txid)
            if ancestor is None:
                return self._finish(txid, True, hop, "ancestor transaction is not known",
                                    resolved_at=cursor.input_txid)

            link = classify_link(ancestor)
            self.logger.debug("Walked back one hop",
                              txid=txid,
                              hop=hop,
                              ancestor=ancestor.txid,
                              link=link)

            if link is None:
                return self._finish(txid, True, hop, "ancestor shape is neither withdrawal nor sweep",
                                    resolved_at=ancestor.txid)

            if link == WITHDRAWAL_LINK and cursor.source_index != WITHDRAWAL_CHANGE_INDEX:
                return self._finish(txid, True, hop, "spends a withdrawal output other than its change",
                                    resolved_at=ancestor.txid)

            try:
                cursor = TransactionInputs(ancestor, self.oracle)[0]
            except MalformedClaimError:
                return self._finish(txid, True, hop, "ancestor input is not available",
                                    resolved_at=ancestor.txid)
            hop += 1

        return self._finish(txid, False, hop, "derives from current sweep utxo",
                            resolved_at=cursor.input_txid)

    def _check_accused_input(self, txid: str, input_index: int, accused: TransactionInput) -> None:
        deposit_txid = accused.input_txid
        if self.ledger.collectable_fee(deposit_txid) == 0:
            self.logger.warning("Accusation rejected", txid=txid, input_index=input_index,
                                reason=FailureReason.ACCUSED_INPUT_NOT_UNSWEPT_DEPOSIT.value)
            raise MalformedClaimError(FailureReason.ACCUSED_INPUT_NOT_UNSWEPT_DEPOSIT,
                                      txid=txid, input_index=input_index, deposit_txid=deposit_txid)

        if self.ledger.deposit_output_index(deposit_txid) != accused.source_index:
            self.logger.warning("Accusation rejected", txid=txid, input_index=input_index,
                                reason=FailureReason.ACCUSED_INPUT_WRONG_INDEX.value)
            raise MalformedClaimError(FailureReason.ACCUSED_INPUT_WRONG_INDEX,
                                      txid=txid, input_index=input_index, deposit_txid=deposit_txid)

    def _accused_shape_problem(self, tx: BitcoinTransaction, inputs: TransactionInputs,
                               custody_script_hash: bytes) -> Optional[str]:
        """Describe why the accused transaction cannot be a sweep, or None."""
        if not is_sweep_input_count(tx.total_inputs):
            return "accused transaction input count is not a sweep"

        if tx.total_outputs != 1 or not tx.outputs:
            return "accused transaction output count is not a sweep"

        if not scripts_match(tx.outputs[0].script, custody_script_hash):
            return "accused transaction does not pay the custody script"

        for index in range(1, len(inputs)):
            deposit_input = inputs[index]
            if self.ledger.collectable_fee(deposit_input.input_txid) == 0:
                return f"input {index} is not a confirmed but unswept deposit"
            if self.ledger.deposit_output_index(deposit_input.input_txid) != deposit_input.source_index:
                return f"input {index} spends the wrong output of a confirmed deposit"

        return None

    def _finish(self, txid: str, is_invalid: bool, hops: int, reason: str,
                resolved_at: Optional[str] = None) -> CrawlOutcome:
        outcome = CrawlOutcome(is_invalid=is_invalid, hops=hops, reason=reason, resolved_at=resolved_at)
        self.logger.info("Spend crawl finished", txid=txid, **outcome.to_dict())
        return outcome
