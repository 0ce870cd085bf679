"""Withdrawal finalization validation and fee reconciliation."""

from typing import NoReturn
import structlog

from btc_tunnel.core.exceptions import EconomicMismatchError, FailureReason, MalformedClaimError
from btc_tunnel.core.ledger import TunnelLedger
from btc_tunnel.core.oracle import BitcoinDataOracle
from btc_tunnel.models.bitcoin import TransactionOutput
from btc_tunnel.models.verdicts import WithdrawalVerdict
from btc_tunnel.utils.opreturn import decode_withdrawal_index
from btc_tunnel.utils.script import script_hash, scripts_match

logger = structlog.get_logger(__name__)

# Payment plus index marker, optionally with change in between
MIN_WITHDRAWAL_OUTPUTS = 2
MAX_WITHDRAWAL_OUTPUTS = 3


class WithdrawalValidator:
    """
    Verify a Bitcoin transaction fulfilling a queued withdrawal.

    Accepted layouts spend the current sweep UTXO as the only input and pay:

    * ``[payment, marker]``
    * ``[payment, change, marker]``

    where ``marker`` is an OP_RETURN carrying the withdrawal index and
    ``change`` returns funds to the custody script.
    """

    def __init__(self, oracle: BitcoinDataOracle, ledger: TunnelLedger):
        self.oracle = oracle
        self.ledger = ledger
        self.logger = logger.bind(component="withdrawal_validator")

    def check_withdrawal_finalization_validity(self, txid: str, withdrawal_index: int,
                                               custody_script_hash: bytes, sweep_txid: str,
                                               sweep_output_index: int) -> WithdrawalVerdict:
        """
        Validate ``txid`` as the payout of withdrawal ``withdrawal_index``.

        Returns the fee reconciliation between the protocol fee recorded for
        the withdrawal and the Bitcoin fee the transaction actually paid.
        """
        tx = self.oracle.transaction_by_txid(txid)
        if tx is None or tx.total_inputs != 1 or not tx.inputs:
            self._reject(MalformedClaimError, FailureReason.WITHDRAWAL_INPUT_COUNT, txid,
                         inputs=tx.total_inputs if tx is not None else None)

        sweep_input = tx.inputs[0]
        if not sweep_input.spends(sweep_txid, sweep_output_index):
            self._reject(MalformedClaimError, FailureReason.WITHDRAWAL_WRONG_SWEEP_INPUT, txid,
                         spent_txid=sweep_input.input_txid, spent_index=sweep_input.source_index)

        output_count = tx.total_outputs
        if (not MIN_WITHDRAWAL_OUTPUTS <= output_count <= MAX_WITHDRAWAL_OUTPUTS
                or len(tx.outputs) != output_count):
            self._reject(MalformedClaimError, FailureReason.WITHDRAWAL_OUTPUT_COUNT, txid,
                         outputs=output_count)

        record = self.ledger.withdrawal_by_index(withdrawal_index)
        if record is None or record.amount == 0:
            self._reject(MalformedClaimError, FailureReason.WITHDRAWAL_NOT_FOUND, txid,
                         withdrawal_index=withdrawal_index)

        payment = tx.outputs[0]
        if not scripts_match(payment.script, script_hash(record.destination_script)):
            self._reject(EconomicMismatchError, FailureReason.WITHDRAWAL_WRONG_SCRIPT, txid,
                         withdrawal_index=withdrawal_index)

        if payment.value != record.net_amount:
            self._reject(EconomicMismatchError, FailureReason.WITHDRAWAL_WRONG_AMOUNT, txid,
                         value=payment.value, expected=record.net_amount)

        created_change = output_count == MAX_WITHDRAWAL_OUTPUTS
        change_value = 0
        if created_change:
            change = tx.outputs[1]
            if change.is_op_return or not scripts_match(change.script, custody_script_hash):
                self._reject(EconomicMismatchError, FailureReason.WITHDRAWAL_BAD_CHANGE, txid)
            change_value = change.value

        self._check_marker(txid, tx.outputs[-1], withdrawal_index)

        actual_fee = sweep_input.value - sum(output.value for output in tx.outputs)
        if actual_fee < 0:
            self._reject(EconomicMismatchError, FailureReason.WITHDRAWAL_OUTPUTS_EXCEED_INPUT, txid,
                         input_value=sweep_input.value)

        verdict = WithdrawalVerdict(
            fees_overpaid=max(0, actual_fee - record.fee),
            fees_collected=max(0, record.fee - actual_fee),
            amount=record.amount,
            created_change=created_change,
            change_value=change_value,
        )
        self.logger.info("Withdrawal finalized",
                         txid=txid,
                         withdrawal_index=withdrawal_index,
                         btc_fee=actual_fee,
                         **verdict.to_dict())
        return verdict

    def _check_marker(self, txid: str, marker: TransactionOutput, withdrawal_index: int) -> None:
        """The last output must be an OP_RETURN naming the withdrawal being paid."""
        if not marker.is_op_return:
            self._reject(MalformedClaimError, FailureReason.WITHDRAWAL_MISSING_MARKER, txid)

        try:
            encoded_index = decode_withdrawal_index(marker.script)
        except MalformedClaimError as e:
            self.logger.warning("Withdrawal rejected", txid=txid,
                                reason=FailureReason.WITHDRAWAL_MISSING_MARKER.value)
            raise MalformedClaimError(FailureReason.WITHDRAWAL_MISSING_MARKER, txid=txid) from e

        if encoded_index != withdrawal_index:
            self._reject(MalformedClaimError, FailureReason.WITHDRAWAL_INDEX_MISMATCH, txid,
                         encoded_index=encoded_index, withdrawal_index=withdrawal_index)

    def _reject(self, error_cls, reason: FailureReason, txid: str, **context) -> NoReturn:
        self.logger.warning("Withdrawal rejected", txid=txid, reason=reason.value, **context)
        raise error_cls(reason, txid=txid, **context)
