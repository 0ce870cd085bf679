"""Deposit confirmation validation."""

from typing import List, NoReturn, Optional
import structlog

from btc_tunnel.core.exceptions import EconomicMismatchError, FailureReason, MalformedClaimError
from btc_tunnel.core.ledger import TunnelLedger
from btc_tunnel.core.oracle import BitcoinDataOracle
from btc_tunnel.models.bitcoin import TransactionOutput
from btc_tunnel.models.config import MAX_EXPOSED_ELEMENTS
from btc_tunnel.models.verdicts import DepositVerdict
from btc_tunnel.utils.script import extract_evm_address, scripts_match

logger = structlog.get_logger(__name__)


class DepositValidator:
    """Verify a claimed deposit output and compute the credit it earns."""

    def __init__(self, oracle: BitcoinDataOracle, ledger: TunnelLedger):
        self.oracle = oracle
        self.ledger = ledger
        self.logger = logger.bind(component="deposit_validator")

    def check_deposit_confirmation_validity(self, txid: str, claimed_output_index: int,
                                            custody_script_hash: bytes,
                                            min_deposit_sats: int) -> DepositVerdict:
        """
        Validate a deposit of ``txid`` output ``claimed_output_index``.

        Checks run in a fixed order and the first violation raises. Nothing is
        recorded; the caller acknowledges the deposit after a verdict.

        Raises:
            MalformedClaimError: already acknowledged, index out of range,
                output not accessible, or no EVM address to credit.
            EconomicMismatchError: wrong custody script, below minimum, or
                fee not covered by the deposit.
        """
        if self.ledger.is_deposit_acknowledged(txid):
            self._reject(MalformedClaimError, FailureReason.DEPOSIT_ALREADY_CONFIRMED, txid)

        if not 0 <= claimed_output_index < MAX_EXPOSED_ELEMENTS:
            self._reject(MalformedClaimError, FailureReason.DEPOSIT_OUTPUT_INDEX_TOO_HIGH, txid,
                         output_index=claimed_output_index)

        tx = self.oracle.transaction_by_txid(txid)
        outputs = tx.outputs if tx is not None else []
        if len(outputs) < claimed_output_index + 1:
            self._reject(MalformedClaimError, FailureReason.DEPOSIT_OUTPUT_NOT_ACCESSIBLE, txid,
                         output_index=claimed_output_index, exposed_outputs=len(outputs))

        depositor = self._find_depositor(outputs, claimed_output_index)
        if depositor is None:
            self._reject(MalformedClaimError, FailureReason.DEPOSIT_NO_EVM_ADDRESS, txid,
                         output_index=claimed_output_index)

        deposit = outputs[claimed_output_index]
        if not scripts_match(deposit.script, custody_script_hash):
            self._reject(EconomicMismatchError, FailureReason.DEPOSIT_WRONG_SCRIPT, txid,
                         output_index=claimed_output_index)

        if deposit.value < min_deposit_sats:
            self._reject(EconomicMismatchError, FailureReason.DEPOSIT_BELOW_MINIMUM, txid,
                         value=deposit.value, min_deposit_sats=min_deposit_sats)

        fee = self.ledger.calculate_deposit_fee(deposit.value)
        if fee >= deposit.value:
            self._reject(EconomicMismatchError, FailureReason.DEPOSIT_FEE_EXCEEDS_VALUE, txid,
                         value=deposit.value, fee=fee)

        verdict = DepositVerdict(net_sats=deposit.value - fee, fee_sats=fee, depositor=depositor)
        self.logger.info("Deposit confirmed",
                         txid=txid,
                         output_index=claimed_output_index,
                         **verdict.to_dict())
        return verdict

    def _find_depositor(self, outputs: List[TransactionOutput], deposit_index: int) -> Optional[bytes]:
        """
        Locate the EVM address to credit.

        OP_RETURN outputs before the deposit are tried first (address then
        deposit), nearest first, followed by those after it (deposit then
        address).
        """
        before = range(deposit_index - 1, -1, -1)
        after = range(deposit_index + 1, len(outputs))

        for index in list(before) + list(after):
            output = outputs[index]
            if not output.is_op_return:
                continue
            ok, address = extract_evm_address(output.op_return_data)
            if ok:
                self.logger.debug("Depositor address found", output_index=index)
                return address
        return None

    def _reject(self, error_cls, reason: FailureReason, txid: str, **context) -> NoReturn:
        self.logger.warning("Deposit rejected", txid=txid, reason=reason.value, **context)
        raise error_cls(reason, txid=txid, **context)
