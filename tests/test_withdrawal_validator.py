"""Unit tests for withdrawal finalization validation."""

import pytest

from btc_tunnel.core.exceptions import EconomicMismatchError, FailureReason, MalformedClaimError
from btc_tunnel.core.withdrawal_validator import WithdrawalValidator
from btc_tunnel.models.bitcoin import TransactionOutput

ORIGINATOR = bytes.fromhex("dd00aaaadd00aaaadd00aaaadd00aaaadd00aaaa")


class TestWithdrawalValidator:
    """Test suite for WithdrawalValidator."""

    @pytest.fixture
    def validator(self, oracle, ledger):
        """Withdrawal validator over the in-memory stores."""
        return WithdrawalValidator(oracle, ledger)

    @pytest.fixture
    def withdrawal(self, ledger, user_script):
        """Queued withdrawal of 80001 sats with a 30001-sat fee (net 50000)."""
        return ledger.add_withdrawal(80001, 30001, 500, user_script, ORIGINATOR)

    @pytest.fixture
    def payout_txid(self, txid):
        return txid(0xAB01)

    @pytest.fixture
    def sweep_input(self, spend, sweep_txid, sweep_output_index):
        """Input consuming the live 200000-sat sweep UTXO."""
        return spend(sweep_txid, sweep_output_index, 200000)

    def _check(self, validator, payout_txid, index, custody_script_hash, sweep_txid, sweep_output_index):
        return validator.check_withdrawal_finalization_validity(
            payout_txid, index, custody_script_hash, sweep_txid, sweep_output_index
        )

    def _assert_rejected(self, error_cls, reason, validator, payout_txid, index, custody_script_hash,
                         sweep_txid, sweep_output_index):
        with pytest.raises(error_cls) as exc_info:
            self._check(validator, payout_txid, index, custody_script_hash, sweep_txid, sweep_output_index)
        assert exc_info.value.reason is reason

    # ========================================================================
    # ACCEPTED PAYOUTS
    # ========================================================================

    def test_payout_with_change(self, validator, oracle, withdrawal, payout_txid, sweep_input,
                                user_script, custody_script, custody_script_hash, pay, marker_output,
                                sweep_txid, sweep_output_index):
        """Test payment, change and marker reconcile one sat of collected fees."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, 50000),
            pay(custody_script, 120000),
            marker_output(withdrawal.counter),
        ])

        verdict = self._check(validator, payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

        assert verdict.fees_overpaid == 0
        assert verdict.fees_collected == 1
        assert verdict.amount == 80001
        assert verdict.created_change is True
        assert verdict.change_value == 120000

    def test_payout_without_change(self, validator, oracle, withdrawal, payout_txid, spend,
                                   user_script, custody_script_hash, pay, marker_output,
                                   sweep_txid, sweep_output_index):
        """Test a payment plus marker with no change output."""
        oracle.add_transaction(payout_txid, [spend(sweep_txid, sweep_output_index, 80000)], [
            pay(user_script, 50000),
            marker_output(withdrawal.counter),
        ])

        verdict = self._check(validator, payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

        assert verdict.created_change is False
        assert verdict.change_value == 0
        assert verdict.fees_collected == 1
        assert verdict.fees_overpaid == 0

    def test_bitcoin_fee_above_protocol_fee(self, validator, oracle, withdrawal, payout_txid, spend,
                                            user_script, custody_script_hash, pay, marker_output,
                                            sweep_txid, sweep_output_index):
        """Test the operator overpaying Bitcoin fees is surfaced as overpaid."""
        oracle.add_transaction(payout_txid, [spend(sweep_txid, sweep_output_index, 90000)], [
            pay(user_script, 50000),
            marker_output(withdrawal.counter),
        ])

        verdict = self._check(validator, payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

        assert verdict.fees_overpaid == 40000 - 30001
        assert verdict.fees_collected == 0

    def test_bitcoin_fee_equals_protocol_fee(self, validator, oracle, withdrawal, payout_txid, spend,
                                             user_script, custody_script_hash, pay, marker_output,
                                             sweep_txid, sweep_output_index):
        """Test both reconciliation values are zero when fees match exactly."""
        oracle.add_transaction(payout_txid, [spend(sweep_txid, sweep_output_index, 80001)], [
            pay(user_script, 50000),
            marker_output(withdrawal.counter),
        ])

        verdict = self._check(validator, payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

        assert verdict.fees_overpaid == 0
        assert verdict.fees_collected == 0

    def test_later_withdrawal_index(self, validator, oracle, ledger, withdrawal, payout_txid, sweep_input,
                                    custody_script, custody_script_hash, stranger_script, pay,
                                    marker_output, sweep_txid, sweep_output_index):
        """Test the marker selects the withdrawal being paid."""
        second = ledger.add_withdrawal(100000, 1000, 600, stranger_script, ORIGINATOR)
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(stranger_script, 99000),
            pay(custody_script, 100000),
            marker_output(second.counter, b"\x00" * 80),
        ])

        verdict = self._check(validator, payout_txid, 1, custody_script_hash, sweep_txid, sweep_output_index)

        assert verdict.amount == 100000
        assert verdict.fees_collected == 0
        assert verdict.fees_overpaid == 0

    # ========================================================================
    # STRUCTURAL REJECTIONS
    # ========================================================================

    def test_unknown_transaction(self, validator, withdrawal, payout_txid, custody_script_hash,
                                 sweep_txid, sweep_output_index):
        """Test an unknown payout txid."""
        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_INPUT_COUNT, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_two_inputs(self, validator, oracle, withdrawal, payout_txid, sweep_input, spend, txid,
                        user_script, custody_script_hash, pay, marker_output, sweep_txid, sweep_output_index):
        """Test a payout must consume only the sweep UTXO."""
        oracle.add_transaction(payout_txid, [sweep_input, spend(txid(0x77), 0, 1000)], [
            pay(user_script, 50000),
            marker_output(0),
        ])

        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_INPUT_COUNT, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_wrong_sweep_output(self, validator, oracle, withdrawal, payout_txid, spend,
                                user_script, custody_script_hash, pay, marker_output, sweep_txid):
        """Test a payout spending another output of the sweep transaction."""
        oracle.add_transaction(payout_txid, [spend(sweep_txid, 1, 200000)], [
            pay(user_script, 50000),
            marker_output(0),
        ])

        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_WRONG_SWEEP_INPUT, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, 0)

    def test_single_output(self, validator, oracle, withdrawal, payout_txid, sweep_input,
                           user_script, custody_script_hash, pay, sweep_txid, sweep_output_index):
        """Test a payout without its mandatory marker output."""
        oracle.add_transaction(payout_txid, [sweep_input], [pay(user_script, 50000)])

        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_OUTPUT_COUNT, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_four_outputs(self, validator, oracle, withdrawal, payout_txid, sweep_input, user_script,
                          custody_script, custody_script_hash, pay, marker_output,
                          sweep_txid, sweep_output_index):
        """Test a payout with more than three outputs."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, 50000),
            pay(custody_script, 60000),
            pay(custody_script, 60000),
            marker_output(0),
        ])

        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_OUTPUT_COUNT, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_unknown_withdrawal(self, validator, oracle, withdrawal, payout_txid, sweep_input,
                                user_script, custody_script_hash, pay, marker_output,
                                sweep_txid, sweep_output_index):
        """Test a withdrawal index with no queued record."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, 50000),
            marker_output(5),
        ])

        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_NOT_FOUND, validator,
                              payout_txid, 5, custody_script_hash, sweep_txid, sweep_output_index)

    def test_missing_marker(self, validator, oracle, withdrawal, payout_txid, sweep_input, user_script,
                            stranger_script, custody_script_hash, pay, sweep_txid, sweep_output_index):
        """Test a second output that is neither change nor marker."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, 50000),
            pay(stranger_script, 1000),
        ])

        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_MISSING_MARKER, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_marker_not_last(self, validator, oracle, withdrawal, payout_txid, sweep_input, user_script,
                             custody_script, custody_script_hash, pay, marker_output,
                             sweep_txid, sweep_output_index):
        """Test three outputs must end with the marker."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, 50000),
            marker_output(0),
            pay(custody_script, 120000),
        ])

        self._assert_rejected(EconomicMismatchError, FailureReason.WITHDRAWAL_BAD_CHANGE, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_undecodable_marker(self, validator, oracle, withdrawal, payout_txid, sweep_input,
                                user_script, custody_script_hash, pay, sweep_txid, sweep_output_index):
        """Test an OP_RETURN too short to carry an index."""
        short_marker = TransactionOutput(value=0, script=bytes.fromhex("6a020000"),
                                         is_op_return=True, op_return_data=b"\x00\x00")
        oracle.add_transaction(payout_txid, [sweep_input], [pay(user_script, 50000), short_marker])

        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_MISSING_MARKER, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_marker_for_other_withdrawal(self, validator, oracle, withdrawal, payout_txid, sweep_input,
                                         user_script, custody_script_hash, pay, marker_output,
                                         sweep_txid, sweep_output_index):
        """Test a marker naming another withdrawal index."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, 50000),
            marker_output(7),
        ])

        self._assert_rejected(MalformedClaimError, FailureReason.WITHDRAWAL_INDEX_MISMATCH, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    # ========================================================================
    # ECONOMIC REJECTIONS
    # ========================================================================

    def test_wrong_destination(self, validator, oracle, withdrawal, payout_txid, sweep_input,
                               stranger_script, custody_script_hash, pay, marker_output,
                               sweep_txid, sweep_output_index):
        """Test a payment to a script other than the requested one."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(stranger_script, 50000),
            marker_output(0),
        ])

        self._assert_rejected(EconomicMismatchError, FailureReason.WITHDRAWAL_WRONG_SCRIPT, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    @pytest.mark.parametrize("value", [49999, 50001, 80001])
    def test_wrong_amount(self, value, validator, oracle, withdrawal, payout_txid, sweep_input,
                          user_script, custody_script_hash, pay, marker_output,
                          sweep_txid, sweep_output_index):
        """Test the payment must equal amount minus fee exactly."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, value),
            marker_output(0),
        ])

        self._assert_rejected(EconomicMismatchError, FailureReason.WITHDRAWAL_WRONG_AMOUNT, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_change_to_stranger(self, validator, oracle, withdrawal, payout_txid, sweep_input,
                                user_script, stranger_script, custody_script_hash, pay, marker_output,
                                sweep_txid, sweep_output_index):
        """Test change must return to the custody script."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, 50000),
            pay(stranger_script, 120000),
            marker_output(0),
        ])

        self._assert_rejected(EconomicMismatchError, FailureReason.WITHDRAWAL_BAD_CHANGE, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)

    def test_outputs_exceed_input(self, validator, oracle, withdrawal, payout_txid, sweep_input,
                                  user_script, custody_script, custody_script_hash, pay, marker_output,
                                  sweep_txid, sweep_output_index):
        """Test outputs worth more than the consumed sweep UTXO."""
        oracle.add_transaction(payout_txid, [sweep_input], [
            pay(user_script, 50000),
            pay(custody_script, 150001),
            marker_output(0),
        ])

        self._assert_rejected(EconomicMismatchError, FailureReason.WITHDRAWAL_OUTPUTS_EXCEED_INPUT, validator,
                              payout_txid, 0, custody_script_hash, sweep_txid, sweep_output_index)
