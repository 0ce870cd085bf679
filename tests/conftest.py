"""Pytest configuration and fixtures for tunnel validation tests."""

import pytest

from btc_tunnel.core.engine import ValidationEngine
from btc_tunnel.core.ledger import InMemoryLedger
from btc_tunnel.core.oracle import InMemoryOracle
from btc_tunnel.models.bitcoin import TransactionInput, TransactionOutput
from btc_tunnel.models.config import TunnelConfig
from btc_tunnel.models.ledger import FeeSchedule
from btc_tunnel.utils.opreturn import encode_withdrawal_marker, op_return_payload, OP_RETURN
from btc_tunnel.utils.script import script_hash


def make_txid(seed: int) -> str:
    return f"{seed:064x}"


# ============================================================================
# SCRIPT FIXTURES
# ============================================================================

@pytest.fixture
def custody_script():
    """P2WSH script controlled by the vault custodians."""
    return bytes.fromhex("0020" + "11" * 32)


@pytest.fixture
def custody_script_hash(custody_script):
    """Canonical hash of the custody script."""
    return script_hash(custody_script)


@pytest.fixture
def user_script():
    """P2WPKH script of a withdrawing user."""
    return bytes.fromhex("0014" + "22" * 20)


@pytest.fixture
def stranger_script():
    """Script nobody in the tunnel controls."""
    return bytes.fromhex("76a914" + "33" * 20 + "88ac")


@pytest.fixture
def evm_address():
    """Depositor EVM address."""
    return bytes.fromhex("aaffaaff00110011bbddaabbccddeeff00000000")


# ============================================================================
# TRANSACTION BUILDERS
# ============================================================================

@pytest.fixture
def txid():
    """Deterministic txid factory."""
    return make_txid


@pytest.fixture
def spend():
    """Build an input spending (txid, index) worth ``value`` sats."""
    def _spend(input_txid: str, source_index: int, value: int) -> TransactionInput:
        return TransactionInput(value=value, input_txid=input_txid, source_index=source_index)
    return _spend


@pytest.fixture
def pay():
    """Build an output paying ``value`` sats to ``script``."""
    def _pay(script: bytes, value: int) -> TransactionOutput:
        return TransactionOutput(value=value, script=script)
    return _pay


@pytest.fixture
def data_output():
    """Build an OP_RETURN output pushing ``payload``."""
    def _data_output(payload: bytes) -> TransactionOutput:
        if len(payload) <= 0x4b:
            script = bytes([OP_RETURN, len(payload)]) + payload
        else:
            script = bytes([OP_RETURN, 0x4c, len(payload)]) + payload
        return TransactionOutput(value=0, script=script, is_op_return=True, op_return_data=payload)
    return _data_output


@pytest.fixture
def marker_output():
    """Build the OP_RETURN marker a withdrawal payout carries."""
    def _marker_output(index: int, padding: bytes = b"") -> TransactionOutput:
        script = encode_withdrawal_marker(index, padding)
        return TransactionOutput(
            value=0, script=script, is_op_return=True, op_return_data=op_return_payload(script)
        )
    return _marker_output


# ============================================================================
# STORE FIXTURES
# ============================================================================

@pytest.fixture
def config():
    """Default engine configuration."""
    return TunnelConfig(min_deposit_sats=100)


@pytest.fixture
def fee_schedule():
    """Fee schedule whose minimum dominates small deposits."""
    return FeeSchedule(
        deposit_fee_bps=20,
        min_deposit_fee_sats=10000,
        withdrawal_fee_bps=30,
        min_withdrawal_fee_sats=1000,
    )


@pytest.fixture
def oracle():
    """Empty in-memory oracle exposing 8-element prefixes."""
    return InMemoryOracle()


@pytest.fixture
def ledger(fee_schedule):
    """Empty in-memory ledger."""
    return InMemoryLedger(fee_schedule)


@pytest.fixture
def engine(oracle, ledger, config):
    """Validation engine over the in-memory stores."""
    return ValidationEngine(oracle, ledger, config)


# ============================================================================
# CUSTODY STATE FIXTURES
# ============================================================================

@pytest.fixture
def sweep_txid():
    """Txid of the transaction holding the live sweep UTXO."""
    return make_txid(0x5000)


@pytest.fixture
def sweep_output_index():
    """Output index of the live sweep UTXO."""
    return 0


@pytest.fixture
def confirmed_deposits(oracle, ledger, custody_script, pay, spend):
    """
    Three confirmed-but-unswept deposits of 40000 sats each.

    Deposit ``n`` pays custody at output ``n`` and its collectable fee is
    5000 sats.
    """
    txids = []
    for n in range(3):
        deposit_txid = make_txid(0xD000 + n)
        outputs = [pay(custody_script, 1000) for _ in range(n)]
        outputs.append(pay(custody_script, 40000))
        oracle.add_transaction(deposit_txid, [spend(make_txid(0xF000 + n), 0, 50000)], outputs)
        ledger.acknowledge_deposit(deposit_txid, n, 5000)
        txids.append(deposit_txid)
    return txids
