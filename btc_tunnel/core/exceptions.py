"""Failure taxonomy for rejected tunnel claims."""

from enum import Enum
from typing import Any, Dict


class FailureReason(str, Enum):
    """Auditable reason attached to every rejected claim."""

    # Deposits
    DEPOSIT_ALREADY_CONFIRMED = "txid has already been confirmed"
    DEPOSIT_OUTPUT_INDEX_TOO_HIGH = "output index must be one of the first 8 outputs"
    DEPOSIT_OUTPUT_NOT_ACCESSIBLE = (
        "claimed outputIndex is greater than the number of outputs accessible in transaction"
    )
    DEPOSIT_NO_EVM_ADDRESS = "could not extract an EVM address to credit from deposit"
    DEPOSIT_WRONG_SCRIPT = "claimed deposit output script must match vault holding pen script"
    DEPOSIT_BELOW_MINIMUM = "deposit must meet the minimum deposit size threshold"
    DEPOSIT_FEE_EXCEEDS_VALUE = "the amount of sats deposited must exceed the fees charged by the vault"

    # Withdrawals
    WITHDRAWAL_INPUT_COUNT = "withdrawal transaction must only have one input"
    WITHDRAWAL_WRONG_SWEEP_INPUT = "withdrawal transaction must consume the current sweep utxo"
    WITHDRAWAL_OUTPUT_COUNT = "withdrawal transaction must have at least two outputs and no more than three"
    WITHDRAWAL_NOT_FOUND = "withdrawal does not exist"
    WITHDRAWAL_WRONG_SCRIPT = "script of first output of withdrawal tx must match script of requested withdrawal"
    WITHDRAWAL_WRONG_AMOUNT = "amount of first withdrawal tx output must exactly match expected net after fees"
    WITHDRAWAL_BAD_CHANGE = (
        "withdrawal transaction has 2nd output but it does not return change to this vault's BTC address"
    )
    WITHDRAWAL_MISSING_MARKER = "withdrawal transaction must carry an OP_RETURN with the withdrawal index"
    WITHDRAWAL_INDEX_MISMATCH = "withdrawal index in OP_RETURN does not match the claimed withdrawal"
    WITHDRAWAL_OUTPUTS_EXCEED_INPUT = "withdrawal outputs spend more than the consumed sweep utxo"

    # Sweeps
    SWEEP_ZERO_TXID = "sweep txid cannot be zero"
    SWEEP_UNKNOWN = "sweep transaction is not known"
    SWEEP_INPUT_COUNT = "a sweep transaction must have at least two inputs and no more than eight"
    SWEEP_OUTPUT_COUNT = "a sweep transaction must have a single output"
    SWEEP_WRONG_SWEEP_INPUT = "first input of sweep must consume old sweep UTXO"
    SWEEP_WRONG_SCRIPT = "sweep transaction must output funds to this vault's BTC custodianship address"
    SWEEP_DEPOSIT_NOT_UNSWEPT = "deposit fee must be greater than zero, either not acknowledged or already swept"
    SWEEP_DEPOSIT_WRONG_INDEX = (
        "sweep must spend the input using an input index that matches the output index of the confirmed deposit"
    )
    SWEEP_OUTPUT_BELOW_OLD_SWEEP = "sweep output is smaller than the old sweep utxo it consumes"

    # Spend-graph accusations
    TRANSACTION_UNKNOWN = "transaction is not known"
    INPUT_NOT_FOUND = "input does not exist in transaction"
    ACCUSED_INPUT_NOT_UNSWEPT_DEPOSIT = "claimed input is not a confirmed but unswept deposit"
    ACCUSED_INPUT_WRONG_INDEX = "claimed input spends the wrong output of a confirmed but unswept deposit"

    # Codec
    MALFORMED_OP_RETURN = "script is not a decodable OP_RETURN withdrawal marker"


class TunnelValidationError(Exception):
    """Base error for a claim the validators refuse to accept."""

    def __init__(self, reason: FailureReason, **context: Any):
        self.reason = reason
        self.context: Dict[str, Any] = context
        super().__init__(reason.value)


class MalformedClaimError(TunnelValidationError):
    """Claim references missing records or violates a structural bound."""
    pass


class EconomicMismatchError(TunnelValidationError):
    """Amounts, fees or scripts of an otherwise well-formed claim do not reconcile."""
    pass
