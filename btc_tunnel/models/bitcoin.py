"""Bitcoin transaction records as served by a data oracle."""

from typing import List, Optional
from pydantic import BaseModel, Field, validator

ZERO_TXID = "0" * 64


class SpentDetail(BaseModel):
    """Back-reference from a spent output to the input consuming it."""
    spending_txid: str = Field(..., description="Txid of the spending transaction")
    input_index: int = Field(..., ge=0, description="Index of the spending input")


class TransactionInput(BaseModel):
    """Transaction input with the value of the output it spends."""
    value: int = Field(..., ge=0, description="Sats spent by this input")
    input_txid: str = Field(..., description="Txid of the transaction being spent")
    source_index: int = Field(..., ge=0, description="Output index being spent")
    script_sig: bytes = Field(default=b"", description="Unlocking script (possibly truncated)")
    sequence: int = Field(default=0xFFFFFFFF, ge=0, le=0xFFFFFFFF, description="nSequence")
    full_script_sig_length: int = Field(default=0, ge=0, description="Length of the complete unlocking script")
    contains_full_script_sig: bool = Field(default=True, description="script_sig is complete")

    def spends(self, txid: str, index: int) -> bool:
        """Check whether this input consumes exactly the outpoint (txid, index)."""
        return self.input_txid == txid and self.source_index == index


class TransactionOutput(BaseModel):
    """Transaction output."""
    value: int = Field(..., ge=0, description="Output value in sats")
    script: bytes = Field(..., description="Locking script")
    output_address: Optional[str] = Field(default=None, description="Decoded address, when standard")
    is_op_return: bool = Field(default=False, description="Output is an OP_RETURN data carrier")
    op_return_data: bytes = Field(default=b"", description="Payload pushed by the OP_RETURN")
    is_spent: bool = Field(default=False, description="Output has been consumed")
    spent_detail: Optional[SpentDetail] = Field(default=None, description="Spending input, once spent")
    full_script_length: int = Field(default=0, ge=0, description="Length of the complete locking script")
    contains_full_script: bool = Field(default=True, description="script is complete")


class BitcoinTransaction(BaseModel):
    """
    Oracle view of a transaction.

    Large transactions may expose only a prefix of their inputs and outputs.
    ``total_inputs``/``total_outputs`` always carry the declared counts and
    anything past the exposed prefix has to be fetched individually.
    """
    txid: str = Field(..., description="Transaction id")
    block_hash: Optional[str] = Field(default=None, description="Containing block, if confirmed")
    version: int = Field(default=2)
    size: int = Field(default=0, ge=0)
    vsize: int = Field(default=0, ge=0)
    locktime: int = Field(default=0, ge=0)

    inputs: List[TransactionInput] = Field(default_factory=list, description="Exposed input prefix")
    contains_all_inputs: bool = Field(default=True, description="inputs holds every input")
    total_inputs: int = Field(..., ge=0, description="Declared input count")

    outputs: List[TransactionOutput] = Field(default_factory=list, description="Exposed output prefix")
    contains_all_outputs: bool = Field(default=True, description="outputs holds every output")
    total_outputs: int = Field(..., ge=0, description="Declared output count")

    @validator('total_inputs')
    def validate_total_inputs(cls, v, values):
        """Exposed inputs must be consistent with the declared count."""
        _check_prefix(values.get('inputs'), values.get('contains_all_inputs'), v, "inputs")
        return v

    @validator('total_outputs')
    def validate_total_outputs(cls, v, values):
        """Exposed outputs must be consistent with the declared count."""
        _check_prefix(values.get('outputs'), values.get('contains_all_outputs'), v, "outputs")
        return v

    @property
    def input_count(self) -> int:
        return self.total_inputs

    @property
    def output_count(self) -> int:
        return self.total_outputs

    @classmethod
    def from_elements(cls, txid: str, inputs: List[TransactionInput],
                      outputs: List[TransactionOutput], exposed_limit: int = 8,
                      **header) -> "BitcoinTransaction":
        """Build the truncated record an oracle serves for a full transaction."""
        return cls(
            txid=txid,
            inputs=list(inputs[:exposed_limit]),
            contains_all_inputs=len(inputs) <= exposed_limit,
            total_inputs=len(inputs),
            outputs=list(outputs[:exposed_limit]),
            contains_all_outputs=len(outputs) <= exposed_limit,
            total_outputs=len(outputs),
            **header
        )


def _check_prefix(exposed, complete, total: int, label: str) -> None:
    # Earlier field failed validation; pydantic already reports it
    if exposed is None:
        return
    if len(exposed) > total:
        raise ValueError(f"{len(exposed)} exposed {label} exceed declared total {total}")
    if complete and len(exposed) != total:
        raise ValueError(f"complete {label} list has {len(exposed)} entries, declared {total}")
