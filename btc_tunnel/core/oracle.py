"""
Bitcoin data oracle interface and in-memory implementation.

Oracles may expose only a prefix of a large transaction's inputs and
outputs. Inputs past that prefix are fetched individually through
``input_at``; ``TransactionInputs`` hides the difference from validators.
"""

from typing import Dict, Iterator, List, Optional, Protocol, Tuple
import structlog

from btc_tunnel.core.exceptions import FailureReason, MalformedClaimError
from btc_tunnel.models.bitcoin import BitcoinTransaction, TransactionInput, TransactionOutput
from btc_tunnel.models.config import MAX_EXPOSED_ELEMENTS

logger = structlog.get_logger(__name__)


class BitcoinDataOracle(Protocol):
    """Protocol for Bitcoin transaction data sources."""

    def transaction_by_txid(self, txid: str) -> Optional[BitcoinTransaction]:
        """Get a transaction by id, or None when it is unknown."""
        ...

    def input_at(self, txid: str, index: int) -> Optional[TransactionInput]:
        """Get a single input of a transaction, or None when it does not exist."""
        ...


class TransactionInputs:
    """
    Lazy, paginated view over every input of a transaction.

    ``len()`` is the declared input count. Indexing serves the exposed
    prefix directly and fetches anything beyond it from the oracle.
    """

    def __init__(self, tx: BitcoinTransaction, oracle: BitcoinDataOracle):
        self.tx = tx
        self.oracle = oracle
        self._fetched: Dict[int, TransactionInput] = {}

    def __len__(self) -> int:
        return self.tx.total_inputs

    def __getitem__(self, index: int) -> TransactionInput:
        if not 0 <= index < self.tx.total_inputs:
            raise MalformedClaimError(FailureReason.INPUT_NOT_FOUND,
                                      txid=self.tx.txid, input_index=index)

        if index < len(self.tx.inputs):
            return self.tx.inputs[index]

        if index not in self._fetched:
            tx_input = self.oracle.input_at(self.tx.txid, index)
            if tx_input is None:
                raise MalformedClaimError(FailureReason.INPUT_NOT_FOUND,
                                          txid=self.tx.txid, input_index=index)
            logger.debug("Fetched input beyond exposed prefix", txid=self.tx.txid, input_index=index)
            self._fetched[index] = tx_input

        return self._fetched[index]

    def __iter__(self) -> Iterator[TransactionInput]:
        for index in range(len(self)):
            yield self[index]


class InMemoryOracle:
    """Dict-backed oracle serving truncated transaction records."""

    def __init__(self, exposed_limit: int = MAX_EXPOSED_ELEMENTS):
        self.exposed_limit = exposed_limit
        self._transactions: Dict[str, BitcoinTransaction] = {}
        self._inputs: Dict[Tuple[str, int], TransactionInput] = {}

    def add_transaction(self, txid: str, inputs: List[TransactionInput],
                        outputs: List[TransactionOutput], **header) -> BitcoinTransaction:
        """Store a complete transaction; only its prefix is served inline."""
        tx = BitcoinTransaction.from_elements(
            txid, inputs, outputs, exposed_limit=self.exposed_limit, **header
        )
        extra = {index: tx_input for index, tx_input in enumerate(inputs)}
        return self.put(tx, extra_inputs=extra)

    def put(self, tx: BitcoinTransaction,
            extra_inputs: Optional[Dict[int, TransactionInput]] = None) -> BitcoinTransaction:
        """Store a transaction record as-is, with optional out-of-prefix inputs."""
        self._transactions[tx.txid] = tx
        for index, tx_input in enumerate(tx.inputs):
            self._inputs[(tx.txid, index)] = tx_input
        for index, tx_input in (extra_inputs or {}).items():
            self._inputs[(tx.txid, index)] = tx_input
        return tx

    def transaction_by_txid(self, txid: str) -> Optional[BitcoinTransaction]:
        return self._transactions.get(txid)

    def input_at(self, txid: str, index: int) -> Optional[TransactionInput]:
        tx = self._transactions.get(txid)
        if tx is None or not 0 <= index < tx.total_inputs:
            return None
        return self._inputs.get((txid, index))

    def __contains__(self, txid: str) -> bool:
        return txid in self._transactions

    def __len__(self) -> int:
        return len(self._transactions)
