"""Bitcoin data oracle backed by a Bitcoin Core node."""

from decimal import Decimal
from typing import Any, Dict, Optional
import structlog

from btc_tunnel.core.rpc_client import BitcoinRPCClient, BitcoinRPCError
from btc_tunnel.models.bitcoin import (
    BitcoinTransaction, TransactionInput, TransactionOutput, ZERO_TXID
)
from btc_tunnel.models.config import MAX_EXPOSED_ELEMENTS
from btc_tunnel.utils.opreturn import is_op_return_script, op_return_payload

logger = structlog.get_logger(__name__)

# RPC_INVALID_ADDRESS_OR_KEY: "No such mempool or blockchain transaction"
RPC_UNKNOWN_TRANSACTION = -5

SATOSHIS_PER_BTC = Decimal('100000000')

COINBASE_SOURCE_INDEX = 0xFFFFFFFF

DEFAULT_CACHE_SIZE = 1000


def btc_to_satoshi(btc: Any) -> int:
    """Convert a BTC amount from RPC JSON to satoshis without float rounding."""
    return int(Decimal(str(btc)) * SATOSHIS_PER_BTC)


class BitcoinCoreOracle:
    """
    Oracle serving ``getrawtransaction`` results from Bitcoin Core.

    Requires a node with ``txindex`` and ``getrawtransaction`` verbosity 2
    (Bitcoin Core 25+), which reports the value spent by every input.
    Only the first ``exposed_limit`` inputs and outputs are served inline,
    matching the contract validators are written against.
    """

    def __init__(self, client: BitcoinRPCClient, exposed_limit: int = MAX_EXPOSED_ELEMENTS,
                 cache_size: int = DEFAULT_CACHE_SIZE):
        self.client = client
        self.exposed_limit = exposed_limit
        self.cache_size = cache_size
        self.logger = logger.bind(component="bitcoin_core_oracle")
        self._cache: Dict[str, Dict[str, Any]] = {}

    def transaction_by_txid(self, txid: str) -> Optional[BitcoinTransaction]:
        raw = self._fetch(txid)
        if raw is None:
            return None

        inputs = [self._parse_vin(txid, vin) for vin in raw.get('vin', [])]
        outputs = [self._parse_vout(vout) for vout in raw.get('vout', [])]

        tx = BitcoinTransaction.from_elements(
            raw['txid'], inputs, outputs,
            exposed_limit=self.exposed_limit,
            block_hash=raw.get('blockhash'),
            version=raw.get('version', 2),
            size=raw.get('size', 0),
            vsize=raw.get('vsize', 0),
            locktime=raw.get('locktime', 0),
        )

        self.logger.debug("Transaction served",
                          txid=txid,
                          inputs=tx.total_inputs,
                          outputs=tx.total_outputs)
        return tx

    def input_at(self, txid: str, index: int) -> Optional[TransactionInput]:
        raw = self._fetch(txid)
        if raw is None:
            return None

        vins = raw.get('vin', [])
        if not 0 <= index < len(vins):
            return None
        return self._parse_vin(txid, vins[index])

    def _fetch(self, txid: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the verbose transaction; None when the node does not know it.

        Only found transactions are cached, so a transaction first queried
        before the node has seen it is looked up again on the next call.
        """
        if txid in self._cache:
            return self._cache[txid]

        try:
            raw = self.client.get_raw_transaction(txid, verbosity=2)
        except BitcoinRPCError as e:
            if e.code != RPC_UNKNOWN_TRANSACTION:
                raise
            self.logger.info("Transaction not known to node", txid=txid)
            return None

        # Evict the oldest entry once the cache is full
        if len(self._cache) >= self.cache_size:
            del self._cache[next(iter(self._cache))]
        self._cache[txid] = raw
        return raw

    def _parse_vin(self, txid: str, vin: Dict[str, Any]) -> TransactionInput:
        sequence = vin.get('sequence', 0xFFFFFFFF)

        if 'coinbase' in vin:
            script_sig = bytes.fromhex(vin['coinbase'])
            return TransactionInput(
                value=0,
                input_txid=ZERO_TXID,
                source_index=COINBASE_SOURCE_INDEX,
                script_sig=script_sig,
                sequence=sequence,
                full_script_sig_length=len(script_sig),
            )

        prevout = vin.get('prevout')
        if prevout is None:
            raise BitcoinRPCError(f"Node did not report prevout for an input of {txid}; "
                                  f"getrawtransaction verbosity 2 is required")

        script_sig = bytes.fromhex(vin.get('scriptSig', {}).get('hex', ''))
        return TransactionInput(
            value=btc_to_satoshi(prevout['value']),
            input_txid=vin['txid'],
            source_index=vin['vout'],
            script_sig=script_sig,
            sequence=sequence,
            full_script_sig_length=len(script_sig),
        )

    def _parse_vout(self, vout: Dict[str, Any]) -> TransactionOutput:
        script_pub_key = vout.get('scriptPubKey', {})
        script = bytes.fromhex(script_pub_key.get('hex', ''))
        is_op_return = script_pub_key.get('type') == 'nulldata' or is_op_return_script(script)

        op_return_data = b""
        if is_op_return:
            op_return_data = op_return_payload(script) or b""

        return TransactionOutput(
            value=btc_to_satoshi(vout['value']),
            script=script,
            output_address=script_pub_key.get('address'),
            is_op_return=is_op_return,
            op_return_data=op_return_data,
            full_script_length=len(script),
        )
