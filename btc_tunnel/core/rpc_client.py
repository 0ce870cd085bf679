"""Bitcoin Core RPC client for transaction data access."""

import json
import time
from typing import Any, Dict, List, Optional
import requests
import structlog

from btc_tunnel.models.config import TunnelConfig

logger = structlog.get_logger(__name__)


class BitcoinRPCError(Exception):
    """Bitcoin RPC specific error."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class BitcoinRPCClient:
    """Bitcoin Core JSON-RPC client with retry logic and error handling."""

    def __init__(self, config: TunnelConfig):
        self.config = config
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'User-Agent': 'btc-tunnel/1.0.0'
        })

        self.rpc_url = config.bitcoin_rpc_url
        self.auth = None
        if config.bitcoin_rpc_user:
            self.auth = (config.bitcoin_rpc_user, config.bitcoin_rpc_password or "")

        logger.info("Bitcoin RPC client initialized",
                    host=config.bitcoin_rpc_host,
                    port=config.bitcoin_rpc_port)

    def _make_request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make RPC request with retry logic."""
        if params is None:
            params = []

        payload = {
            "jsonrpc": "1.0",
            "id": int(time.time() * 1000),
            "method": method,
            "params": params
        }

        for attempt in range(self.config.rpc_retry_attempts):
            try:
                response = self.session.post(
                    self.rpc_url,
                    json=payload,
                    auth=self.auth,
                    timeout=self.config.bitcoin_rpc_timeout
                )

                # Core answers RPC errors with HTTP 500 and a JSON error body
                data = response.json()
                if not isinstance(data, dict):
                    response.raise_for_status()
                    raise BitcoinRPCError(f"Malformed RPC response for {method}: {data!r}")

                if data.get('error') is not None:
                    error_msg = data['error'].get('message', 'Unknown RPC error')
                    error_code = data['error'].get('code', -1)
                    raise BitcoinRPCError(f"RPC Error {error_code}: {error_msg}", code=error_code)

                response.raise_for_status()
                return data.get('result')

            except (requests.RequestException, json.JSONDecodeError) as e:
                logger.warning("RPC request failed",
                               method=method,
                               attempt=attempt + 1,
                               error=str(e))

                if attempt == self.config.rpc_retry_attempts - 1:
                    raise BitcoinRPCError(
                        f"RPC request failed after {self.config.rpc_retry_attempts} attempts: {e}"
                    ) from e

                time.sleep(self.config.rpc_retry_delay)

        raise BitcoinRPCError("Unexpected error in RPC request")

    def get_blockchain_info(self) -> Dict[str, Any]:
        """Get blockchain information."""
        return self._make_request("getblockchaininfo")

    def get_raw_transaction(self, txid: str, verbosity: int = 2) -> Dict[str, Any]:
        """
        Get decoded transaction data.

        Args:
            txid: Transaction id
            verbosity: 1=decoded, 2=decoded with prevout of every input
        """
        return self._make_request("getrawtransaction", [txid, verbosity])

    def test_connection(self) -> bool:
        """Test RPC connection."""
        try:
            info = self.get_blockchain_info()
        except BitcoinRPCError as e:
            logger.error("RPC connection failed", error=str(e))
            return False

        logger.info("RPC connection successful",
                    chain=info.get('chain'),
                    blocks=info.get('blocks'))
        return True

    def close(self):
        """Close the RPC session."""
        self.session.close()
        logger.info("RPC client session closed")
