"""Utility functions and helpers."""

from btc_tunnel.utils.logging import setup_logging, get_logger
from btc_tunnel.utils.opreturn import (
    decode_withdrawal_index,
    encode_withdrawal_marker,
    op_return_payload,
    is_op_return_script,
)
from btc_tunnel.utils.script import (
    script_hash,
    scripts_match,
    extract_evm_address,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "decode_withdrawal_index",
    "encode_withdrawal_marker",
    "op_return_payload",
    "is_op_return_script",
    "script_hash",
    "scripts_match",
    "extract_evm_address",
]
