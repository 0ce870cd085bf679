"""Script hashing and EVM address extraction."""

import hashlib
import string
from typing import Optional, Tuple

EVM_ADDRESS_LENGTH = 20
EVM_ADDRESS_HEX_LENGTH = EVM_ADDRESS_LENGTH * 2

_HEX_DIGITS = frozenset(string.hexdigits.encode("ascii"))


def script_hash(script: bytes) -> bytes:
    """Canonical 32-byte content hash used for every script comparison."""
    return hashlib.sha256(script).digest()


def scripts_match(script: bytes, expected_hash: bytes) -> bool:
    """Check a locking script against a canonical script hash."""
    return script_hash(script) == expected_hash


def extract_evm_address(payload: bytes) -> Tuple[bool, Optional[bytes]]:
    """
    Extract a 20-byte EVM address from OP_RETURN payload bytes.

    Accepts exactly 20 raw bytes, or exactly 40 ASCII hex characters in any
    case. Returns (False, None) for anything else.
    """
    if len(payload) == EVM_ADDRESS_LENGTH:
        return True, bytes(payload)

    if len(payload) == EVM_ADDRESS_HEX_LENGTH and all(b in _HEX_DIGITS for b in payload):
        return True, bytes.fromhex(payload.decode("ascii"))

    return False, None

