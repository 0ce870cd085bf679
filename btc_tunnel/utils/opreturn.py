"""OP_RETURN payload codec for withdrawal index markers."""

from typing import Optional

from btc_tunnel.core.exceptions import FailureReason, MalformedClaimError

OP_RETURN = 0x6a
OP_PUSHDATA1 = 0x4c

# Largest payload pushed with a single push-N opcode
MAX_DIRECT_PUSH = 0x4b
MAX_PUSHDATA1 = 0xff

WITHDRAWAL_INDEX_BYTES = 4
MAX_WITHDRAWAL_INDEX = 0xFFFFFFFF


def is_op_return_script(script: bytes) -> bool:
    """Check whether a locking script starts with OP_RETURN."""
    return len(script) > 0 and script[0] == OP_RETURN


def op_return_payload(script: bytes) -> Optional[bytes]:
    """
    Extract the data pushed by an OP_RETURN script.

    Supports the push-N (payload at byte 2) and OP_PUSHDATA1 (payload at
    byte 3) forms. Returns None when the script is not an OP_RETURN, uses
    another push form, or is shorter than the length it declares.
    """
    if len(script) < 2 or script[0] != OP_RETURN:
        return None

    push = script[1]
    if push <= MAX_DIRECT_PUSH:
        start, length = 2, push
    elif push == OP_PUSHDATA1 and len(script) >= 3:
        start, length = 3, script[2]
    else:
        return None

    if len(script) < start + length:
        return None
    return bytes(script[start:start + length])


def decode_withdrawal_index(script: bytes) -> int:
    """
    Decode the withdrawal index carried by an OP_RETURN marker.

    The index is the big-endian value of the first four payload bytes;
    longer payloads carry trailing bytes which are ignored.
    """
    payload = op_return_payload(script)
    if payload is None or len(payload) < WITHDRAWAL_INDEX_BYTES:
        raise MalformedClaimError(FailureReason.MALFORMED_OP_RETURN, script=script.hex())
    return int.from_bytes(payload[:WITHDRAWAL_INDEX_BYTES], "big")


def encode_withdrawal_marker(index: int, padding: bytes = b"") -> bytes:
    """Build the OP_RETURN script a withdrawal payout carries for ``index``."""
    if not 0 <= index <= MAX_WITHDRAWAL_INDEX:
        raise ValueError(f"Withdrawal index out of range: {index}")

    payload = index.to_bytes(WITHDRAWAL_INDEX_BYTES, "big") + padding
    if len(payload) <= MAX_DIRECT_PUSH:
        return bytes([OP_RETURN, len(payload)]) + payload
    if len(payload) <= MAX_PUSHDATA1:
        return bytes([OP_RETURN, OP_PUSHDATA1, len(payload)]) + payload
    raise ValueError(f"OP_RETURN payload too large: {len(payload)} bytes")
