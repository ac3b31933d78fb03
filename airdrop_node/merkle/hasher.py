"""Contract-compatible hashing for airdrop leaves and Merkle tree nodes."""
from __future__ import annotations

from eth_abi import encode
from eth_utils import keccak

HASH_SIZE = 32


def leaf_hash(fid: int, base_amount: int) -> bytes:
    """keccak256(abi.encode(uint256 fid, uint256 base_amount)).

    Both fields are left-padded to 32 bytes, exactly as the verifying
    contract encodes them.
    """
    if fid < 0 or base_amount < 0:
        raise ValueError("fid and base_amount must be unsigned")
    return keccak(encode(["uint256", "uint256"], [fid, base_amount]))


def hash_pair(left: bytes, right: bytes) -> bytes:
    """Sorted-pair node hash: keccak256(min(a, b) ++ max(a, b))."""
    if right < left:
        left, right = right, left
    return keccak(left + right)


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def from_hex(value: str) -> bytes:
    raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if len(raw) != HASH_SIZE:
        raise ValueError(f"expected a {HASH_SIZE}-byte hash, got {len(raw)} bytes")
    return raw
