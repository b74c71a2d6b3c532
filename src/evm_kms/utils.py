"""Cryptographic utilities."""

import google_crc32c
from eth_typing import ChecksumAddress
from eth_utils import keccak, to_checksum_address

# secp256k1 field prime and curve order
SECP256K1_P = int("fffffffffffffffffffffffffffffffffffffffffffffffffffffffefffffc2f", 16)
SECP256K1_N = int("fffffffffffffffffffffffffffffffebaaedce6af48a03bbfd25e8cd0364141", 16)
SECP256K1_HALF_N = SECP256K1_N // 2
SECP256K1_B = 7

MSG_HASH_LENGTH: int = 32
SIGNATURE_LENGTH: int = 65
PUBLIC_KEY_LENGTH: int = 64


def is_on_curve(x: int, y: int) -> bool:
    """Check that (x, y) satisfies y^2 = x^3 + 7 over the secp256k1 field."""
    if not (0 <= x < SECP256K1_P and 0 <= y < SECP256K1_P):
        return False
    return (y * y - x * x * x - SECP256K1_B) % SECP256K1_P == 0


def pad32(value: int) -> bytes:
    """Big-endian encoding of value, zero-padded on the left to 32 bytes."""
    return value.to_bytes(MSG_HASH_LENGTH, "big")


def derive_address(public_key: bytes) -> ChecksumAddress:
    """
    Derive the EVM address of a public key.

    Args:
        public_key: 64-byte X || Y encoding (no 0x04 prefix)

    Returns:
        ChecksumAddress: low 20 bytes of keccak256(X || Y)
    """
    if len(public_key) != PUBLIC_KEY_LENGTH:
        msg = f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
        raise ValueError(msg)
    return to_checksum_address(keccak(public_key)[-20:])


def crc32c(data: bytes) -> int:
    """CRC32C checksum as used by Cloud KMS integrity fields."""
    return google_crc32c.value(data)
