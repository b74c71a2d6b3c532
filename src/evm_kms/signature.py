"""Conversion of KMS ECDSA signatures into EVM-compatible r || s || v signatures."""

import logging

import ecdsa
from ecdsa.der import UnexpectedDER
from ecdsa.util import sigdecode_der
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from evm_kms.exceptions import DecodeError, RecoveryFailed, SignatureVerificationFailed
from evm_kms.types.ethereum_types import CurvePoint, RawSignature
from evm_kms.utils import MSG_HASH_LENGTH, SECP256K1_HALF_N, SECP256K1_N, pad32

logger = logging.getLogger(__name__)


def decode_der_signature(der_signature: bytes) -> RawSignature:
    """
    Decode a DER ``SEQUENCE { INTEGER r, INTEGER s }`` signature.

    Both AWS KMS and Cloud KMS return signatures in this form.

    Raises:
        DecodeError: If the bytes are not a well-formed two-integer sequence
    """
    if not isinstance(der_signature, (bytes, bytearray)) or not der_signature:
        msg = f"Cannot unmarshal KMS signature: {der_signature!r}"
        raise DecodeError(msg)

    try:
        r, s = sigdecode_der(bytes(der_signature), SECP256K1_N)
    except (UnexpectedDER, IndexError) as e:
        msg = f"Cannot unmarshal KMS signature {bytes(der_signature).hex()}: {e!s}"
        raise DecodeError(msg) from e
    return RawSignature(r=r, s=s)


def normalize_s(s: int) -> int:
    """Return the low-S form of s (EIP-2)."""
    if s > SECP256K1_HALF_N:
        return SECP256K1_N - s
    return s


def verify_signature(public_key: CurvePoint, digest: bytes, r: int, s: int) -> bool:
    """Standard ECDSA verification of (r, s) over a 32-byte digest."""
    if not (0 < r < SECP256K1_N and 0 < s < SECP256K1_N):
        return False

    verifying_key = ecdsa.VerifyingKey.from_string(public_key.to_bytes(), curve=ecdsa.SECP256k1)
    try:
        return verifying_key.verify_digest(pad32(r) + pad32(s), digest)
    except ecdsa.BadSignatureError:
        return False


def _recovers_to(candidate: bytes, digest: bytes, expected: bytes) -> bool:
    try:
        recovered = keys.Signature(signature_bytes=candidate).recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError) as e:
        logger.debug(f"Public key recovery failed with v={candidate[-1]}: {e!s}")
        return False
    return recovered.to_bytes() == expected


def to_evm_signature(raw_signature: RawSignature, public_key: CurvePoint, digest: bytes) -> bytes:
    """
    Convert a KMS signature into an EVM-compatible signature of the form r || s || v.

    The returned v is the raw recovery id (0 or 1); chain-specific offsets are
    applied by the transaction hashing strategy.

    Args:
        raw_signature: (r, s) decoded from the KMS response
        public_key: Public key of the KMS key that produced the signature
        digest: The 32-byte digest that was signed

    Returns:
        bytes: 65-byte signature

    Raises:
        SignatureVerificationFailed: If (r, s) does not verify against the public key
        RecoveryFailed: If neither recovery id reproduces the public key
    """
    if len(digest) != MSG_HASH_LENGTH:
        msg = "Invalid message hash length"
        raise ValueError(msg)
    digest = bytes(digest)

    r = raw_signature.r
    # s must not exceed n/2 for the signature to be valid on EVM chains
    s = normalize_s(raw_signature.s)

    if not verify_signature(public_key, digest, r, s):
        msg = f"Failed to verify signature (r={r:#x}, s={s:#x}) for digest {digest.hex()}"
        raise SignatureVerificationFailed(msg)

    expected = public_key.to_bytes()
    rs = pad32(r) + pad32(s)

    candidate = rs + b"\x00"
    if _recovers_to(candidate, digest, expected):
        return candidate

    candidate = rs + b"\x01"
    if _recovers_to(candidate, digest, expected):
        return candidate

    msg = f"Cannot convert signature: no recovery id matches public key {public_key.address}"
    raise RecoveryFailed(msg)
