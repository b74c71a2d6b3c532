"""Decoders for the public key encodings returned by the supported KMS services."""

import binascii
import logging

from ecdsa import der

from evm_kms.exceptions import DecodeError, InvalidPublicKey
from evm_kms.types.ethereum_types import CurvePoint
from evm_kms.utils import PUBLIC_KEY_LENGTH, is_on_curve

logger = logging.getLogger(__name__)

# id-ecPublicKey and secp256k1 object identifiers
EC_PUBLIC_KEY_OID = (1, 2, 840, 10045, 2, 1)
SECP256K1_OID = (1, 3, 132, 0, 10)

PEM_HEADER = "-----BEGIN PUBLIC KEY-----"
PEM_FOOTER = "-----END PUBLIC KEY-----"


def point_from_key_blob(blob: bytes) -> CurvePoint:
    """
    Build a curve point from the trailing 64 bytes (X || Y) of a key blob.

    Raises:
        DecodeError: If the blob is shorter than 64 bytes
        InvalidPublicKey: If (X, Y) is not on secp256k1
    """
    if len(blob) < PUBLIC_KEY_LENGTH:
        msg = f"Public key blob too short: {len(blob)} bytes"
        raise DecodeError(msg)

    raw = blob[-PUBLIC_KEY_LENGTH:]
    x = int.from_bytes(raw[:32], "big")
    y = int.from_bytes(raw[32:], "big")
    if not is_on_curve(x, y):
        msg = f"Invalid secp256k1 public key {raw.hex()}"
        raise InvalidPublicKey(msg)
    return CurvePoint(x=x, y=y)


def decode_spki_public_key(spki: bytes) -> CurvePoint:
    """
    Decode a DER SubjectPublicKeyInfo, as returned by AWS KMS GetPublicKey.

    Args:
        spki: DER-encoded SubjectPublicKeyInfo

    Returns:
        CurvePoint: The decoded public key

    Raises:
        DecodeError: If the ASN.1 structure is malformed
        InvalidPublicKey: If the key is not a secp256k1 EC key or the point is off-curve
    """
    if not isinstance(spki, (bytes, bytearray)):
        msg = f"Unsupported public key type: {type(spki)}"
        raise DecodeError(msg)

    try:
        body, trailing = der.remove_sequence(bytes(spki))
        if trailing:
            msg = f"Trailing data after SubjectPublicKeyInfo: {trailing.hex()}"
            raise DecodeError(msg)
        algorithm, rest = der.remove_sequence(body)
        algorithm_oid, parameters = der.remove_object(algorithm)
        curve_oid, _ = der.remove_object(parameters)
        key_bytes, trailing = der.remove_bitstring(rest, expect_unused=0)
    except (der.UnexpectedDER, IndexError) as e:
        msg = f"Cannot decode public key {bytes(spki).hex()}: {e!s}"
        raise DecodeError(msg) from e

    if trailing:
        msg = "Trailing data after public key bit string"
        raise DecodeError(msg)
    if algorithm_oid != EC_PUBLIC_KEY_OID or curve_oid != SECP256K1_OID:
        msg = f"Expected a secp256k1 EC key, got algorithm {algorithm_oid} with parameters {curve_oid}"
        raise InvalidPublicKey(msg)

    return point_from_key_blob(key_bytes)


def decode_pem_public_key(pem: str | bytes) -> CurvePoint:
    """
    Decode a PEM-wrapped public key, as returned by Cloud KMS GetPublicKey.

    The last 64 bytes of the decoded block are the X and Y coordinates.
    """
    if isinstance(pem, (bytes, bytearray)):
        try:
            pem = bytes(pem).decode("ascii")
        except UnicodeDecodeError as e:
            msg = "Public key PEM is not ASCII"
            raise DecodeError(msg) from e

    pem = pem.strip()
    if not pem.startswith(PEM_HEADER) or not pem.endswith(PEM_FOOTER):
        msg = f"Cannot decode public key {pem!r}"
        raise DecodeError(msg)

    try:
        block = der.unpem(pem)
    except (binascii.Error, ValueError) as e:
        msg = f"Invalid base64 in public key PEM: {e!s}"
        raise DecodeError(msg) from e

    logger.debug(f"Decoded {len(block)}-byte public key block from PEM")
    return point_from_key_blob(block)
