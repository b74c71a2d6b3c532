"""
Transaction hashing strategies.

A hashing strategy decides how a transaction is hashed for signing, how a raw
r || s || v signature (v in {0, 1}) is attached to it, and how the sender is
recovered from the signed encoding. Chain-specific v offsets live here.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import rlp
from eth_account import Account
from eth_account._utils.legacy_transactions import (
    Transaction as SignedLegacyTransaction,  # noqa: PLC2701
    encode_transaction,  # noqa: PLC2701
    serializable_unsigned_transaction_from_dict,  # noqa: PLC2701
)
from eth_account._utils.signing import extract_chain_id, to_eth_v  # noqa: PLC2701
from eth_account.typed_transactions import TypedTransaction
from eth_typing import ChecksumAddress
from eth_utils import to_int
from hexbytes import HexBytes

from evm_kms.exceptions import DecodeError, InvalidTransaction
from evm_kms.types.ethereum_types import Transaction
from evm_kms.utils import SIGNATURE_LENGTH

logger = logging.getLogger(__name__)

LEGACY_TYPES = (0, "0x0", "0x00")

TransactionLike = Transaction | dict[str, Any]


def _as_dict(transaction: TransactionLike) -> dict[str, Any]:
    if isinstance(transaction, Transaction):
        return transaction.to_dict()
    tx_dict = dict(transaction)
    tx_dict.pop("from", None)
    if tx_dict.get("type") in LEGACY_TYPES:
        del tx_dict["type"]
    return tx_dict


def _is_typed(tx_dict: dict[str, Any]) -> bool:
    return "type" in tx_dict or any(
        key in tx_dict for key in ("accessList", "maxFeePerGas", "maxPriorityFeePerGas")
    )


def _split_signature(signature: bytes) -> tuple[int, int, int]:
    if len(signature) != SIGNATURE_LENGTH:
        msg = f"Invalid signature length: {len(signature)}"
        raise ValueError(msg)
    v_raw = signature[64]
    if v_raw not in (0, 1):
        msg = f"Expected a recovery id of 0 or 1, got {v_raw}"
        raise ValueError(msg)
    return v_raw, to_int(signature[:32]), to_int(signature[32:64])


def transaction_chain_id(raw_transaction: bytes) -> int | None:
    """Chain id a signed transaction commits to, None for unprotected legacy transactions."""
    txn_bytes = HexBytes(raw_transaction)
    try:
        if len(txn_bytes) > 0 and txn_bytes[0] <= 0x7F:
            return TypedTransaction.from_bytes(txn_bytes).as_dict()["chainId"]
        chain_id, _ = extract_chain_id(SignedLegacyTransaction.from_bytes(txn_bytes).v)
    except (rlp.DecodingError, rlp.DeserializationError, TypeError, ValueError) as e:
        msg = f"Cannot decode signed transaction {txn_bytes.hex()}: {e!s}"
        raise DecodeError(msg) from e
    return chain_id


class TransactionHasher(ABC):
    """Base class for transaction hashing strategies."""

    chain_id: int | None = None

    @abstractmethod
    def _prepare(self, transaction: TransactionLike) -> dict[str, Any]:
        """Return the transaction dict this strategy serializes."""
        pass

    @abstractmethod
    def _to_v(self, v_raw: int, unsigned_transaction: Any) -> int:
        """Map a raw recovery id to the v value encoded in the transaction."""
        pass

    def _serialize(self, transaction: TransactionLike) -> Any:
        tx_dict = self._prepare(transaction)
        try:
            return serializable_unsigned_transaction_from_dict(tx_dict)
        except (TypeError, ValueError) as e:
            msg = f"Cannot serialize transaction: {e!s}"
            raise InvalidTransaction(msg) from e

    def hash(self, transaction: TransactionLike) -> bytes:
        """32-byte digest to be signed."""
        return bytes(self._serialize(transaction).hash())

    def attach_signature(self, transaction: TransactionLike, signature: bytes) -> HexBytes:
        """
        Attach an r || s || v signature to a transaction.

        Args:
            transaction: The unsigned transaction
            signature: 65-byte signature with v in {0, 1}

        Returns:
            HexBytes: The raw signed transaction
        """
        unsigned_transaction = self._serialize(transaction)
        v_raw, r, s = _split_signature(signature)
        v = self._to_v(v_raw, unsigned_transaction)
        return HexBytes(encode_transaction(unsigned_transaction, vrs=(v, r, s)))

    def recover_sender(self, raw_transaction: bytes) -> ChecksumAddress:
        """
        Recover the sender of a signed transaction.

        Raises:
            DecodeError: If the transaction cannot be decoded
            InvalidTransaction: If the transaction was signed for another chain
        """
        chain_id = transaction_chain_id(raw_transaction)
        self._check_chain_id(chain_id)
        try:
            return Account.recover_transaction(raw_transaction)
        except (rlp.DecodingError, rlp.DeserializationError, TypeError, ValueError) as e:
            msg = f"Cannot get sender of the transaction: {e!s}"
            raise DecodeError(msg) from e

    def _check_chain_id(self, chain_id: int | None) -> None:
        if chain_id is not None and chain_id != self.chain_id:
            msg = f"Invalid chain id: expected {self.chain_id}, got {chain_id}"
            raise InvalidTransaction(msg)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(chain_id={self.chain_id})"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.chain_id == other.chain_id

    def __hash__(self) -> int:
        return hash((type(self), self.chain_id))


class LondonHasher(TransactionHasher):
    """Accepts legacy (EIP-155), EIP-2930 and EIP-1559 transactions."""

    def __init__(self, chain_id: int):
        if chain_id < 0:
            msg = "chain_id must be non-negative"
            raise ValueError(msg)
        self.chain_id = chain_id

    def _prepare(self, transaction: TransactionLike) -> dict[str, Any]:
        tx_dict = _as_dict(transaction)
        chain_id = tx_dict.get("chainId")
        if chain_id is None:
            tx_dict["chainId"] = self.chain_id
            return tx_dict
        if isinstance(chain_id, str):
            chain_id = to_int(hexstr=chain_id)
        if chain_id != self.chain_id:
            msg = f"Invalid chain id: expected {self.chain_id}, got {chain_id}"
            raise InvalidTransaction(msg)
        tx_dict["chainId"] = chain_id
        return tx_dict

    def _to_v(self, v_raw: int, unsigned_transaction: Any) -> int:
        if isinstance(unsigned_transaction, TypedTransaction):
            return v_raw
        return to_eth_v(v_raw, self.chain_id)


class EIP155Hasher(LondonHasher):
    """Legacy transactions with EIP-155 replay protection."""

    def _prepare(self, transaction: TransactionLike) -> dict[str, Any]:
        tx_dict = super()._prepare(transaction)
        if _is_typed(tx_dict):
            msg = f"{self.__class__.__name__} only supports legacy transactions"
            raise InvalidTransaction(msg)
        return tx_dict


class HomesteadHasher(TransactionHasher):
    """Legacy transactions without replay protection (v = 27 or 28)."""

    def _prepare(self, transaction: TransactionLike) -> dict[str, Any]:
        tx_dict = _as_dict(transaction)
        if _is_typed(tx_dict):
            msg = f"{self.__class__.__name__} only supports legacy transactions"
            raise InvalidTransaction(msg)
        tx_dict["chainId"] = None
        return tx_dict

    def _to_v(self, v_raw: int, unsigned_transaction: Any) -> int:
        return to_eth_v(v_raw)

    def _check_chain_id(self, chain_id: int | None) -> None:
        if chain_id is not None:
            msg = f"{self.__class__.__name__} cannot recover replay-protected transactions"
            raise InvalidTransaction(msg)


def latest_hasher_for_chain(chain_id: int) -> TransactionHasher:
    """Canonical hashing strategy for a chain."""
    return LondonHasher(chain_id)
