import copy
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

from eth_account.messages import _hash_eip191_message, encode_defunct  # noqa: PLC2701
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from hexbytes import HexBytes

from evm_kms.config import AwsConfig, GcpConfig
from evm_kms.exceptions import SignerMismatch
from evm_kms.hashing import TransactionHasher, TransactionLike, latest_hasher_for_chain
from evm_kms.providers.base import KmsProvider
from evm_kms.signature import decode_der_signature, to_evm_signature
from evm_kms.types.ethereum_types import CurvePoint, Signature, Transaction
from evm_kms.utils import MSG_HASH_LENGTH

logger = logging.getLogger(__name__)

SignerFn = Callable[[str, TransactionLike], HexBytes]


class BaseAccount(ABC):
    """
    Base class for KMS-backed Ethereum accounts.

    The public key is fetched from the KMS once, at construction, and cached.
    Everything after the remote call (DER decoding, low-S normalization,
    verification and recovery id search) is shared by all providers.
    """

    def __init__(
        self,
        provider: KmsProvider,
        config: AwsConfig | GcpConfig,
        hasher: TransactionHasher | None = None,
    ):
        self._provider = provider
        self._lock = threading.Lock()
        self._config = config
        self._hasher = hasher or latest_hasher_for_chain(config.chain_id)

        self._public_key = self._decode_public_key(provider.get_public_key())
        self._address = self._public_key.address
        logger.info(f"Loaded {provider.name} KMS key {provider.key_reference} with address {self._address}")

    @abstractmethod
    def _decode_public_key(self, encoded: bytes) -> CurvePoint:
        """Decode the provider-specific public key encoding."""
        pass

    @property
    def key_reference(self) -> str:
        return self._provider.key_reference

    @property
    def address(self) -> ChecksumAddress:
        """Get the Ethereum address derived from the KMS public key."""
        return self._address

    @property
    def public_key(self) -> CurvePoint:
        """Get the cached KMS public key."""
        return self._public_key

    @property
    def config(self) -> AwsConfig | GcpConfig:
        with self._lock:
            return self._config

    @property
    def chain_id(self) -> int:
        with self._lock:
            return self._config.chain_id

    @property
    def hasher(self) -> TransactionHasher:
        with self._lock:
            return self._hasher

    def sign_hash(self, digest: bytes) -> bytes:
        """
        Sign a 32-byte digest with the KMS.

        The KMS only knows SHA-256 but signs a supplied digest as-is, so a
        keccak256 digest can be sent directly.

        Args:
            digest: The 32-byte digest to sign

        Returns:
            bytes: 65-byte r || s || v signature with v in {0, 1}

        Raises:
            RemoteSigningError: If the KMS call fails
            DecodeError: If the KMS signature is malformed
            SignatureVerificationFailed: If the signature does not verify
            RecoveryFailed: If no recovery id matches the public key
        """
        if len(digest) != MSG_HASH_LENGTH:
            msg = "Invalid message hash length"
            raise ValueError(msg)
        digest = bytes(digest)

        der_signature = self._provider.sign(digest)
        raw_signature = decode_der_signature(der_signature)
        return to_evm_signature(raw_signature, self._public_key, digest)

    def sign_message(self, message: str | bytes) -> Signature:
        """
        Sign a message following EIP-191.

        Args:
            message: Message to sign (text, 0x-prefixed hex string or bytes)

        Returns:
            Signature: The v, r, s components of the signature, with v in {27, 28}

        Example:
            >>> signature = account.sign_message("Hello Ethereum!")
        """
        # Convert message to SignableMessage format
        if isinstance(message, str):
            if message.startswith("0x"):
                hash_message = encode_defunct(hexstr=message)
            else:
                hash_message = encode_defunct(text=message)
        elif isinstance(message, bytes):
            hash_message = encode_defunct(primitive=message)
        else:
            raise TypeError(f"Unsupported message type: {type(message)}")

        signature = Signature.from_bytes(self.sign_hash(_hash_eip191_message(hash_message)))
        signature.v += 27
        return signature

    def sign_transaction(self, transaction: TransactionLike, hasher: TransactionHasher | None = None) -> HexBytes:
        """
        Sign a transaction with the KMS key.

        Args:
            transaction: Unsigned transaction, a Transaction or a web3-style dict
            hasher: Hashing strategy to use instead of the account's current one

        Returns:
            HexBytes: The raw signed transaction

        Raises:
            SignerMismatch: If the transaction names another sender, or the
                signed transaction does not recover to this account
        """
        if hasher is None:
            hasher = self.hasher

        sender = transaction.from_ if isinstance(transaction, Transaction) else transaction.get("from")
        if sender is not None and to_checksum_address(sender) != self.address:
            msg = f"Transaction sender {sender} is not the KMS account {self.address}"
            raise SignerMismatch(msg)

        digest = hasher.hash(transaction)
        signature = self.sign_hash(digest)
        signed = hasher.attach_signature(transaction, signature)

        recovered = hasher.recover_sender(signed)
        if recovered != self.address:
            msg = f"Expected signer: {self.address}, got {recovered}"
            raise SignerMismatch(msg)
        return signed

    def has_signed(self, raw_transaction: bytes) -> bool:
        """Check if the given signed transaction was signed by this account."""
        return self.hasher.recover_sender(raw_transaction) == self.address

    def set_hashing_strategy(self, hasher: TransactionHasher) -> None:
        """Assign the hashing strategy used by sign_transaction and has_signed."""
        with self._lock:
            self._hasher = hasher

    def set_chain_id(self, chain_id: int) -> None:
        """Assign a chain id, replacing the hashing strategy with the chain's default one."""
        with self._lock:
            if chain_id != self._config.chain_id:
                hasher = latest_hasher_for_chain(chain_id)
                self._config = self._config.model_copy(update={"chain_id": chain_id})
                self._hasher = hasher

    def with_chain_id(self, chain_id: int) -> "BaseAccount":
        """Return an independent copy of this account bound to another chain."""
        hasher = latest_hasher_for_chain(chain_id)
        with self._lock:
            clone = copy.copy(self)
        clone._lock = threading.Lock()
        clone._config = clone._config.model_copy(update={"chain_id": chain_id})
        clone._hasher = hasher
        return clone

    def signer_fn(self) -> SignerFn:
        """Return a ``(address, transaction) -> raw signed transaction`` callable bound to this account."""

        def sign(address: str, transaction: TransactionLike) -> HexBytes:
            if address.lower() != self.address.lower():
                msg = f"Not authorized to sign for {address}"
                raise SignerMismatch(msg)
            return self.sign_transaction(transaction)

        return sign

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(address={self.address})"
