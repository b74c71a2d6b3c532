from typing import Any

from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from evm_kms.utils import (
    MSG_HASH_LENGTH,
    PUBLIC_KEY_LENGTH,
    SIGNATURE_LENGTH,
    derive_address,
    is_on_curve,
    pad32,
)


class CurvePoint(BaseModel):
    """A secp256k1 public key point."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(..., ge=0, description="X coordinate")
    y: int = Field(..., ge=0, description="Y coordinate")

    @model_validator(mode="after")
    def validate_on_curve(self) -> "CurvePoint":
        if not is_on_curve(self.x, self.y):
            msg = "Point is not on the secp256k1 curve"
            raise ValueError(msg)
        return self

    def to_bytes(self) -> bytes:
        """64-byte X || Y encoding."""
        return pad32(self.x) + pad32(self.y)

    def to_uncompressed(self) -> bytes:
        """SEC1 uncompressed encoding (0x04 || X || Y)."""
        return b"\x04" + self.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "CurvePoint":
        if len(data) != PUBLIC_KEY_LENGTH:
            msg = f"Expected {PUBLIC_KEY_LENGTH} bytes, got {len(data)}"
            raise ValueError(msg)
        return cls(x=int.from_bytes(data[:32], "big"), y=int.from_bytes(data[32:], "big"))

    @property
    def address(self) -> ChecksumAddress:
        """EVM address of this public key."""
        return derive_address(self.to_bytes())


class RawSignature(BaseModel):
    """(r, s) pair decoded from a KMS signature, before normalization."""

    model_config = ConfigDict(frozen=True)

    r: int = Field(..., ge=0)
    s: int = Field(..., ge=0)


class Signature(BaseModel):
    """Represents an Ethereum signature with v, r, s components."""

    v: int = Field(..., description="Recovery identifier")
    r: bytes = Field(..., description="R component of signature")
    s: bytes = Field(..., description="S component of signature")

    @field_validator("r", "s")
    @classmethod
    def validate_length(cls, v: bytes) -> bytes:
        if len(v) != MSG_HASH_LENGTH:
            msg = f"Length must be 32 bytes, got {len(v)} bytes"
            raise ValueError(msg)
        return v

    @field_validator("v")
    @classmethod
    def validate_v(cls, v: int) -> int:
        if not 0 <= v <= 255:
            msg = "v must fit in a single byte"
            raise ValueError(msg)
        return v

    def to_bytes(self) -> bytes:
        """65-byte r || s || v encoding."""
        return self.r + self.s + bytes([self.v])

    def to_hex(self) -> str:
        """Convert signature to hex string."""
        return "0x" + self.to_bytes().hex()

    @classmethod
    def from_bytes(cls, sig_bytes: bytes) -> "Signature":
        if len(sig_bytes) != SIGNATURE_LENGTH:
            msg = f"Invalid signature length: {len(sig_bytes)}"
            raise ValueError(msg)
        return cls(v=sig_bytes[64], r=sig_bytes[0:32], s=sig_bytes[32:64])


class Transaction(BaseModel):
    """
    Represents an unsigned Ethereum transaction.

    Setting ``max_fee_per_gas`` and ``max_priority_fee_per_gas`` produces an
    EIP-1559 transaction; otherwise ``gas_price`` is required and an
    ``access_list`` turns it into an EIP-2930 transaction.
    """

    model_config = ConfigDict(populate_by_name=True)

    chain_id: int | None = Field(None, ge=0, description="Chain ID")
    nonce: int = Field(..., ge=0, description="Transaction nonce")
    gas_limit: int = Field(..., gt=0, description="Gas limit")
    gas_price: int | None = Field(None, gt=0, description="Gas price in Wei")
    max_fee_per_gas: int | None = Field(None, gt=0, description="EIP-1559 fee cap in Wei")
    max_priority_fee_per_gas: int | None = Field(None, ge=0, description="EIP-1559 tip in Wei")
    to: str | None = Field(None, description="Recipient address, None for contract creation")
    value: int = Field(0, ge=0, description="Transaction value in Wei")
    data: str = Field("0x", description="Transaction data")
    access_list: list[dict[str, Any]] | None = Field(None, description="EIP-2930 access list")
    from_: str | None = Field(None, alias="from", description="Sender address")

    @field_validator("to", "from_")
    @classmethod
    def validate_address(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not is_address(v):
            msg = "Invalid Ethereum address"
            raise ValueError(msg)
        return to_checksum_address(v)

    @field_validator("data")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        if not v.startswith("0x"):
            v = "0x" + v
        try:
            bytes.fromhex(v[2:])
        except ValueError as error:
            msg = "Invalid hex string"
            raise ValueError(msg) from error
        return v

    @model_validator(mode="after")
    def validate_fees(self) -> "Transaction":
        dynamic = self.max_fee_per_gas is not None or self.max_priority_fee_per_gas is not None
        if dynamic:
            if self.gas_price is not None:
                msg = "gas_price cannot be combined with EIP-1559 fee fields"
                raise ValueError(msg)
            if self.max_fee_per_gas is None or self.max_priority_fee_per_gas is None:
                msg = "max_fee_per_gas and max_priority_fee_per_gas must be set together"
                raise ValueError(msg)
        elif self.gas_price is None:
            msg = "gas_price is required for legacy and access list transactions"
            raise ValueError(msg)
        return self

    @property
    def is_dynamic_fee(self) -> bool:
        return self.max_fee_per_gas is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert transaction to the dictionary format eth_account serializes."""
        tx_dict: dict[str, Any] = {
            "nonce": self.nonce,
            "gas": self.gas_limit,
            "value": self.value,
            "data": self.data,
        }
        if self.to is not None:
            tx_dict["to"] = self.to
        if self.chain_id is not None:
            tx_dict["chainId"] = self.chain_id
        if self.is_dynamic_fee:
            tx_dict["maxFeePerGas"] = self.max_fee_per_gas
            tx_dict["maxPriorityFeePerGas"] = self.max_priority_fee_per_gas
            tx_dict["accessList"] = self.access_list or []
        else:
            tx_dict["gasPrice"] = self.gas_price
            if self.access_list is not None:
                tx_dict["accessList"] = self.access_list
        return tx_dict

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        """
        Create transaction from dictionary.

        Args:
            data: Transaction data dictionary, either web3-style camelCase keys
                or this model's field names.

        Returns:
            Transaction: A new transaction instance

        Raises:
            ValueError: If required fields are missing or invalid
        """
        tx_data = data.copy()

        # Handle alternative field names and convert to our format
        renames = {
            "from": "from_",
            "gas": "gas_limit",
            "gasPrice": "gas_price",
            "chainId": "chain_id",
            "maxFeePerGas": "max_fee_per_gas",
            "maxPriorityFeePerGas": "max_priority_fee_per_gas",
            "accessList": "access_list",
            "input": "data",
        }
        for source, target in renames.items():
            if source in tx_data:
                tx_data[target] = tx_data.pop(source)
        tx_data.pop("type", None)

        return cls(**tx_data)
