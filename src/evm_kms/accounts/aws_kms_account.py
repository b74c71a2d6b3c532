from typing import Any

from evm_kms.base import BaseAccount
from evm_kms.config import AwsConfig
from evm_kms.hashing import TransactionHasher
from evm_kms.providers.aws import AmazonKMSProvider
from evm_kms.public_key import decode_spki_public_key
from evm_kms.types.ethereum_types import CurvePoint


class AwsKmsAccount(BaseAccount):
    """
    Account implementation using AWS KMS.

    The key must be an asymmetric ``ECC_SECG_P256K1`` key with ``SIGN_VERIFY`` usage.
    """

    def __init__(self, config: AwsConfig, client: Any | None = None, hasher: TransactionHasher | None = None):
        super().__init__(AmazonKMSProvider(config, client=client), config, hasher=hasher)

    def _decode_public_key(self, encoded: bytes) -> CurvePoint:
        return decode_spki_public_key(encoded)

    @property
    def key_id(self) -> str:
        return self.config.key_id

    @classmethod
    def load_from_kms(
        cls,
        key_id: str,
        region: str | None = None,
        chain_id: int = 1,
        client: Any | None = None,
    ) -> "AwsKmsAccount":
        """Create an account for an AWS KMS key id, ARN or alias."""
        return cls(AwsConfig(key_id=key_id, region=region, chain_id=chain_id), client=client)
