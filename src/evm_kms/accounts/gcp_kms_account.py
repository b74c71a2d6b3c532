from typing import Any

from evm_kms.base import BaseAccount
from evm_kms.config import GcpConfig, GcpKey
from evm_kms.hashing import TransactionHasher
from evm_kms.providers.google import GoogleKMSProvider
from evm_kms.public_key import decode_pem_public_key
from evm_kms.types.ethereum_types import CurvePoint


class GcpKmsAccount(BaseAccount):
    """Account implementation using Google Cloud KMS."""

    def __init__(self, config: GcpConfig, client: Any | None = None, hasher: TransactionHasher | None = None):
        super().__init__(GoogleKMSProvider(config, client=client), config, hasher=hasher)

    def _decode_public_key(self, encoded: bytes) -> CurvePoint:
        return decode_pem_public_key(encoded)

    @property
    def key_path(self) -> str:
        return self.config.key_version_path

    @classmethod
    def load_from_kms(
        cls,
        project_id: str,
        location_id: str,
        key_ring_id: str,
        key_id: str,
        key_version: str = "1",
        chain_id: int = 1,
        credential_location: str | None = None,
        client: Any | None = None,
    ) -> "GcpKmsAccount":
        """
        Create an account for a Cloud KMS key version.

        Example:
            >>> account = GcpKmsAccount.load_from_kms("my-project", "us-east1", "my-ring", "my-key")
            >>> account.address
        """
        config = GcpConfig(
            project_id=project_id,
            location_id=location_id,
            credential_location=credential_location,
            key=GcpKey(keyring=key_ring_id, name=key_id, version=key_version),
            chain_id=chain_id,
        )
        return cls(config, client=client)
