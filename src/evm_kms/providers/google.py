import logging
from typing import Any

from evm_kms.config import GcpConfig
from evm_kms.exceptions import RemoteSigningError
from evm_kms.providers.base import KmsProvider
from evm_kms.utils import crc32c

logger = logging.getLogger(__name__)


class GoogleKMSProvider(KmsProvider):
    """Google Cloud KMS implementation."""

    name = "gcp"

    def __init__(self, config: GcpConfig, client: Any | None = None):
        self.config = config
        self.client = client or self._create_client()

    def _create_client(self) -> Any:
        """Create Google Cloud KMS client."""
        from google.cloud import kms  # noqa: PLC0415

        if self.config.credential_location:
            return kms.KeyManagementServiceClient.from_service_account_json(self.config.credential_location)
        return kms.KeyManagementServiceClient()

    @property
    def key_reference(self) -> str:
        return self.config.key_version_path

    def sign(self, digest: bytes) -> bytes:
        """Sign a digest using Google Cloud KMS, checking CRC32C integrity both ways."""
        logger.debug(f"Signing digest {digest.hex()} with Cloud KMS key {self.key_reference}")
        try:
            response = self.client.asymmetric_sign(
                request={
                    "name": self.key_reference,
                    # we send the hash to the remote KMS, not the actual data
                    "digest": {"sha256": digest},
                    "digest_crc32c": crc32c(digest),
                }
            )
        except Exception as e:
            logger.error(f"Cloud KMS signing error: {e}")
            msg = f"Failed to sign digest with {self.key_reference}: {e!s}"
            raise RemoteSigningError(msg, provider=self.name) from e

        if not response.verified_digest_crc32c:
            msg = "AsymmetricSign: request corrupted in-transit"
            raise RemoteSigningError(msg, provider=self.name)
        if crc32c(response.signature) != response.signature_crc32c:
            msg = "AsymmetricSign: response corrupted in-transit"
            raise RemoteSigningError(msg, provider=self.name)
        return response.signature

    def get_public_key(self) -> bytes:
        """Get the PEM-encoded public key from Google Cloud KMS."""
        try:
            response = self.client.get_public_key(request={"name": self.key_reference})
        except Exception as e:
            logger.error(f"Failed to get Cloud KMS public key: {e}")
            msg = f"Failed to get public key for {self.key_reference}: {e!s}"
            raise RemoteSigningError(msg, provider=self.name) from e

        pem = response.pem.encode()
        if crc32c(pem) != response.pem_crc32c:
            msg = "GetPublicKey: response corrupted in-transit"
            raise RemoteSigningError(msg, provider=self.name)
        return pem
