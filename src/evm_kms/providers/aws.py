"""AWS KMS provider implementation."""

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from evm_kms.config import AwsConfig
from evm_kms.exceptions import InvalidPublicKey, RemoteSigningError
from evm_kms.providers.base import KmsProvider

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "ECDSA_SHA_256"
SIGNING_MESSAGE_TYPE = "DIGEST"
SECP256K1_KEY_SPEC = "ECC_SECG_P256K1"


class AmazonKMSProvider(KmsProvider):
    """AWS KMS implementation."""

    name = "aws"

    def __init__(self, config: AwsConfig, client: Any | None = None):
        self.config = config
        self.client = client or self._create_client()

    def _create_client(self) -> Any:
        """Create the boto3 KMS client, with static credentials when configured."""
        kwargs: dict[str, Any] = {}
        if self.config.region:
            kwargs["region_name"] = self.config.region
        if self.config.endpoint_url:
            kwargs["endpoint_url"] = self.config.endpoint_url
        if self.config.has_static_credentials:
            kwargs["aws_access_key_id"] = self.config.access_key_id
            kwargs["aws_secret_access_key"] = self.config.secret_access_key
            kwargs["aws_session_token"] = self.config.session_token
        try:
            return boto3.client("kms", **kwargs)
        except BotoCoreError as e:
            msg = f"Failed to create AWS KMS client: {e!s}"
            raise RemoteSigningError(msg, provider=self.name) from e

    @property
    def key_reference(self) -> str:
        return self.config.key_id

    def sign(self, digest: bytes) -> bytes:
        """
        Sign a digest with AWS KMS.

        AWS KMS only offers ECDSA_SHA_256, but with MessageType=DIGEST it signs
        the supplied 32 bytes as-is, so a keccak256 digest works unchanged.
        """
        logger.debug(f"Signing digest {digest.hex()} with AWS KMS key {self.key_reference}")
        try:
            response = self.client.sign(
                KeyId=self.key_reference,
                Message=digest,
                MessageType=SIGNING_MESSAGE_TYPE,
                SigningAlgorithm=SIGNING_ALGORITHM,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"AWS KMS signing error: {e}")
            msg = f"Failed to sign digest with AWS KMS key {self.key_reference}: {e!s}"
            raise RemoteSigningError(msg, provider=self.name) from e
        return response["Signature"]

    def get_public_key(self) -> bytes:
        """Get the DER-encoded SubjectPublicKeyInfo from AWS KMS."""
        try:
            response = self.client.get_public_key(KeyId=self.key_reference)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to get AWS KMS public key: {e}")
            msg = f"Failed to get public key from AWS KMS for KeyId={self.key_reference}: {e!s}"
            raise RemoteSigningError(msg, provider=self.name) from e

        key_spec = response.get("KeySpec")
        if key_spec is not None and key_spec != SECP256K1_KEY_SPEC:
            msg = f"AWS KMS key {self.key_reference} has key spec {key_spec}, expected {SECP256K1_KEY_SPEC}"
            raise InvalidPublicKey(msg)
        return response["PublicKey"]
