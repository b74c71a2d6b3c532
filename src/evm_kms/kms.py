"""Provider selection for KMS-backed signers."""

import logging
from pathlib import Path
from typing import Any

from evm_kms.accounts.aws_kms_account import AwsKmsAccount
from evm_kms.accounts.gcp_kms_account import GcpKmsAccount
from evm_kms.base import BaseAccount
from evm_kms.config import AWS_TYPE, GCP_TYPE, KmsConfig
from evm_kms.exceptions import UnsupportedProviderError
from evm_kms.hashing import TransactionHasher

logger = logging.getLogger(__name__)


def new_signer_from_config(
    config: KmsConfig | dict[str, Any],
    client: Any | None = None,
    hasher: TransactionHasher | None = None,
) -> BaseAccount:
    """
    Create the signer for the provider named by ``config.type``.

    Args:
        config: A KmsConfig, or raw config data in the JSON file layout
        client: Pre-built KMS client to use instead of creating one
        hasher: Hashing strategy, defaults to the latest one for the configured chain

    Returns:
        BaseAccount: An AwsKmsAccount or GcpKmsAccount

    Raises:
        UnsupportedProviderError: If the type is neither ``aws`` nor ``gcp``
        ConfigError: If the selected provider section is missing or invalid
    """
    if isinstance(config, dict):
        config = KmsConfig.from_dict(config)
    else:
        config.validate_provider()

    logger.debug(f"Creating {config.type} KMS signer")
    if config.type == AWS_TYPE:
        return AwsKmsAccount(config.aws, client=client, hasher=hasher)
    if config.type == GCP_TYPE:
        return GcpKmsAccount(config.gcp, client=client, hasher=hasher)

    msg = f"KMS config type `{config.type}` not supported"
    raise UnsupportedProviderError(msg)


def new_signer_from_config_file(file_path: str | Path, client: Any | None = None) -> BaseAccount:
    """Create a signer from a JSON config file."""
    return new_signer_from_config(KmsConfig.from_json_file(file_path), client=client)


def new_signer_from_env(client: Any | None = None) -> BaseAccount:
    """Create a signer for the provider named by the ``KMS_TYPE`` environment variable."""
    return new_signer_from_config(KmsConfig.from_env(), client=client)
