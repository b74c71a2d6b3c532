from evm_kms.accounts.aws_kms_account import AwsKmsAccount
from evm_kms.accounts.gcp_kms_account import GcpKmsAccount
from evm_kms.base import BaseAccount
from evm_kms.config import AwsConfig, GcpConfig, GcpKey, KmsConfig
from evm_kms.exceptions import (
    ConfigError,
    DecodeError,
    InvalidPublicKey,
    InvalidTransaction,
    KMSError,
    RecoveryFailed,
    RemoteSigningError,
    SignatureVerificationFailed,
    SignerMismatch,
    UnsupportedProviderError,
)
from evm_kms.hashing import EIP155Hasher, HomesteadHasher, LondonHasher, TransactionHasher, latest_hasher_for_chain
from evm_kms.kms import new_signer_from_config, new_signer_from_config_file, new_signer_from_env
from evm_kms.types.ethereum_types import CurvePoint, Signature, Transaction

__all__ = [
    "AwsConfig",
    "AwsKmsAccount",
    "BaseAccount",
    "ConfigError",
    "CurvePoint",
    "DecodeError",
    "EIP155Hasher",
    "GcpConfig",
    "GcpKey",
    "GcpKmsAccount",
    "HomesteadHasher",
    "InvalidPublicKey",
    "InvalidTransaction",
    "KMSError",
    "KmsConfig",
    "LondonHasher",
    "RecoveryFailed",
    "RemoteSigningError",
    "Signature",
    "SignatureVerificationFailed",
    "SignerMismatch",
    "Transaction",
    "TransactionHasher",
    "UnsupportedProviderError",
    "latest_hasher_for_chain",
    "new_signer_from_config",
    "new_signer_from_config_file",
    "new_signer_from_env",
]
