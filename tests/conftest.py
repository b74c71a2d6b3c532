from typing import Any
from unittest.mock import MagicMock

import ecdsa
import pytest
from ecdsa.util import sigencode_der
from eth_account import Account
from eth_typing import ChecksumAddress
from eth_utils import keccak

from evm_kms.accounts.aws_kms_account import AwsKmsAccount
from evm_kms.accounts.gcp_kms_account import GcpKmsAccount
from evm_kms.config import AwsConfig, GcpConfig, GcpKey
from evm_kms.types.ethereum_types import CurvePoint, Transaction
from evm_kms.utils import SECP256K1_N, crc32c

# Test Constants
TEST_PRIVATE_KEY = bytes.fromhex("4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318")
TEST_RECIPIENT = "0xa5D3241A1591061F2a4bB69CA0215F66520E67cf"
TEST_CHAIN_ID = 31337
TEST_AWS_KEY_ID = "arn:aws:kms:us-east-1:123456789012:key/1234abcd-12ab-34cd-56ef-1234567890ab"
TEST_KEY_PATH = "projects/test-project/locations/global/keyRings/test-ring/cryptoKeys/test-key/cryptoKeyVersions/1"
TEST_MESSAGE = "Hello Ethereum!"


def sign_der(signing_key: ecdsa.SigningKey, digest: bytes, high_s: bool = False) -> bytes:
    """DER signature over a digest, optionally in the high-S form a KMS may return."""
    r, s = signing_key.sign_digest_deterministic(digest, sigencode=lambda r, s, order: (r, s))
    low_s = min(s, SECP256K1_N - s)
    return sigencode_der(r, SECP256K1_N - low_s if high_s else low_s, SECP256K1_N)


@pytest.fixture
def signing_key() -> ecdsa.SigningKey:
    """secp256k1 key standing in for the key held by the KMS."""
    return ecdsa.SigningKey.from_string(TEST_PRIVATE_KEY, curve=ecdsa.SECP256k1)


@pytest.fixture
def kms_sign(signing_key: ecdsa.SigningKey):
    """Sign a digest the way a KMS does, returning a DER signature."""

    def sign(digest: bytes, high_s: bool = False) -> bytes:
        return sign_der(signing_key, digest, high_s=high_s)

    return sign


@pytest.fixture
def curve_point(signing_key: ecdsa.SigningKey) -> CurvePoint:
    return CurvePoint.from_bytes(signing_key.get_verifying_key().to_string())


@pytest.fixture
def spki_public_key(signing_key: ecdsa.SigningKey) -> bytes:
    """DER SubjectPublicKeyInfo, as returned by AWS KMS."""
    return signing_key.get_verifying_key().to_der()


@pytest.fixture
def pem_public_key(signing_key: ecdsa.SigningKey) -> str:
    """PEM public key, as returned by Cloud KMS."""
    return signing_key.get_verifying_key().to_pem().decode()


@pytest.fixture
def test_address() -> ChecksumAddress:
    return Account.from_key(TEST_PRIVATE_KEY).address


@pytest.fixture
def test_digest() -> bytes:
    return keccak(text=TEST_MESSAGE)


@pytest.fixture
def transaction_dict(test_address: ChecksumAddress) -> dict[str, Any]:
    """Create a test legacy transaction dictionary."""
    return {
        "from": test_address,
        "chainId": TEST_CHAIN_ID,
        "nonce": 3,
        "value": 10**12,
        "data": "0x00",
        "to": TEST_RECIPIENT,
        "gas": 1000000,
        "gasPrice": 300000000000,
    }


@pytest.fixture
def dynamic_fee_transaction_dict() -> dict[str, Any]:
    """Create a test EIP-1559 transaction dictionary."""
    return {
        "type": 2,
        "chainId": TEST_CHAIN_ID,
        "nonce": 0,
        "value": 1,
        "data": "0x",
        "to": TEST_RECIPIENT,
        "gas": 21000,
        "maxFeePerGas": 2 * 10**9,
        "maxPriorityFeePerGas": 10**9,
    }


@pytest.fixture
def test_transaction(transaction_dict: dict[str, Any]) -> Transaction:
    return Transaction.from_dict(transaction_dict)


@pytest.fixture
def mock_aws_client(signing_key: ecdsa.SigningKey, spki_public_key: bytes) -> MagicMock:
    """Create a mock boto3 KMS client backed by a local key."""
    mock_client = MagicMock()
    mock_client.get_public_key.return_value = {
        "KeyId": TEST_AWS_KEY_ID,
        "KeySpec": "ECC_SECG_P256K1",
        "KeyUsage": "SIGN_VERIFY",
        "PublicKey": spki_public_key,
    }

    def sign(KeyId, Message, MessageType, SigningAlgorithm):  # noqa: N803
        return {
            "KeyId": KeyId,
            "SigningAlgorithm": SigningAlgorithm,
            "Signature": sign_der(signing_key, Message, high_s=True),
        }

    mock_client.sign.side_effect = sign
    return mock_client


@pytest.fixture
def mock_kms_client(signing_key: ecdsa.SigningKey, pem_public_key: str) -> MagicMock:
    """Create a mock Cloud KMS client backed by a local key."""
    mock_client = MagicMock()

    # Mock the get_public_key response
    mock_public_key_response = MagicMock()
    mock_public_key_response.pem = pem_public_key
    mock_public_key_response.pem_crc32c = crc32c(pem_public_key.encode())
    mock_client.get_public_key.return_value = mock_public_key_response

    def asymmetric_sign(request):
        signature = sign_der(signing_key, request["digest"]["sha256"])
        response = MagicMock()
        response.signature = signature
        response.signature_crc32c = crc32c(signature)
        response.verified_digest_crc32c = request["digest_crc32c"] == crc32c(request["digest"]["sha256"])
        return response

    mock_client.asymmetric_sign.side_effect = asymmetric_sign
    return mock_client


@pytest.fixture
def aws_config() -> AwsConfig:
    return AwsConfig(key_id=TEST_AWS_KEY_ID, region="us-east-1", chain_id=TEST_CHAIN_ID)


@pytest.fixture
def gcp_config() -> GcpConfig:
    return GcpConfig(
        project_id="test-project",
        location_id="global",
        key=GcpKey(keyring="test-ring", name="test-key", version="1"),
        chain_id=TEST_CHAIN_ID,
    )


@pytest.fixture
def aws_kms_account(aws_config: AwsConfig, mock_aws_client: MagicMock) -> AwsKmsAccount:
    """Create an AWS KMS account with mocked client."""
    return AwsKmsAccount(aws_config, client=mock_aws_client)


@pytest.fixture
def gcp_kms_account(gcp_config: GcpConfig, mock_kms_client: MagicMock) -> GcpKmsAccount:
    """Create a GCP KMS account with mocked client."""
    return GcpKmsAccount(gcp_config, client=mock_kms_client)
