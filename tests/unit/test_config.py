"""Unit tests for configuration."""
import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from evm_kms.config import AwsConfig, GcpConfig, GcpKey, KmsConfig
from evm_kms.exceptions import ConfigError, UnsupportedProviderError

# Test Constants
TEST_GCP = {
    "project_id": "test-project",
    "location_id": "test-region",
    "key": {"keyring": "test-keyring", "name": "test-key"},
}


def test_gcp_config_initialization():
    """Test initialization with instance variables."""
    config = GcpConfig(**TEST_GCP)
    assert config.project_id == TEST_GCP["project_id"]
    assert config.location_id == TEST_GCP["location_id"]
    assert config.key.keyring == "test-keyring"
    assert config.key.name == "test-key"


def test_gcp_config_default_values():
    """Test default values for non-required fields."""
    with patch.dict("os.environ", {}, clear=True):
        config = GcpConfig(**TEST_GCP)
    assert config.key.version == "1"
    assert config.chain_id == 1
    assert config.credential_location is None


def test_gcp_config_key_version_path():
    config = GcpConfig(**TEST_GCP)
    assert config.key_ring_path == "projects/test-project/locations/test-region/keyRings/test-keyring"
    assert config.key_version_path == (
        "projects/test-project/locations/test-region/keyRings/test-keyring/cryptoKeys/test-key/cryptoKeyVersions/1"
    )


def test_gcp_config_aliases():
    """Test loading the JSON config file layout."""
    config = GcpConfig.model_validate(
        {
            "ProjectID": "p",
            "LocationID": "l",
            "CredentialLocation": "/tmp/creds.json",
            "Key": {"Keyring": "r", "Name": "n", "Version": 3},
            "ChainID": 137,
        }
    )
    assert config.key.version == "3"
    assert config.chain_id == 137
    assert config.credential_location == "/tmp/creds.json"


def test_gcp_config_credentials_from_env():
    with patch.dict("os.environ", {"GOOGLE_APPLICATION_CREDENTIALS": "/env/creds.json"}, clear=True):
        config = GcpConfig(**TEST_GCP)
    assert config.credential_location == "/env/creds.json"


def test_config_validation_empty():
    """Test validation with empty config."""
    with pytest.raises(ValidationError) as exc_info:
        GcpConfig()
    error_msg = str(exc_info.value)
    assert "ProjectID" in error_msg
    assert "LocationID" in error_msg
    assert "Key" in error_msg


@pytest.mark.parametrize("field", ["project_id", "location_id"])
@pytest.mark.parametrize("blank", ["", "   ", "\t"])
def test_config_blank_validation(field, blank):
    """Test that empty and whitespace strings are considered invalid."""
    env = dict(TEST_GCP, **{field: blank})
    with pytest.raises(ValueError, match="Field cannot be empty or whitespace"):
        GcpConfig(**env)


def test_gcp_key_blank_name():
    with pytest.raises(ValueError):
        GcpKey(keyring="ring", name=" ")


def test_gcp_config_update_validation():
    """Test validation after update."""
    config = GcpConfig(**TEST_GCP)
    config.project_id = "new-project"
    assert config.project_id == "new-project"

    with pytest.raises(ValueError):
        config.project_id = ""


def test_gcp_config_from_env_vars():
    """Test GcpConfig initialization from environment variables."""
    env_vars = {
        "GOOGLE_CLOUD_PROJECT": "env-project",
        "GOOGLE_CLOUD_REGION": "env-region",
        "KEY_RING": "env-keyring",
        "KEY_NAME": "env-key",
        "KEY_VERSION": "2",
        "CHAIN_ID": "0x89",
    }

    with patch.dict("os.environ", env_vars, clear=True):
        config = GcpConfig.from_env()

    assert config.project_id == "env-project"
    assert config.location_id == "env-region"
    assert config.key.keyring == "env-keyring"
    assert config.key.name == "env-key"
    assert config.key.version == "2"
    assert config.chain_id == 137


def test_gcp_config_empty_env():
    """Test that an empty environment raises ConfigError."""
    with patch.dict("os.environ", {}, clear=True):
        with pytest.raises(ConfigError) as exc_info:
            GcpConfig.from_env()
    assert "GcpConfig" in str(exc_info.value)


def test_invalid_chain_id_env():
    with patch.dict("os.environ", {"AWS_KMS_KEY_ID": "alias/key", "CHAIN_ID": "mainnet"}, clear=True):
        with pytest.raises(ConfigError, match="CHAIN_ID"):
            AwsConfig.from_env()


def test_aws_config_from_env_vars():
    env_vars = {
        "AWS_KMS_KEY_ID": "alias/env-key",
        "AWS_DEFAULT_REGION": "eu-west-1",
        "AWS_ACCESS_KEY_ID": "AKIAEXAMPLE",
        "AWS_SECRET_ACCESS_KEY": "secret",
    }

    with patch.dict("os.environ", env_vars, clear=True):
        config = AwsConfig.from_env()

    assert config.key_id == "alias/env-key"
    assert config.region == "eu-west-1"
    assert config.chain_id == 1
    assert config.has_static_credentials
    assert config.session_token is None
    assert "secret" not in repr(config)


def test_aws_config_empty_optional_values():
    config = AwsConfig(key_id=" alias/key ", region="", access_key_id="  ")
    assert config.key_id == "alias/key"
    assert config.region is None
    assert not config.has_static_credentials


def test_aws_config_blank_key_id():
    with pytest.raises(ValueError):
        AwsConfig(key_id="")


def test_kms_config_from_json_file(tmp_path):
    config_file = tmp_path / "kms.json"
    config_file.write_text(json.dumps({"type": "aws", "aws": {"KeyID": "alias/key", "Region": "us-east-1"}}))

    config = KmsConfig.from_json_file(config_file)
    assert config.type == "aws"
    assert config.aws.key_id == "alias/key"
    assert config.gcp is None


@pytest.mark.parametrize("content", ["not json", "[1, 2]", '{"type": "aws", "aws": {"Region": "x"}}'])
def test_kms_config_from_bad_json_file(tmp_path, content):
    config_file = tmp_path / "kms.json"
    config_file.write_text(content)

    with pytest.raises(ConfigError):
        KmsConfig.from_json_file(config_file)


def test_kms_config_unsupported_type():
    with pytest.raises(UnsupportedProviderError):
        KmsConfig.from_dict({"type": "azure"})


def test_kms_config_from_env():
    env_vars = {
        "KMS_TYPE": " GCP ",
        "GOOGLE_CLOUD_PROJECT": "env-project",
        "GOOGLE_CLOUD_REGION": "env-region",
        "KEY_RING": "env-keyring",
        "KEY_NAME": "env-key",
    }

    with patch.dict("os.environ", env_vars, clear=True):
        config = KmsConfig.from_env()

    assert config.type == "gcp"
    assert config.gcp.key.name == "env-key"
    assert config.aws is None
