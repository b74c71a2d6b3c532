"""Configuration settings for the KMS signers."""

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from evm_kms.exceptions import ConfigError, UnsupportedProviderError

# Provider discriminators
AWS_TYPE = "aws"
GCP_TYPE = "gcp"
SUPPORTED_TYPES = (AWS_TYPE, GCP_TYPE)

DEFAULT_CHAIN_ID = 1
DEFAULT_KEY_VERSION = "1"

# Configuration Constants
ENV_KMS_TYPE = "KMS_TYPE"
ENV_CHAIN_ID = "CHAIN_ID"
ENV_AWS_KEY_ID = "AWS_KMS_KEY_ID"
ENV_AWS_REGION = "AWS_REGION"
ENV_AWS_DEFAULT_REGION = "AWS_DEFAULT_REGION"
ENV_AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"  # noqa: S105
ENV_AWS_SESSION_TOKEN = "AWS_SESSION_TOKEN"  # noqa: S105
ENV_PROJECT_ID = "GOOGLE_CLOUD_PROJECT"
ENV_LOCATION_ID = "GOOGLE_CLOUD_REGION"
ENV_KEY_RING_ID = "KEY_RING"
ENV_KEY_ID = "KEY_NAME"
ENV_KEY_VERSION = "KEY_VERSION"
ENV_CREDENTIALS = "GOOGLE_APPLICATION_CREDENTIALS"


def _strip_non_empty(v: str) -> str:
    """Validate that a field is not empty or whitespace."""
    if not v or not v.strip():
        msg = "Field cannot be empty or whitespace"
        raise ValueError(msg)
    return v.strip()


def _chain_id_from_env() -> int:
    raw = os.getenv(ENV_CHAIN_ID, "").strip()
    if not raw:
        return DEFAULT_CHAIN_ID
    try:
        return int(raw, 0)
    except ValueError as e:
        msg = f"{ENV_CHAIN_ID} must be an integer, got {raw!r}"
        raise ConfigError(msg) from e


def _build(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid {model.__name__}: {e!s}"
        raise ConfigError(msg) from e


class AwsConfig(BaseModel):
    """Settings for an AWS KMS key. Field aliases follow the JSON config file keys."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    key_id: str = Field(..., alias="KeyID", description="KMS key id, ARN or alias")
    chain_id: int = Field(DEFAULT_CHAIN_ID, ge=0, alias="ChainID")
    region: str | None = Field(None, alias="Region")
    access_key_id: str | None = Field(None, alias="AccessKeyID")
    secret_access_key: str | None = Field(None, alias="SecretAccessKey", repr=False)
    session_token: str | None = Field(None, alias="SessionToken", repr=False)
    endpoint_url: str | None = Field(None, alias="EndpointURL")

    @field_validator("key_id")
    @classmethod
    def validate_key_id(cls, v: str) -> str:
        return _strip_non_empty(v)

    @field_validator("region", "access_key_id", "secret_access_key", "session_token", "endpoint_url")
    @classmethod
    def empty_as_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def has_static_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    @classmethod
    def from_env(cls) -> "AwsConfig":
        """
        Create configuration from environment variables.

        Example:
            ```python
            config = AwsConfig.from_env()
            account = AwsKmsAccount(config)
            ```
        """
        return _build(
            cls,
            {
                "key_id": os.getenv(ENV_AWS_KEY_ID, ""),
                "chain_id": _chain_id_from_env(),
                "region": os.getenv(ENV_AWS_REGION) or os.getenv(ENV_AWS_DEFAULT_REGION),
                "access_key_id": os.getenv(ENV_AWS_ACCESS_KEY_ID),
                "secret_access_key": os.getenv(ENV_AWS_SECRET_ACCESS_KEY),
                "session_token": os.getenv(ENV_AWS_SESSION_TOKEN),
            },
        )


class GcpKey(BaseModel):
    """Location of a Cloud KMS key version inside a key ring."""

    model_config = ConfigDict(populate_by_name=True)

    keyring: str = Field(..., alias="Keyring")
    name: str = Field(..., alias="Name")
    version: str = Field(DEFAULT_KEY_VERSION, alias="Version")

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("keyring", "name", "version")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        return _strip_non_empty(v)


class GcpConfig(BaseModel):
    """Settings for a Google Cloud KMS key."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    project_id: str = Field(..., alias="ProjectID")
    location_id: str = Field(..., alias="LocationID")
    credential_location: str | None = Field(None, alias="CredentialLocation", validate_default=True)
    key: GcpKey = Field(..., alias="Key")
    chain_id: int = Field(DEFAULT_CHAIN_ID, ge=0, alias="ChainID")

    @field_validator("project_id", "location_id")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        return _strip_non_empty(v)

    @field_validator("credential_location")
    @classmethod
    def default_credentials(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return os.getenv(ENV_CREDENTIALS) or None
        return v.strip()

    @property
    def key_ring_path(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location_id}/keyRings/{self.key.keyring}"

    @property
    def key_version_path(self) -> str:
        """Get the full path to the key version in Cloud KMS."""
        return f"{self.key_ring_path}/cryptoKeys/{self.key.name}/cryptoKeyVersions/{self.key.version}"

    @classmethod
    def from_env(cls) -> "GcpConfig":
        """Create configuration from environment variables."""
        return _build(
            cls,
            {
                "project_id": os.getenv(ENV_PROJECT_ID, ""),
                "location_id": os.getenv(ENV_LOCATION_ID, ""),
                "key": {
                    "keyring": os.getenv(ENV_KEY_RING_ID, ""),
                    "name": os.getenv(ENV_KEY_ID, ""),
                    "version": os.getenv(ENV_KEY_VERSION, DEFAULT_KEY_VERSION),
                },
                "chain_id": _chain_id_from_env(),
            },
        )


class KmsConfig(BaseModel):
    """Selects one of the supported KMS providers and holds its settings."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(..., description="Which service to use ('aws' or 'gcp')")
    gcp: GcpConfig | None = None
    aws: AwsConfig | None = None

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().lower()

    def validate_provider(self) -> "KmsConfig":
        """
        Check that the type is supported and its section is present.

        Raises:
            UnsupportedProviderError: If the type is unknown
            ConfigError: If the selected provider section is missing
        """
        if self.type not in SUPPORTED_TYPES:
            msg = f"KMS config type `{self.type}` not supported"
            raise UnsupportedProviderError(msg)
        if getattr(self, self.type) is None:
            msg = f"Missing `{self.type}` section for KMS config type `{self.type}`"
            raise ConfigError(msg)
        return self

    @classmethod
    def from_dict(cls, raw_config: dict[str, Any]) -> "KmsConfig":
        """Create a validated config from raw config data."""
        return _build(cls, raw_config).validate_provider()

    @classmethod
    def from_json_file(cls, file_path: str | Path) -> "KmsConfig":
        """Create a validated config from a JSON config file."""
        try:
            raw_config = json.loads(Path(file_path).read_text())
        except (OSError, json.JSONDecodeError) as e:
            msg = f"Cannot load KMS config from {file_path}: {e!s}"
            raise ConfigError(msg) from e
        if not isinstance(raw_config, dict):
            msg = f"KMS config in {file_path} must be a JSON object"
            raise ConfigError(msg)
        return cls.from_dict(raw_config)

    @classmethod
    def from_env(cls) -> "KmsConfig":
        """Create a config for the provider named by ``KMS_TYPE``."""
        kms_type = os.getenv(ENV_KMS_TYPE, "").strip().lower()
        if kms_type == AWS_TYPE:
            return cls(type=kms_type, aws=AwsConfig.from_env())
        if kms_type == GCP_TYPE:
            return cls(type=kms_type, gcp=GcpConfig.from_env())
        msg = f"KMS config type `{kms_type}` not supported"
        raise UnsupportedProviderError(msg)
