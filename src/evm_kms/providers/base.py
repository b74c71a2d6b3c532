from abc import ABC, abstractmethod


class KmsProvider(ABC):
    """Base class for remote KMS signing services."""

    name: str = ""

    @property
    @abstractmethod
    def key_reference(self) -> str:
        """Identifier of the remote key (key id, ARN or key version path)."""
        pass

    @abstractmethod
    def sign(self, digest: bytes) -> bytes:
        """Sign a 32-byte digest, returning the DER-encoded signature."""
        pass

    @abstractmethod
    def get_public_key(self) -> bytes:
        """Get the encoded public key from the KMS."""
        pass
