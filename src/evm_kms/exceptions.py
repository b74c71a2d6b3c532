class KMSError(Exception):
    """Base exception for KMS-backed signing operations."""

    pass


class ConfigError(KMSError):
    """Invalid or missing provider configuration."""

    pass


class UnsupportedProviderError(ConfigError):
    """The configured KMS type is not one of the known providers."""

    pass


class DecodeError(KMSError):
    """Malformed DER signature or public key encoding."""

    pass


class InvalidPublicKey(KMSError):
    """Public key is not a secp256k1 point."""

    pass


class SignatureVerificationFailed(KMSError):
    """Signature returned by the KMS does not verify against the cached public key."""

    pass


class RecoveryFailed(KMSError):
    """Neither recovery id reproduces the cached public key."""

    pass


class RemoteSigningError(KMSError):
    """Error raised by the remote KMS service."""

    def __init__(self, msg: str, provider: str | None = None):
        super().__init__(msg)
        self.provider = provider


class SignerMismatch(KMSError):
    """Recovered sender differs from the KMS-backed address."""

    pass


class InvalidTransaction(KMSError):
    """Transaction cannot be hashed or recovered by the selected hashing strategy."""

    pass
