"""
provisioner_core.errors
-----------------------
Exception taxonomy shared by the keystore engine and the node client.

- Validation errors: bad caller input, never retried.
- DecryptionError: the single opaque authentication failure of a keystore.
- Not-found / conflict errors: keystore file I/O outcomes.
- NoHealthyNodeError: no candidate RPC node qualified at initialization.
- SignerNotConfiguredError: a write without a signer; local setup, never retried.

Network failures are raised from the transport layer
(see provisioner_core.transport.transport_base).
"""

from __future__ import annotations
from pathlib import Path
from typing import Iterable


class ProvisionerError(Exception):
    """Base exception for provisioner errors"""
    pass


class ValidationError(ProvisionerError):
    pass


class InvalidPrivateKeyError(ValidationError):
    pass


class InvalidPasswordError(ValidationError):
    pass


class IVLengthError(ValidationError):
    pass


class PBKDF2IterationsError(ValidationError):
    pass


class InvalidKdfError(ValidationError):
    pass


class InvalidAddressError(ValidationError):
    pass


class KeyDerivationError(ProvisionerError):
    pass


class KeystoreFormatError(ProvisionerError):
    pass


class DecryptionError(ProvisionerError):
    """Wrong password and corrupted keystore are reported identically."""

    def __init__(self, message: str = "Keystore decryption failed"):
        super().__init__(message)


class KeystoreNotFoundError(ProvisionerError):
    def __init__(self, identity: str, attempted: Iterable[Path]):
        self.identity = identity
        self.attempted = [Path(p) for p in attempted]
        tried = ", ".join(str(p) for p in self.attempted)
        super().__init__(f"Keystore for {identity} not found (tried: {tried})")


class KeystoreConflictError(ProvisionerError):
    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Keystore already exists: {self.path}")


class NoHealthyNodeError(ProvisionerError):
    pass


class ClientNotInitializedError(ProvisionerError):
    pass


class SignerNotConfiguredError(ProvisionerError):
    """A write was attempted on a session that has no transaction signer."""
    pass
