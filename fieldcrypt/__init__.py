"""fieldcrypt.

Field-level encryption and credential hashing for user records.
"""
from .version import __version__
from .exceptions import (
    FieldCryptError,
    ConfigurationError,
    MalformedCiphertext,
    AuthenticationFailure,
    InvalidHashFormat,
)
from .security import CryptoConfig, FieldCipher, CredentialHasher, generate_key
from .fields import FieldTransform
from .repository import DocumentRepository, EncryptedRepository

__all__ = (
    "__version__",
    "FieldCryptError",
    "ConfigurationError",
    "MalformedCiphertext",
    "AuthenticationFailure",
    "InvalidHashFormat",
    "CryptoConfig",
    "FieldCipher",
    "CredentialHasher",
    "generate_key",
    "FieldTransform",
    "DocumentRepository",
    "EncryptedRepository",
)
