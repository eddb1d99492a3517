"""Field protection primitives: AES-GCM field cipher and bcrypt hasher.

Security Note (Threat Model):
    Key material lives in process memory for the process lifetime.
    A memory dump of the application process could expose it, and with
    it every stored field value. This is an accepted limitation.
    Mitigation requires HSM/KMS integration which is out of scope.
"""

from .cipher import FieldCipher
from .hasher import CredentialHasher
from .config import CryptoConfig, generate_key

__all__ = [
    "FieldCipher",
    "CredentialHasher",
    "CryptoConfig",
    "generate_key",
]
