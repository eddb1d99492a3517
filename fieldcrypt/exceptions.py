"""Exceptions raised by the field protection layer.

Messages never carry plaintext, ciphertext, key material or passwords.
"""


class FieldCryptError(Exception):
    """Base exception for fieldcrypt."""


class ConfigurationError(FieldCryptError):
    """Raised when key material or the hash cost factor is missing or invalid."""


class MalformedCiphertext(FieldCryptError, ValueError):
    """Raised when an encoded value is not ``IV:TAG:CIPHERTEXT`` hex."""


class AuthenticationFailure(FieldCryptError):
    """Raised when the GCM tag does not verify (tampering or wrong key)."""


class InvalidHashFormat(FieldCryptError, ValueError):
    """Raised when a stored credential hash is not a bcrypt hash."""


class UserError(FieldCryptError):
    """Base exception for the user registration flow.

    ``status_code`` is a hint for the response layer.
    """

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class EmailAlreadyExists(UserError):
    status_code = 409


class InvalidCredentials(UserError):
    status_code = 401
