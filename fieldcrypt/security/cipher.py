"""
Field Cipher: AES-256-GCM encryption of single field values.

Encoded format (persisted, must not change):
    <iv 12B hex>:<tag 16B hex>:<ciphertext hex>

The ciphertext segment has the same byte length as the UTF-8 plaintext.

Security Note:
    Never log plaintext, ciphertext or key values.
    IVs are random 96-bit; collision probability negligible under normal usage.
"""
import os
import logging
import binascii

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import AuthenticationFailure, MalformedCiphertext
from .config import CryptoConfig

logger = logging.getLogger("fieldcrypt.security")

IV_SIZE = 12  # 96-bit IV
TAG_SIZE = 16  # 128-bit GCM tag
SEPARATOR = ":"


def _unhex(segment: str, name: str) -> bytes:
    try:
        return binascii.unhexlify(segment)
    except (binascii.Error, ValueError) as err:
        raise MalformedCiphertext(
            f"{name} segment is not valid hex"
        ) from err


def encode(iv: bytes, tag: bytes, ciphertext: bytes) -> str:
    """Join IV, tag and ciphertext as colon-separated lowercase hex."""
    return SEPARATOR.join((iv.hex(), tag.hex(), ciphertext.hex()))


def decode(encoded: str) -> tuple[bytes, bytes, bytes]:
    """Split an encoded value into (iv, tag, ciphertext) bytes.

    Raises:
        MalformedCiphertext: If the value does not have exactly three
            hex segments, or IV/tag have the wrong size.
    """
    if not isinstance(encoded, str):
        raise MalformedCiphertext(
            f"Encoded value must be a string, got {type(encoded).__name__}"
        )
    parts = encoded.split(SEPARATOR)
    if len(parts) != 3:
        raise MalformedCiphertext(
            f"Expected 3 segments separated by '{SEPARATOR}', got {len(parts)}"
        )
    iv = _unhex(parts[0], "IV")
    tag = _unhex(parts[1], "TAG")
    ciphertext = _unhex(parts[2], "CIPHERTEXT")
    if len(iv) != IV_SIZE:
        raise MalformedCiphertext(
            f"IV must be {IV_SIZE} bytes, got {len(iv)}"
        )
    if len(tag) != TAG_SIZE:
        raise MalformedCiphertext(
            f"TAG must be {TAG_SIZE} bytes, got {len(tag)}"
        )
    return iv, tag, ciphertext


class FieldCipher:
    """Authenticated encryption of string field values.

    The key comes from a :class:`CryptoConfig` and is never replaced for
    the lifetime of the instance. Instances hold no other state and are
    safe to share between threads and tasks.
    """

    __slots__ = ("_aead",)

    def __init__(self, config: CryptoConfig):
        self._aead = AESGCM(config.encryption_key.get_secret_value())

    def __repr__(self) -> str:
        return "<FieldCipher AES-256-GCM>"

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string value.

        The empty string is a valid plaintext and round-trips.

        Args:
            plaintext: Text to encrypt.

        Returns:
            Encoded ``IV:TAG:CIPHERTEXT`` string. A fresh IV is used on
            every call, so encrypting the same value twice gives
            different encodings.

        Raises:
            TypeError: If plaintext is not a string.
        """
        if not isinstance(plaintext, str):
            raise TypeError(
                f"plaintext must be str, got {type(plaintext).__name__}"
            )
        iv = os.urandom(IV_SIZE)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        # AESGCM appends the tag to the ciphertext.
        return encode(iv, sealed[-TAG_SIZE:], sealed[:-TAG_SIZE])

    def decrypt(self, encoded: str) -> str:
        """Decrypt an encoded value produced by :meth:`encrypt`.

        Raises:
            MalformedCiphertext: If the value cannot be parsed.
            AuthenticationFailure: If the tag does not verify.
        """
        iv, tag, ciphertext = decode(encoded)
        try:
            data = self._aead.decrypt(iv, ciphertext + tag, None)
        except InvalidTag as err:
            logger.warning("Field decryption failed: authentication tag mismatch")
            raise AuthenticationFailure(
                "Authentication tag mismatch (wrong key or tampered data)"
            ) from err
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise MalformedCiphertext(
                "Decrypted value is not valid UTF-8"
            ) from err
