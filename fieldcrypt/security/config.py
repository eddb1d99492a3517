"""
Crypto Configuration: Key material and hash cost factor loading.

Reads settings from environment variables:
    ENCRYPTION_KEY = <64 hex characters, 32-byte AES-256 key>
    HASH_COST_FACTOR = <bcrypt cost factor, 4..31>
    HASH_WORKERS = <optional, size of the hashing thread pool>

Security Note:
    Never log key material. Only log the cost factor and pool size.
"""
import os
import secrets
import logging
import binascii
from typing import Optional

from pydantic import BaseModel, Field, SecretBytes, ValidationError, field_validator

from ..exceptions import ConfigurationError

logger = logging.getLogger("fieldcrypt.security")

KEY_LENGTH = 32  # AES-256
MIN_COST_FACTOR = 4
MAX_COST_FACTOR = 31
DEFAULT_HASH_WORKERS = 4


def decode_key(value: str, name: str = "ENCRYPTION_KEY") -> bytes:
    """Decode a hex-encoded key and check it is exactly 32 bytes.

    Raises:
        ConfigurationError: If the value is not hex or has the wrong length.
    """
    try:
        key_bytes = binascii.unhexlify(value.strip())
    except (binascii.Error, ValueError) as err:
        raise ConfigurationError(
            f"{name} must be {KEY_LENGTH * 2} hex characters"
        ) from err
    if len(key_bytes) != KEY_LENGTH:
        raise ConfigurationError(
            f"{name} must decode to exactly {KEY_LENGTH} bytes, "
            f"got {len(key_bytes)}"
        )
    return key_bytes


def _read_env(name: str) -> str:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        raise ConfigurationError(
            f"{name} environment variable is not set"
        )
    return raw.strip()


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(raw)
    except ValueError as err:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}"
        ) from err


def generate_key() -> str:
    """Generate a random 32-byte key and return it as 64 hex characters.

    This is a utility for operators provisioning ``ENCRYPTION_KEY``.
    """
    return secrets.token_hex(KEY_LENGTH)


class CryptoConfig(BaseModel):
    """Validated, immutable crypto configuration.

    Built once at process start and passed to the cipher and hasher
    constructors. The key is held as ``SecretBytes`` and left out of
    ``model_dump()`` and ``model_dump_json()``.
    """

    encryption_key: SecretBytes = Field(repr=False, exclude=True)
    hash_cost_factor: int
    hash_workers: int = Field(default=DEFAULT_HASH_WORKERS, ge=1, le=64)

    model_config = {"frozen": True}

    @field_validator("encryption_key", mode="before")
    @classmethod
    def validate_key(cls, v):
        """Accept raw bytes or a hex string; require 32 bytes."""
        if isinstance(v, SecretBytes):
            v = v.get_secret_value()
        if isinstance(v, str):
            return decode_key(v)
        if isinstance(v, (bytes, bytearray)):
            if len(v) != KEY_LENGTH:
                raise ValueError(
                    f"encryption_key must be exactly {KEY_LENGTH} bytes, "
                    f"got {len(v)}"
                )
            return bytes(v)
        raise ValueError("encryption_key must be bytes or a hex string")

    @field_validator("hash_cost_factor", mode="before")
    @classmethod
    def validate_cost(cls, v):
        """Cost factor must be an integer bcrypt accepts."""
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("hash_cost_factor must be an integer")
        if not MIN_COST_FACTOR <= v <= MAX_COST_FACTOR:
            raise ValueError(
                f"hash_cost_factor must be between {MIN_COST_FACTOR} "
                f"and {MAX_COST_FACTOR}, got {v}"
            )
        return v

    @classmethod
    def create(cls, **kwargs) -> "CryptoConfig":
        """Build a config, reporting any validation error as ConfigurationError."""
        try:
            return cls(**kwargs)
        except ValidationError as err:
            # pydantic renders the offending input; keep key material out of it.
            fields = ", ".join(
                str(e["loc"][0]) for e in err.errors() if e.get("loc")
            )
            raise ConfigurationError(
                f"Invalid crypto configuration: {fields or 'unknown field'}"
            ) from None

    @classmethod
    def from_env(cls) -> "CryptoConfig":
        """Create CryptoConfig by loading values from environment.

        Returns:
            Populated CryptoConfig instance.

        Raises:
            ConfigurationError: If a variable is missing or malformed.
        """
        key = decode_key(_read_env("ENCRYPTION_KEY"))
        cost = _parse_int(_read_env("HASH_COST_FACTOR"), "HASH_COST_FACTOR")
        workers: Optional[str] = os.environ.get("HASH_WORKERS")
        kwargs = {"encryption_key": key, "hash_cost_factor": cost}
        if workers:
            kwargs["hash_workers"] = _parse_int(workers, "HASH_WORKERS")
        config = cls.create(**kwargs)
        logger.debug(
            "Loaded crypto config: cost_factor=%d hash_workers=%d",
            config.hash_cost_factor, config.hash_workers,
        )
        return config
