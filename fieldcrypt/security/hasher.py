"""
Credential Hasher: bcrypt password hashing and verification.

bcrypt is deliberately slow. Async callers use :meth:`hash_async` and
:meth:`verify_async`, which run on the hasher's own thread pool so the
event loop keeps serving other requests.

Security Note:
    Never log passwords or hashes.
"""
import re
import asyncio
import logging
import threading
from functools import partial
from typing import Optional
from concurrent.futures import ThreadPoolExecutor

import bcrypt

from ..exceptions import InvalidHashFormat
from .config import CryptoConfig

logger = logging.getLogger("fieldcrypt.security")

# bcrypt only reads the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72

_BCRYPT_HASH = re.compile(r"\$2[abxy]\$(\d{2})\$[./A-Za-z0-9]{53}")


def parse_cost(password_hash: str) -> int:
    """Return the cost factor embedded in a bcrypt hash.

    Raises:
        InvalidHashFormat: If the value is not a bcrypt hash.
    """
    if not isinstance(password_hash, str):
        raise InvalidHashFormat("Credential hash must be a string")
    match = _BCRYPT_HASH.fullmatch(password_hash)
    if match is None:
        raise InvalidHashFormat("Credential hash is not a bcrypt hash")
    return int(match.group(1))


class CredentialHasher:
    """Salted, adaptive one-way hashing of passwords.

    Example:
        >>> hasher = CredentialHasher(config)
        >>> stored = hasher.hash("my_secure_password")
        >>> hasher.verify("my_secure_password", stored)
        True
        >>> hasher.verify("wrong_password", stored)
        False
    """

    def __init__(self, config: CryptoConfig):
        self._rounds = config.hash_cost_factor
        self._workers = config.hash_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pool_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"<CredentialHasher bcrypt rounds={self._rounds}>"

    @property
    def rounds(self) -> int:
        return self._rounds

    def _encode(self, password: str) -> bytes:
        if not isinstance(password, str):
            raise TypeError(
                f"password must be str, got {type(password).__name__}"
            )
        return password.encode("utf-8")

    def hash(self, password: str) -> str:
        """Hash a plaintext password with a fresh salt.

        Args:
            password: The plaintext password to hash.

        Returns:
            The bcrypt hash as a string, with salt and cost embedded.

        Raises:
            ValueError: If the password is longer than 72 bytes in UTF-8.
        """
        secret = self._encode(password)
        if len(secret) > MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes"
            )
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(secret, salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a stored hash.

        Args:
            password: The plaintext password to check.
            password_hash: The bcrypt hash to verify against.

        Returns:
            True if password matches, False otherwise.

        Raises:
            InvalidHashFormat: If password_hash is not a bcrypt hash.
        """
        parse_cost(password_hash)
        secret = self._encode(password)
        if len(secret) > MAX_PASSWORD_BYTES:
            # hash() never accepts these, so nothing stored can match.
            return False
        try:
            return bcrypt.checkpw(secret, password_hash.encode("utf-8"))
        except ValueError as err:
            raise InvalidHashFormat(
                "Credential hash could not be parsed"
            ) from err

    def needs_rehash(self, password_hash: str) -> bool:
        """Check whether a stored hash uses a different cost factor.

        Useful after changing ``HASH_COST_FACTOR``: matching hashes can be
        regenerated on the next successful login.
        """
        return parse_cost(password_hash) != self._rounds

    # ------------------------------------------------------------------
    # Worker pool
    # ------------------------------------------------------------------

    @property
    def executor(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._workers,
                    thread_name_prefix="fieldcrypt-hash",
                )
                logger.debug("Started hashing pool with %d worker(s)", self._workers)
            return self._executor

    async def hash_async(self, password: str) -> str:
        """Run :meth:`hash` on the hashing pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor, partial(self.hash, password),
        )

    async def verify_async(self, password: str, password_hash: str) -> bool:
        """Run :meth:`verify` on the hashing pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor, partial(self.verify, password, password_hash),
        )

    def close(self) -> None:
        """Shut down the hashing pool, waiting for running hashes."""
        with self._pool_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
