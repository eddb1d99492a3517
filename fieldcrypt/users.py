"""
User registration: signup and login on top of the field protection layer.

``phone`` is stored encrypted, ``password`` is stored as a bcrypt hash.
Neither the hash nor any ciphertext is returned to callers.
"""
import logging
import secrets
from enum import Enum, IntEnum
from typing import Any, Optional
from datetime import datetime, timezone
from collections.abc import Mapping

from pydantic import BaseModel, Field, field_validator

from .exceptions import EmailAlreadyExists, InvalidCredentials
from .fields import FieldTransform
from .repository import DocumentRepository, EncryptedRepository
from .security import CredentialHasher, CryptoConfig, FieldCipher

logger = logging.getLogger("fieldcrypt.users")

ENCRYPTED_FIELDS = ("phone",)


class Gender(str, Enum):
    male = "male"
    female = "female"


class Provider(IntEnum):
    google = 0
    system = 1


class User(BaseModel):
    """User entity as seen by callers (plaintext fields)."""

    first_name: str = Field(min_length=2, max_length=25)
    last_name: str = Field(min_length=2, max_length=25)
    email: str
    password: str = Field(repr=False)
    phone: Optional[str] = None
    gender: Gender = Gender.male
    provider: Provider = Provider.system
    profile_picture: Optional[str] = None
    cover_profile_pictures: list[str] = Field(default_factory=list)
    confirm_email: Optional[datetime] = None
    change_credential_time: Optional[datetime] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("email is not valid")
        return v

    @property
    def user_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _public(document: Optional[Mapping[str, Any]]) -> Optional[dict]:
    if document is None:
        return None
    return {k: v for k, v in document.items() if k != "password"}


class UserService:
    """Signup and login for users.

    Args:
        repository: an :class:`EncryptedRepository` over the users store.
        hasher: the shared :class:`CredentialHasher`.
    """

    def __init__(self, repository: EncryptedRepository, hasher: CredentialHasher):
        self._users = repository
        self._hasher = hasher
        self._dummy_hash: Optional[str] = None

    async def signup(self, inputs: Mapping[str, Any]) -> dict:
        """Create a user with a hashed password and encrypted phone.

        Raises:
            pydantic.ValidationError: If inputs are not a valid user.
            EmailAlreadyExists: If the email is already registered.
        """
        user = User.model_validate(inputs)
        if await self._users.exists({"email": user.email}):
            raise EmailAlreadyExists("email already exist")
        data = user.model_dump(mode="json")
        data["password"] = await self._hasher.hash_async(user.password)
        data["created_at"] = data["updated_at"] = _now()
        created = await self._users.create(data)
        logger.info("User signed up: id=%s", created.get("_id"))
        return _public(created)

    async def login(self, email: str, password: str) -> dict:
        """Check credentials and return the user without its password hash.

        Unknown email and wrong password raise the same error, and both
        run one bcrypt verification.

        Raises:
            InvalidCredentials: If the credentials do not match a user.
        """
        user = await self._users.find_one({"email": email.strip().lower()})
        if user is None:
            await self._hasher.verify_async(password, await self._get_dummy_hash())
            logger.info("Login failed: unknown email")
            raise InvalidCredentials("Invalid email or password")
        if not await self._hasher.verify_async(password, user["password"]):
            logger.info("Login failed: id=%s", user.get("_id"))
            raise InvalidCredentials("Invalid email or password")
        if self._hasher.needs_rehash(user["password"]):
            rehashed = await self._hasher.hash_async(password)
            user = await self._users.update_by_id(
                user["_id"], {"password": rehashed, "updated_at": _now()},
            ) or user
            logger.info("Rehashed password: id=%s", user.get("_id"))
        logger.info("User logged in: id=%s", user.get("_id"))
        return _public(user)

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await self._hasher.hash_async(secrets.token_urlsafe(32))
        return self._dummy_hash

    def close(self) -> None:
        self._hasher.close()


def build_user_service(config: CryptoConfig, store: DocumentRepository) -> UserService:
    """Wire cipher, hasher and field transform over a users store."""
    transform = FieldTransform(FieldCipher(config), ENCRYPTED_FIELDS)
    return UserService(
        EncryptedRepository(store, transform),
        CredentialHasher(config),
    )
