"""
Field Transform: binds the field cipher to named entity fields.

Stored documents carry ciphertext for the protected fields, callers see
plaintext. ``None`` and ``""`` mean "no value" and never reach the cipher
in either direction.
"""
from typing import Any, Optional
from collections.abc import Iterable, Mapping

from .security.cipher import FieldCipher

_SET_OPERATORS = frozenset(("$set", "$setOnInsert"))


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class FieldTransform:
    """Encrypt designated fields on write, decrypt them on read.

    Args:
        cipher: the shared :class:`FieldCipher`.
        fields: names of the fields to protect.
    """

    def __init__(self, cipher: FieldCipher, fields: Iterable[str]):
        self._cipher = cipher
        self._fields = frozenset(fields)
        if not self._fields:
            raise ValueError("FieldTransform needs at least one field name")

    def __repr__(self) -> str:
        return f"<FieldTransform fields={sorted(self._fields)}>"

    @property
    def fields(self) -> frozenset:
        return self._fields

    def encrypt_field(self, value: Optional[str]) -> Optional[str]:
        if _is_empty(value):
            return value
        return self._cipher.encrypt(value)

    def decrypt_field(self, value: Optional[str]) -> Optional[str]:
        if _is_empty(value):
            return value
        return self._cipher.decrypt(value)

    def _root(self, key: str) -> str:
        return key.split(".", 1)[0]

    def to_storage(self, document: Mapping[str, Any]) -> dict:
        """Return a copy of ``document`` with protected fields encrypted.

        ``$set`` and ``$setOnInsert`` payloads are encrypted the same way.
        ``$unset`` passes through. Any other ``$`` operator or dotted path
        that reaches a protected field raises ``ValueError``.
        """
        stored = dict(document)
        for key, value in stored.items():
            if key in _SET_OPERATORS and isinstance(value, Mapping):
                stored[key] = self.to_storage(value)
            elif key.startswith("$") and key != "$unset":
                self._reject_operator(key, value)
            elif "." in key and self._root(key) in self._fields:
                raise ValueError(
                    f"Cannot write into encrypted field by path: {key}"
                )
        for name in self._fields.intersection(stored):
            stored[name] = self.encrypt_field(stored[name])
        return stored

    def _reject_operator(self, operator: str, value: Any) -> None:
        if isinstance(value, Mapping):
            touched = {self._root(k) for k in value} & self._fields
            if touched:
                raise ValueError(
                    f"Operator {operator} cannot modify encrypted field(s): "
                    f"{', '.join(sorted(touched))}"
                )

    def from_storage(self, document: Optional[Mapping[str, Any]]) -> Optional[dict]:
        """Return a copy of a stored ``document`` with protected fields decrypted.

        Raises:
            MalformedCiphertext: If a stored value cannot be parsed.
            AuthenticationFailure: If a stored value fails verification.
        """
        if document is None:
            return None
        loaded = dict(document)
        for name in self._fields.intersection(loaded):
            loaded[name] = self.decrypt_field(loaded[name])
        return loaded

    def _queried_fields(self, query: Any) -> set:
        found = set()
        if isinstance(query, Mapping):
            for key, value in query.items():
                if key.startswith("$"):
                    found |= self._queried_fields(value)
                elif self._root(key) in self._fields:
                    found.add(self._root(key))
        elif isinstance(query, (list, tuple)):
            for item in query:
                found |= self._queried_fields(item)
        return found

    def check_query(self, query: Optional[Mapping[str, Any]]) -> None:
        """Reject queries that filter on a protected field.

        Encryption uses a fresh IV per value, so a stored ciphertext can
        never equal a query value. Nested ``$and``/``$or`` clauses and
        dotted paths are inspected too.
        """
        if not query:
            return
        protected = self._queried_fields(query)
        if protected:
            raise ValueError(
                f"Cannot query on encrypted field(s): {', '.join(sorted(protected))}"
            )
