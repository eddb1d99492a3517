"""Shared fixtures: test configuration and an in-memory document store."""
import copy
import uuid
from typing import Any, Optional

import pytest

from fieldcrypt.security import CryptoConfig, FieldCipher, CredentialHasher
from fieldcrypt.fields import FieldTransform
from fieldcrypt.repository import EncryptedRepository

TEST_KEY = bytes(31) + b"\x01"  # 0x00..01
TEST_KEY_HEX = TEST_KEY.hex()


class MemoryRepository:
    """Dict-backed DocumentRepository used to inspect what gets stored."""

    def __init__(self):
        self.documents: dict[str, dict] = {}

    def _match(self, doc: dict, query: Optional[dict]) -> bool:
        return all(doc.get(k) == v for k, v in (query or {}).items())

    def _project(self, doc: dict, projection) -> dict:
        if not projection:
            return copy.deepcopy(doc)
        keys = set(projection) | {"_id"}
        return {k: copy.deepcopy(v) for k, v in doc.items() if k in keys}

    async def find_one(self, query, projection=None):
        for doc in self.documents.values():
            if self._match(doc, query):
                return self._project(doc, projection)
        return None

    async def find_by_id(self, id, projection=None):
        doc = self.documents.get(id)
        return self._project(doc, projection) if doc else None

    async def find_all(self, query=None, projection=None, limit=0, skip=0, sort=None):
        docs = [d for d in self.documents.values() if self._match(d, query)]
        for field, direction in reversed(list((sort or {}).items())):
            docs.sort(key=lambda d: d.get(field), reverse=direction < 0)
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        return [self._project(d, projection) for d in docs]

    async def create(self, data):
        doc = copy.deepcopy(dict(data))
        doc.setdefault("_id", uuid.uuid4().hex)
        self.documents[doc["_id"]] = doc
        return copy.deepcopy(doc)

    async def create_many(self, items):
        return [await self.create(item) for item in items]

    async def update_by_id(self, id, data):
        doc = self.documents.get(id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(dict(data)))
        return copy.deepcopy(doc)

    async def update_one(self, query, data):
        found = await self.find_one(query)
        if found is None:
            return None
        return await self.update_by_id(found["_id"], data)

    async def update_many(self, query, data):
        matched = [d for d in self.documents.values() if self._match(d, query)]
        for doc in matched:
            doc.update(copy.deepcopy(dict(data)))
        return len(matched)

    async def delete_by_id(self, id):
        return self.documents.pop(id, None)

    async def delete_one(self, query):
        found = await self.find_one(query)
        if found is None:
            return None
        return self.documents.pop(found["_id"])

    async def delete_many(self, query):
        ids = [k for k, d in self.documents.items() if self._match(d, query)]
        for key in ids:
            del self.documents[key]
        return len(ids)

    async def count(self, query=None) -> int:
        return sum(1 for d in self.documents.values() if self._match(d, query))

    def raw(self, id: Any) -> dict:
        return self.documents[id]


@pytest.fixture
def config():
    """Config with the 0x00..01 test key and the cheapest bcrypt cost."""
    return CryptoConfig(encryption_key=TEST_KEY, hash_cost_factor=4, hash_workers=2)


@pytest.fixture
def cipher(config):
    return FieldCipher(config)


@pytest.fixture
def hasher(config):
    h = CredentialHasher(config)
    yield h
    h.close()


@pytest.fixture
def transform(cipher):
    return FieldTransform(cipher, ["phone"])


@pytest.fixture
def store():
    return MemoryRepository()


@pytest.fixture
def repository(store, transform):
    return EncryptedRepository(store, transform)
