"""
Encrypted Repository: applies a FieldTransform on every persistence path.

``DocumentRepository`` describes the storage collaborator (any document
store). ``EncryptedRepository`` wraps one, encrypting protected fields on
the way in and decrypting every entity on the way out: single fetch,
lists, pages, create, update and delete results.
"""
import math
from typing import Any, Optional, Protocol
from collections.abc import Mapping, Sequence

from .fields import FieldTransform

Document = dict[str, Any]


class DocumentRepository(Protocol):
    """Async document store interface consumed by the core.

    Documents and update payloads are flat mappings of field name to value.
    The only operator payloads passed through are ``$set`` and
    ``$setOnInsert``, whose protected fields arrive encrypted; other
    operators and dotted paths may not touch a protected field.
    """

    async def find_one(
        self, query: Mapping[str, Any], projection: Optional[Sequence[str]] = None
    ) -> Optional[Document]: ...

    async def find_by_id(
        self, id: Any, projection: Optional[Sequence[str]] = None
    ) -> Optional[Document]: ...

    async def find_all(
        self,
        query: Optional[Mapping[str, Any]] = None,
        projection: Optional[Sequence[str]] = None,
        limit: int = 0,
        skip: int = 0,
        sort: Optional[Mapping[str, int]] = None,
    ) -> list[Document]: ...

    async def create(self, data: Mapping[str, Any]) -> Document: ...

    async def create_many(self, items: Sequence[Mapping[str, Any]]) -> list[Document]: ...

    async def update_by_id(self, id: Any, data: Mapping[str, Any]) -> Optional[Document]: ...

    async def update_one(
        self, query: Mapping[str, Any], data: Mapping[str, Any]
    ) -> Optional[Document]: ...

    async def update_many(self, query: Mapping[str, Any], data: Mapping[str, Any]) -> int: ...

    async def delete_by_id(self, id: Any) -> Optional[Document]: ...

    async def delete_one(self, query: Mapping[str, Any]) -> Optional[Document]: ...

    async def delete_many(self, query: Mapping[str, Any]) -> int: ...

    async def count(self, query: Optional[Mapping[str, Any]] = None) -> int: ...


class EncryptedRepository:
    """DocumentRepository wrapper that keeps protected fields encrypted at rest."""

    def __init__(self, repository: DocumentRepository, transform: FieldTransform):
        self._repo = repository
        self._transform = transform

    @property
    def transform(self) -> FieldTransform:
        return self._transform

    def _load(self, document: Optional[Mapping[str, Any]]) -> Optional[Document]:
        return self._transform.from_storage(document)

    def _load_many(self, documents: Sequence[Mapping[str, Any]]) -> list[Document]:
        return [self._transform.from_storage(doc) for doc in documents]

    def _check(self, query: Optional[Mapping[str, Any]]) -> None:
        self._transform.check_query(query)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_one(
        self, query: Mapping[str, Any], projection: Optional[Sequence[str]] = None
    ) -> Optional[Document]:
        self._check(query)
        return self._load(await self._repo.find_one(query, projection))

    async def find_by_id(
        self, id: Any, projection: Optional[Sequence[str]] = None
    ) -> Optional[Document]:
        return self._load(await self._repo.find_by_id(id, projection))

    async def find_all(
        self,
        query: Optional[Mapping[str, Any]] = None,
        projection: Optional[Sequence[str]] = None,
        limit: int = 0,
        skip: int = 0,
        sort: Optional[Mapping[str, int]] = None,
    ) -> list[Document]:
        self._check(query)
        self._check(sort)
        documents = await self._repo.find_all(
            query, projection=projection, limit=limit, skip=skip, sort=sort,
        )
        return self._load_many(documents)

    async def count(self, query: Optional[Mapping[str, Any]] = None) -> int:
        self._check(query)
        return await self._repo.count(query)

    async def exists(self, query: Mapping[str, Any]) -> bool:
        self._check(query)
        return await self._repo.find_one(query, ["_id"]) is not None

    async def paginate(
        self,
        query: Optional[Mapping[str, Any]] = None,
        page: int = 1,
        limit: int = 10,
        projection: Optional[Sequence[str]] = None,
        sort: Optional[Mapping[str, int]] = None,
    ) -> dict[str, Any]:
        """Return one page of decrypted documents plus paging metadata."""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive integers")
        self._check(query)
        self._check(sort)
        total = await self._repo.count(query)
        documents = await self._repo.find_all(
            query,
            projection=projection,
            limit=limit,
            skip=(page - 1) * limit,
            sort=sort,
        )
        return {
            "docs": self._load_many(documents),
            "total_docs": total,
            "limit": limit,
            "page": page,
            "total_pages": math.ceil(total / limit),
            "has_next_page": page * limit < total,
            "has_prev_page": page > 1,
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> Document:
        stored = await self._repo.create(self._transform.to_storage(data))
        return self._load(stored)

    async def create_many(self, items: Sequence[Mapping[str, Any]]) -> list[Document]:
        stored = await self._repo.create_many(
            [self._transform.to_storage(item) for item in items]
        )
        return self._load_many(stored)

    async def update_by_id(self, id: Any, data: Mapping[str, Any]) -> Optional[Document]:
        updated = await self._repo.update_by_id(id, self._transform.to_storage(data))
        return self._load(updated)

    async def update_one(
        self, query: Mapping[str, Any], data: Mapping[str, Any]
    ) -> Optional[Document]:
        self._check(query)
        updated = await self._repo.update_one(query, self._transform.to_storage(data))
        return self._load(updated)

    async def update_many(self, query: Mapping[str, Any], data: Mapping[str, Any]) -> int:
        self._check(query)
        return await self._repo.update_many(query, self._transform.to_storage(data))

    async def delete_by_id(self, id: Any) -> Optional[Document]:
        return self._load(await self._repo.delete_by_id(id))

    async def delete_one(self, query: Mapping[str, Any]) -> Optional[Document]:
        self._check(query)
        return self._load(await self._repo.delete_one(query))

    async def delete_many(self, query: Mapping[str, Any]) -> int:
        self._check(query)
        return await self._repo.delete_many(query)
