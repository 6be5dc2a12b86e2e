"""
Document store contract used by the slug allocator and the post manager

A document store keeps JSON-like documents identified by an id. Every
persisted version of a document carries an opaque revision token. Any
modification has to supply the revision it is based on, and the store
rejects the write with ``RevisionConflict`` if that revision is stale.
The store is the single source of truth; nothing above it may cache ids,
slugs or revisions across calls.
"""

import abc
import uuid
import dataclasses
from typing import Any, Dict, List, NewType, Tuple


Revision = NewType("Revision", str)
"""Opaque token of a persisted document version, only ever compared for equality"""

POST_DOCUMENT_TYPE: str = "blog_post"


@dataclasses.dataclass(frozen=True)
class Document:
    """
    Snapshot of one persisted document version
    """

    id: str
    revision: Revision
    body: Dict[str, Any]


@dataclasses.dataclass(frozen=True)
class SlugHolder:
    id: str
    slug: str


class DocumentStore(abc.ABC):
    """
    Abstract asynchronous interface of a revisioned document database

    Every method is a suspension point: the call might involve network or
    disk I/O. Implementations must not serialize writes with in-process
    locks; conflicting writers are detected by the revision comparison.
    """

    @abc.abstractmethod
    async def get(self, document_id: str) -> Document:
        """
        Return the current version of a document

        :raises NotFound: if no document with that ID exists
        :raises StoreError: on any other store failure
        """

    @abc.abstractmethod
    async def find_by_slug(self, slug: str) -> List[SlugHolder]:
        """
        Return the ID and slug of all documents currently holding the given slug

        :raises StoreError: on any store failure
        """

    @abc.abstractmethod
    async def create(self, document_id: str, body: Dict[str, Any]) -> Revision:
        """
        Store a new document with the given ID and return its first revision

        :raises RevisionConflict: if a document with the same ID already exists
        :raises StoreError: on any other store failure
        """

    @abc.abstractmethod
    async def update(self, document_id: str, body: Dict[str, Any], expected: Revision) -> Revision:
        """
        Replace the document body if its current revision equals ``expected``

        :return: the new revision of the document
        :raises NotFound: if no document with that ID exists
        :raises RevisionConflict: if the current revision differs from ``expected``
        :raises StoreError: on any other store failure
        """

    @abc.abstractmethod
    async def delete(self, document_id: str, expected: Revision) -> None:
        """
        Remove the document if its current revision equals ``expected``

        :raises NotFound: if no document with that ID exists
        :raises RevisionConflict: if the current revision differs from ``expected``
        :raises StoreError: on any other store failure
        """

    @abc.abstractmethod
    async def list_posts(self, skip: int = 0, limit: int = None) -> Tuple[List[Document], int]:
        """
        Return a window of the post documents, newest ``date`` first, and the total number of posts
        """

    async def close(self) -> None:
        """
        Release all resources held by the store (no-op by default)
        """

    async def __aenter__(self) -> "DocumentStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def sort_key(document: Document) -> Tuple[str, str]:
    """
    Ordering key for post listings: ``date`` (ISO format) and ID, to be used in reverse
    """

    return str(document.body.get("date") or ""), document.id


def new_revision(generation: int) -> Revision:
    """
    Create a fresh revision token for the given generation of a document (used by local stores)
    """

    return Revision(f"{generation}-{uuid.uuid4().hex}")
