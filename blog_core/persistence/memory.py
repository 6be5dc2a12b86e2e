"""
In-process document store for development and unit testing
"""

import copy
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from .store import Document, DocumentStore, Revision, SlugHolder, POST_DOCUMENT_TYPE, new_revision, sort_key
from ..err import NotFound, RevisionConflict


class MemoryStore(DocumentStore):
    """
    Document store keeping all documents in a dictionary of the running process

    Every call yields to the event loop once before touching the data, just
    like a network round trip would, so concurrent tasks interleave at the
    same points as they would with a real database. Each check-and-write
    happens without another suspension point in between, which makes the
    compare-and-swap atomic within the event loop.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._documents: Dict[str, Tuple[int, Revision, Dict[str, Any]]] = {}
        self._logger = logger or logging.getLogger(__name__)

    async def get(self, document_id: str) -> Document:
        await asyncio.sleep(0)
        if document_id not in self._documents:
            raise NotFound(f"Document {document_id!r}")
        _, revision, body = self._documents[document_id]
        return Document(id=document_id, revision=revision, body=copy.deepcopy(body))

    async def find_by_slug(self, slug: str) -> List[SlugHolder]:
        await asyncio.sleep(0)
        return [
            SlugHolder(id=k, slug=body["slug"])
            for k, (_, _, body) in self._documents.items()
            if body.get("slug") == slug and body.get("type") == POST_DOCUMENT_TYPE
        ]

    async def create(self, document_id: str, body: Dict[str, Any]) -> Revision:
        await asyncio.sleep(0)
        if document_id in self._documents:
            raise RevisionConflict(document_id, "Document already exists")
        revision = new_revision(1)
        self._documents[document_id] = (1, revision, copy.deepcopy(body))
        self._logger.debug(f"Created document {document_id!r} with revision {revision!r}")
        return revision

    async def update(self, document_id: str, body: Dict[str, Any], expected: Revision) -> Revision:
        await asyncio.sleep(0)
        if document_id not in self._documents:
            raise NotFound(f"Document {document_id!r}")
        generation, current, _ = self._documents[document_id]
        if current != expected:
            raise RevisionConflict(document_id, f"expected revision {expected!r}, found {current!r}")
        revision = new_revision(generation + 1)
        self._documents[document_id] = (generation + 1, revision, copy.deepcopy(body))
        self._logger.debug(f"Updated document {document_id!r} to revision {revision!r}")
        return revision

    async def delete(self, document_id: str, expected: Revision) -> None:
        await asyncio.sleep(0)
        if document_id not in self._documents:
            raise NotFound(f"Document {document_id!r}")
        _, current, _ = self._documents[document_id]
        if current != expected:
            raise RevisionConflict(document_id, f"expected revision {expected!r}, found {current!r}")
        del self._documents[document_id]
        self._logger.debug(f"Deleted document {document_id!r}")

    async def list_posts(self, skip: int = 0, limit: Optional[int] = None) -> Tuple[List[Document], int]:
        await asyncio.sleep(0)
        documents = sorted(
            [
                Document(id=k, revision=revision, body=copy.deepcopy(body))
                for k, (_, revision, body) in self._documents.items()
                if body.get("type") == POST_DOCUMENT_TYPE
            ],
            key=sort_key,
            reverse=True
        )
        end = None if limit is None else skip + limit
        return documents[skip:end], len(documents)

    def __len__(self) -> int:
        return len(self._documents)
