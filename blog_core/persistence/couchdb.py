"""
Document store client for CouchDB using its HTTP API

CouchDB manages the revision tokens itself (the ``_rev`` field of a document).
Writes with a stale ``_rev`` are answered with ``409 Conflict``, which this
client translates into ``RevisionConflict``. Uniqueness checks use a Mango
query on the ``slug`` field, listings the ``by_date`` view of the ``posts``
design document. Use ``ensure_database`` once to create both of them.
"""

import re
import asyncio
import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from .store import Document, DocumentStore, Revision, SlugHolder, POST_DOCUMENT_TYPE
from ..err import InvalidInput, NotFound, RevisionConflict, StoreError


DESIGN_DOCUMENT_ID: str = "_design/posts"
DESIGN_DOCUMENT: Dict[str, Any] = {
    "language": "javascript",
    "views": {
        "by_date": {
            "map": f"function (doc) {{ if (doc.type === '{POST_DOCUMENT_TYPE}') {{ emit(doc.date, null); }} }}"
        }
    }
}
SLUG_INDEX: Dict[str, Any] = {
    "index": {"fields": ["type", "slug"]},
    "name": "posts-by-slug",
    "type": "json"
}
MAX_SLUG_HOLDERS: int = 100


def mask_uri(uri: str) -> str:
    """
    Remove credentials from a URI so that it can be logged
    """

    return re.sub(r"://[^:/@]+:[^@/]+@", "://***:***@", uri)


class CouchDBStore(DocumentStore):
    """
    Document store client for one CouchDB database

    The ``aiohttp`` client session is created lazily on first use, because
    it has to be created while the event loop is running. A session passed
    to the constructor is used as-is and won't be closed by ``close``.
    """

    def __init__(
            self,
            uri: str,
            database: str,
            username: Optional[str] = None,
            password: Optional[str] = None,
            timeout: float = 30.0,
            session: Optional[aiohttp.ClientSession] = None,
            logger: Optional[logging.Logger] = None
    ):
        if not uri:
            raise ValueError("The CouchDB URI must not be empty")
        self._base = uri.rstrip("/") + "/" + urllib.parse.quote(database, safe="")
        self._auth = aiohttp.BasicAuth(username, password or "") if username else None
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._logger = logger or logging.getLogger(__name__)
        self._logger.info(f"Using CouchDB database {mask_uri(self._base)} (timeout: {timeout}s)")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=self._auth,
                timeout=self._timeout,
                headers={"Accept": "application/json"}
            )
            self._owns_session = True
        return self._session

    def _url(self, *parts: str) -> str:
        return "/".join([self._base, *(urllib.parse.quote(p, safe="/" if p.startswith("_design/") else "") for p in parts)])

    async def _request(self, method: str, url: str, **kwargs) -> Tuple[int, Any]:
        self._logger.debug(f"CouchDB request: {method} {mask_uri(url)}")
        try:
            async with self._get_session().request(method, url, **kwargs) as response:
                data = await response.json(content_type=None)
                self._logger.debug(f"CouchDB response: {response.status}")
                return response.status, data
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            self._logger.error(f"CouchDB request {method} {mask_uri(url)} failed: {exc!r}")
            raise StoreError("The document store is not available.", repr(exc)) from exc

    @staticmethod
    def _reason(data: Any) -> str:
        if isinstance(data, dict):
            return f"{data.get('error')}: {data.get('reason')}"
        return repr(data)

    def _unexpected(self, method: str, status: int, data: Any) -> StoreError:
        self._logger.error(f"Unexpected CouchDB response to {method}: {status} {self._reason(data)}")
        return StoreError("The document store failed to process the request.", f"{status} {self._reason(data)}")

    def _revision(self, method: str, status: int, data: Any) -> Revision:
        if not isinstance(data, dict) or not isinstance(data.get("rev"), str):
            raise self._unexpected(method, status, data)
        return Revision(data["rev"])

    async def _conflict(self, document_id: str, data: Any) -> Exception:
        # CouchDB answers writes to deleted documents with 409 as well
        status, _ = await self._request("HEAD", self._url(document_id))
        if status == 404:
            return NotFound(f"Document {document_id!r}", self._reason(data))
        return RevisionConflict(document_id, self._reason(data))

    @staticmethod
    def _is_reserved(document_id: str) -> bool:
        # ids with a leading underscore address database endpoints like _all_docs or _changes
        return document_id.startswith("_")

    def _to_document(self, data: Any) -> Document:
        if not isinstance(data, dict) or not isinstance(data.get("_id"), str) or not isinstance(data.get("_rev"), str):
            self._logger.error(f"Malformed CouchDB document: {data!r:.200}")
            raise StoreError("The document store returned a malformed document.", repr(data)[:200])
        body = dict(data)
        document_id = body.pop("_id")
        revision = Revision(body.pop("_rev"))
        return Document(id=document_id, revision=revision, body=body)

    async def get(self, document_id: str) -> Document:
        if self._is_reserved(document_id):
            raise NotFound(f"Document {document_id!r}", "reserved document id")
        status, data = await self._request("GET", self._url(document_id))
        if status == 200:
            return self._to_document(data)
        if status == 404:
            raise NotFound(f"Document {document_id!r}", self._reason(data))
        raise self._unexpected("GET", status, data)

    async def find_by_slug(self, slug: str) -> List[SlugHolder]:
        query = {
            "selector": {"type": POST_DOCUMENT_TYPE, "slug": slug},
            "fields": ["_id", "slug"],
            "limit": MAX_SLUG_HOLDERS
        }
        status, data = await self._request("POST", self._url("_find"), json=query)
        if status != 200 or not isinstance(data, dict):
            raise self._unexpected("_find", status, data)
        if data.get("warning"):
            self._logger.warning(f"CouchDB slug query: {data['warning']}")
        return [SlugHolder(id=doc["_id"], slug=doc["slug"]) for doc in data.get("docs", [])]

    async def create(self, document_id: str, body: Dict[str, Any]) -> Revision:
        if self._is_reserved(document_id):
            raise InvalidInput(f"Document id {document_id!r} must not start with an underscore")
        status, data = await self._request("PUT", self._url(document_id), json=body)
        if status in (201, 202):
            return self._revision("PUT", status, data)
        if status == 409:
            raise RevisionConflict(document_id, "Document already exists")
        raise self._unexpected("PUT", status, data)

    async def update(self, document_id: str, body: Dict[str, Any], expected: Revision) -> Revision:
        if self._is_reserved(document_id):
            raise NotFound(f"Document {document_id!r}", "reserved document id")
        status, data = await self._request("PUT", self._url(document_id), json={**body, "_rev": expected})
        if status in (201, 202):
            return self._revision("PUT", status, data)
        if status == 404:
            raise NotFound(f"Document {document_id!r}", self._reason(data))
        if status == 409:
            raise await self._conflict(document_id, data)
        raise self._unexpected("PUT", status, data)

    async def delete(self, document_id: str, expected: Revision) -> None:
        if self._is_reserved(document_id):
            raise NotFound(f"Document {document_id!r}", "reserved document id")
        status, data = await self._request("DELETE", self._url(document_id), params={"rev": expected})
        if status in (200, 202):
            return
        if status == 404:
            raise NotFound(f"Document {document_id!r}", self._reason(data))
        if status == 409:
            raise await self._conflict(document_id, data)
        raise self._unexpected("DELETE", status, data)

    async def list_posts(self, skip: int = 0, limit: Optional[int] = None) -> Tuple[List[Document], int]:
        params = {"include_docs": "true", "descending": "true", "skip": str(skip)}
        if limit is not None:
            params["limit"] = str(limit)
        status, data = await self._request("GET", self._url(DESIGN_DOCUMENT_ID, "_view", "by_date"), params=params)
        if status != 200 or not isinstance(data, dict):
            raise self._unexpected("by_date", status, data)
        documents = [self._to_document(row["doc"]) for row in data.get("rows", []) if row.get("doc")]
        return documents, int(data.get("total_rows", len(documents)))

    async def ensure_database(self) -> None:
        """
        Create the database, the design document and the slug index if they don't exist yet
        """

        status, data = await self._request("PUT", self._base)
        if status in (201, 202):
            self._logger.info(f"Created CouchDB database {mask_uri(self._base)}")
        elif status != 412:
            raise self._unexpected("PUT database", status, data)

        status, data = await self._request("GET", self._url(DESIGN_DOCUMENT_ID))
        if status == 404:
            status, data = await self._request("PUT", self._url(DESIGN_DOCUMENT_ID), json=DESIGN_DOCUMENT)
            if status not in (201, 202):
                raise self._unexpected("PUT design document", status, data)
            self._logger.info("Created design document for post listings")
        elif status != 200:
            raise self._unexpected("GET design document", status, data)

        status, data = await self._request("POST", self._url("_index"), json=SLUG_INDEX)
        if status not in (200, 201):
            raise self._unexpected("_index", status, data)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
