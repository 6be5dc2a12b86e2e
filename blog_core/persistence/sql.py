"""
Document store backed by a relational database via SQLAlchemy
"""

import json
import logging
import contextlib
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple, TypeVar

import sqlalchemy
import sqlalchemy.exc
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from . import database
from .models import StoredDocument
from .store import Document, DocumentStore, Revision, SlugHolder, POST_DOCUMENT_TYPE, new_revision
from ..err import NotFound, RevisionConflict, StoreError


T = TypeVar("T")


class SQLStore(DocumentStore):
    """
    Document store keeping the current version of each document in one table row

    Conditional writes are single ``UPDATE`` or ``DELETE`` statements
    restricted to the expected revision, so the database decides which
    of two concurrent writers wins, even across multiple processes.
    The blocking database sessions run in the worker thread pool,
    so the event loop keeps serving other requests meanwhile.
    """

    def __init__(
            self,
            session_factory: Optional[Callable[[], Session]] = None,
            logger: Optional[logging.Logger] = None
    ):
        self._make_session = session_factory or database.get_new_session
        self._logger = logger or logging.getLogger(__name__)

    @contextlib.contextmanager
    def _session(self) -> Generator[Session, None, None]:
        session = self._make_session()
        try:
            yield session
        except sqlalchemy.exc.SQLAlchemyError as exc:
            self._logger.exception(f"{type(exc).__name__}: {str(exc)}")
            session.rollback()
            raise StoreError("The database failed to process the request.", str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _call(self, func: Callable[[Session], T]) -> T:
        with database.access_lock():
            with self._session() as session:
                return func(session)

    async def _run(self, func: Callable[[Session], T]) -> T:
        return await run_in_threadpool(self._call, func)

    @staticmethod
    def _columns(body: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "type": body.get("type"),
            "slug": body.get("slug"),
            "date": body.get("date"),
            "body": json.dumps(body)
        }

    async def get(self, document_id: str) -> Document:
        def _get(session: Session) -> Document:
            obj = session.get(StoredDocument, document_id)
            if obj is None:
                raise NotFound(f"Document {document_id!r}")
            return obj.document

        return await self._run(_get)

    async def find_by_slug(self, slug: str) -> List[SlugHolder]:
        def _find(session: Session) -> List[SlugHolder]:
            return [
                SlugHolder(id=obj.id, slug=obj.slug)
                for obj in session.query(StoredDocument).filter_by(slug=slug, type=POST_DOCUMENT_TYPE).all()
            ]

        return await self._run(_find)

    async def create(self, document_id: str, body: Dict[str, Any]) -> Revision:
        revision = new_revision(1)

        def _create(session: Session):
            session.add(StoredDocument(id=document_id, revision=revision, generation=1, **self._columns(body)))
            try:
                session.commit()
            except sqlalchemy.exc.IntegrityError as exc:
                session.rollback()
                raise RevisionConflict(document_id, "Document already exists") from exc

        await self._run(_create)
        self._logger.debug(f"Created document {document_id!r} with revision {revision!r}")
        return revision

    async def update(self, document_id: str, body: Dict[str, Any], expected: Revision) -> Revision:
        def _update(session: Session) -> Revision:
            current = session.get(StoredDocument, document_id)
            if current is None:
                raise NotFound(f"Document {document_id!r}")
            if current.revision != expected:
                raise RevisionConflict(document_id, f"expected revision {expected!r}, found {current.revision!r}")

            revision = new_revision(current.generation + 1)
            result = session.execute(
                sqlalchemy.update(StoredDocument)
                .where(StoredDocument.id == document_id, StoredDocument.revision == expected)
                .values(revision=revision, generation=StoredDocument.generation + 1, **self._columns(body))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                raise RevisionConflict(document_id, f"revision {expected!r} was replaced concurrently")
            session.commit()
            return revision

        new = await self._run(_update)
        self._logger.debug(f"Updated document {document_id!r} to revision {new!r}")
        return new

    async def delete(self, document_id: str, expected: Revision) -> None:
        def _delete(session: Session):
            result = session.execute(
                sqlalchemy.delete(StoredDocument)
                .where(StoredDocument.id == document_id, StoredDocument.revision == expected)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                if session.get(StoredDocument, document_id) is None:
                    raise NotFound(f"Document {document_id!r}")
                raise RevisionConflict(document_id, f"revision {expected!r} is not the current revision")
            session.commit()

        await self._run(_delete)
        self._logger.debug(f"Deleted document {document_id!r}")

    async def list_posts(self, skip: int = 0, limit: Optional[int] = None) -> Tuple[List[Document], int]:
        def _list(session: Session) -> Tuple[List[Document], int]:
            query = session.query(StoredDocument).filter_by(type=POST_DOCUMENT_TYPE)
            total = query.count()
            query = query.order_by(sqlalchemy.desc(StoredDocument.date), sqlalchemy.desc(StoredDocument.id))
            query = query.offset(skip)
            if limit is not None:
                query = query.limit(limit)
            return [obj.document for obj in query.all()], total

        return await self._run(_list)
