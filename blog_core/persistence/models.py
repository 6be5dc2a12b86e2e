"""
Blog core database models for the SQL document store
"""

import json
import datetime

from sqlalchemy import DateTime, Integer, String, Text, Column, FetchedValue
from sqlalchemy.sql import func

from .database import Base
from .store import Document, Revision


class StoredDocument(Base):
    """
    Model representing the current version of one document

    The body is kept as JSON text. The ``type``, ``slug`` and ``date``
    columns duplicate parts of the body so that uniqueness checks and
    listings can be answered by the database. There is no unique
    constraint on the slug column, the slug allocator keeps slugs unique.
    """

    __tablename__ = "documents"

    id: str = Column(String(255), nullable=False, primary_key=True)
    revision: str = Column(String(64), nullable=False)
    generation: int = Column(Integer, nullable=False, default=1)
    type: str = Column(String(32), nullable=True, index=True)
    slug: str = Column(String(200), nullable=True, index=True)
    date: str = Column(String(10), nullable=True, index=True)
    body: str = Column(Text, nullable=False)
    created: datetime.datetime = Column(DateTime, server_default=func.now())
    modified: datetime.datetime = Column(DateTime, server_onupdate=FetchedValue(), server_default=func.now(), onupdate=func.now())

    @property
    def document(self) -> Document:
        """
        Immutable snapshot of the stored document version
        """

        return Document(id=self.id, revision=Revision(self.revision), body=json.loads(self.body))

    def __repr__(self) -> str:
        return f"StoredDocument(id={self.id}, revision={self.revision}, slug={self.slug})"
