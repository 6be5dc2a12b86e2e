"""
Blog core schemas for posts

The revision token of a post is part of the ``Post`` model, but it is
excluded from any serialized representation. HTTP clients only ever see
it in the ``ETag`` header of a response (see ``api.etag``).
"""

import datetime
from typing import List, Optional

import pydantic


MAX_TITLE_LENGTH = 500
MAX_SLUG_LENGTH = 200
MAX_SUMMARY_LENGTH = 1000
MAX_CONTENT_LENGTH = 100000
MAX_TAG_LENGTH = 50

tag_type = pydantic.constr(min_length=1, max_length=MAX_TAG_LENGTH)


class PostMetadata(pydantic.BaseModel):
    id: pydantic.constr(min_length=1, max_length=255)
    slug: pydantic.constr(min_length=1, max_length=MAX_SLUG_LENGTH)
    title: pydantic.constr(min_length=1, max_length=MAX_TITLE_LENGTH)
    date: datetime.date
    tags: List[tag_type] = []
    summary: Optional[pydantic.constr(max_length=MAX_SUMMARY_LENGTH)] = None


class Post(PostMetadata):
    content: pydantic.constr(min_length=1, max_length=MAX_CONTENT_LENGTH)
    revision: Optional[str] = pydantic.Field(default=None, exclude=True)

    @property
    def metadata(self) -> PostMetadata:
        return PostMetadata(**self.model_dump(exclude={"content"}))


class PostCreation(pydantic.BaseModel):
    title: pydantic.constr(max_length=MAX_TITLE_LENGTH)
    slug: Optional[pydantic.constr(max_length=MAX_SLUG_LENGTH)] = None
    date: Optional[datetime.date] = None
    tags: Optional[List[tag_type]] = None
    summary: Optional[pydantic.constr(max_length=MAX_SUMMARY_LENGTH)] = None
    content: pydantic.constr(max_length=MAX_CONTENT_LENGTH)


class PostUpdate(PostCreation):
    pass


class PagedPosts(pydantic.BaseModel):
    posts: List[PostMetadata] = []
    page: pydantic.NonNegativeInt
    size: pydantic.PositiveInt
    total: pydantic.NonNegativeInt
    has_next: bool

    @pydantic.computed_field
    @property
    def total_pages(self) -> int:
        return (self.total + self.size - 1) // self.size
