"""
Lifecycle of posts: creating, updating, deleting and reading them

Every modification follows the same discipline: read the current
document, decide, then write conditionally with the revision that was
read. If another writer got in between, the store rejects the write
with ``RevisionConflict``, which is handed to the caller unchanged.
The manager never retries on its own, since the caller has to decide
whether the concurrent change should be overwritten.
"""

import uuid
import logging
from typing import Any, Dict, List, Optional, Union

import pydantic

from . import slugs
from .allocator import SlugAllocator
from .logger import enforce_logger
from .. import schemas
from ..err import NotFound, RevisionConflict, SlugTaken, StoreError, Unauthorized, ValidationError
from ..persistence.store import Document, DocumentStore, Revision, POST_DOCUMENT_TYPE
from ..schemas.config import GeneralConfig, SlugPolicy


PostRequest = Union[schemas.PostCreation, schemas.PostUpdate]


def _check_text(name: str, value: Optional[str], max_length: int, required: bool):
    if value is None or not value.strip():
        if required:
            raise ValidationError(f"The {name} must not be empty.")
        return
    if len(value) > max_length:
        raise ValidationError(f"The {name} must not exceed {max_length} characters.", f"length={len(value)}")


def validate_request(request: PostRequest):
    """
    Check the content fields of a creation or update request

    :raises ValidationError: if a required field is blank, a field is too long
        or the explicitly requested slug is malformed
    """

    _check_text("title", request.title, schemas.MAX_TITLE_LENGTH, True)
    _check_text("content", request.content, schemas.MAX_CONTENT_LENGTH, True)
    _check_text("summary", request.summary, schemas.MAX_SUMMARY_LENGTH, False)
    for tag in request.tags or []:
        if not tag or not tag.strip() or len(tag) > schemas.MAX_TAG_LENGTH:
            raise ValidationError(
                f"Tags must not be blank and must not exceed {schemas.MAX_TAG_LENGTH} characters.",
                f"tag={tag!r}"
            )
    if has_explicit_slug(request):
        slugs.validate_slug(request.slug)


def has_explicit_slug(request: PostRequest) -> bool:
    return request.slug is not None and request.slug.strip() != ""


class PostManager:
    """
    Stateless coordinator of the slug allocator and the document store

    The manager doesn't know how callers are authenticated. Each mutating
    operation gets an ``authorized`` flag computed by the caller instead.
    """

    def __init__(
            self,
            store: DocumentStore,
            allocator: Optional[SlugAllocator] = None,
            general: Optional[GeneralConfig] = None,
            logger: Optional[logging.Logger] = None
    ):
        self.store = store
        self.allocator = allocator or SlugAllocator(store, logger=logger)
        self.general = general or GeneralConfig()
        self.logger = enforce_logger(logger, __name__)

    @staticmethod
    def _ensure_authorized(authorized: bool, action: str):
        if not authorized:
            raise Unauthorized(f"You are not allowed to {action} posts.")

    def _to_post(self, document: Document) -> schemas.Post:
        try:
            return schemas.Post(id=document.id, revision=document.revision, **{
                k: v for k, v in document.body.items()
                if k in schemas.Post.model_fields and k not in ("id", "revision")
            })
        except pydantic.ValidationError as exc:
            self.logger.error(f"Stored document {document.id!r} is not a valid post: {exc}")
            raise StoreError("A stored post is malformed.", f"id={document.id!r}") from exc

    async def _fetch(self, post_id: str) -> Document:
        document = await self.store.get(post_id)
        if document.body.get("type") != POST_DOCUMENT_TYPE:
            raise NotFound(f"Post {post_id!r}", "document is not a blog post")
        return document

    @staticmethod
    def _check_expected_revision(document: Document, expected_revision: Optional[Revision]):
        if expected_revision is not None and expected_revision != document.revision:
            raise RevisionConflict(document.id, "the post has been modified since it was fetched")

    async def _explicit_slug(self, slug: str, exclude_id: Optional[str]) -> str:
        if self.general.explicit_slug_policy == SlugPolicy.SUFFIX:
            return await self.allocator.allocate(slug, exclude_id)
        if await self.allocator.slug_in_use(slug, exclude_id):
            raise SlugTaken(slug)
        return slug

    def _today(self):
        return self.allocator.clock.now().date()

    @staticmethod
    def _make_body(request: PostRequest, slug: str, date) -> Dict[str, Any]:
        return {
            "type": POST_DOCUMENT_TYPE,
            "title": request.title,
            "slug": slug,
            "date": date.isoformat(),
            "tags": list(request.tags or []),
            "summary": request.summary,
            "content": request.content
        }

    async def create(self, request: schemas.PostCreation, authorized: bool) -> schemas.Post:
        """
        Create a new post with a fresh ID and a unique slug

        :param request: content of the new post
        :param authorized: whether the caller may modify posts
        :return: the stored post including its first revision
        :raises Unauthorized: if the caller is not authorized
        :raises ValidationError: if the request is malformed
        :raises SlugTaken: if the explicitly requested slug is taken and may not be changed
        :raises StoreError: if the document store failed
        """

        self._ensure_authorized(authorized, "create")
        validate_request(request)

        if has_explicit_slug(request):
            slug = await self._explicit_slug(request.slug, None)
        else:
            slug = await self.allocator.allocate_from_title(request.title)

        post_id = uuid.uuid4().hex
        body = self._make_body(request, slug, request.date or self._today())
        revision = await self.store.create(post_id, body)
        self.logger.info(f"Created post {post_id!r} with slug {slug!r}")
        return self._to_post(Document(id=post_id, revision=revision, body=body))

    async def update(
            self,
            post_id: str,
            request: schemas.PostUpdate,
            authorized: bool,
            expected_revision: Optional[Revision] = None
    ) -> schemas.Post:
        """
        Replace the editable fields of an existing post

        The slug changes only if the request contains an explicit slug or
        a different title; otherwise the existing slug is kept without any
        allocation. The date is kept if the request doesn't contain one.

        :param post_id: ID of the post to be updated
        :param request: new content of the post
        :param authorized: whether the caller may modify posts
        :param expected_revision: optional revision the caller's change is based on
        :return: the stored post including its new revision
        :raises Unauthorized: if the caller is not authorized
        :raises ValidationError: if the request is malformed
        :raises NotFound: if the post doesn't exist
        :raises SlugTaken: if the explicitly requested slug is taken and may not be changed
        :raises RevisionConflict: if the post was modified concurrently
        :raises StoreError: if the document store failed
        """

        self._ensure_authorized(authorized, "update")
        validate_request(request)

        current = await self._fetch(post_id)
        self._check_expected_revision(current, expected_revision)

        if has_explicit_slug(request):
            slug = await self._explicit_slug(request.slug, post_id)
        elif request.title != current.body.get("title"):
            slug = await self.allocator.allocate_from_title(request.title, post_id)
        else:
            slug = current.body["slug"]

        date = request.date or self._to_post(current).date
        body = self._make_body(request, slug, date)
        revision = await self.store.update(post_id, body, current.revision)
        self.logger.info(f"Updated post {post_id!r} (slug {slug!r})")
        return self._to_post(Document(id=post_id, revision=revision, body=body))

    async def delete(self, post_id: str, authorized: bool, expected_revision: Optional[Revision] = None):
        """
        Delete an existing post

        :param post_id: ID of the post to be deleted
        :param authorized: whether the caller may modify posts
        :param expected_revision: optional revision the caller's deletion is based on
        :raises Unauthorized: if the caller is not authorized
        :raises NotFound: if the post doesn't exist or has no revision
        :raises RevisionConflict: if the post was modified concurrently
        :raises StoreError: if the document store failed
        """

        self._ensure_authorized(authorized, "delete")

        current = await self._fetch(post_id)
        if not current.revision:
            raise NotFound(f"Post {post_id!r}", "the stored post has no revision")
        self._check_expected_revision(current, expected_revision)

        await self.store.delete(post_id, current.revision)
        self.logger.info(f"Deleted post {post_id!r} (slug {current.body.get('slug')!r})")

    async def get(self, post_id: str) -> schemas.Post:
        return self._to_post(await self._fetch(post_id))

    async def get_by_slug(self, slug: str) -> schemas.Post:
        """
        Return the post currently holding the slug

        :raises ValidationError: if the slug is malformed
        :raises NotFound: if no post holds the slug
        """

        slugs.validate_slug(slug)
        holders = await self.store.find_by_slug(slug)
        if not holders:
            raise NotFound(f"Post with slug {slug!r}")
        if len(holders) > 1:
            self.logger.warning(f"Slug {slug!r} is held by {len(holders)} posts: {holders!r}")
        return await self.get(sorted(holders, key=lambda h: h.id)[0].id)

    async def list_page(self, page: int = 0, size: Optional[int] = None) -> schemas.PagedPosts:
        """
        Return one page of post metadata, newest posts first

        :param page: zero-based page number
        :param size: number of posts per page (default page size if omitted)
        :raises ValidationError: if the page is negative or the size out of range
        """

        size = self.general.default_page_size if size is None else size
        if page < 0:
            raise ValidationError("The page must not be negative.", f"page={page}")
        if not 1 <= size <= self.general.max_page_size:
            raise ValidationError(
                f"The page size must be between 1 and {self.general.max_page_size}.",
                f"size={size}"
            )

        documents, total = await self.store.list_posts(skip=page * size, limit=size)
        return schemas.PagedPosts(
            posts=[self._to_post(document).metadata for document in documents],
            page=page,
            size=size,
            total=total,
            has_next=(page + 1) * size < total
        )

    async def list_all(self) -> List[schemas.Post]:
        documents, _ = await self.store.list_posts()
        return [self._to_post(document) for document in documents]
