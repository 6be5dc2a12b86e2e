"""
Blog core router module for /posts requests
"""

import logging
from typing import List, Optional

import pydantic
from fastapi import APIRouter, Depends, Query, Response

from ..dependency import LocalRequestData
from ... import schemas


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/posts",
    tags=["Posts"]
)


@router.get(
    "",
    response_model=schemas.PagedPosts
)
async def get_posts_paged(
        page: pydantic.NonNegativeInt = Query(0),
        size: Optional[pydantic.PositiveInt] = Query(None),
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return one page of post metadata (without the content), newest posts first.

    The page number is zero-based. The page size defaults to the configured
    default page size and must not exceed the configured maximum.
    A 400 error will be returned for invalid page specifications.
    """

    paged = await local.manager.list_page(page, size)
    logger.debug(f"Returning page {page} with {len(paged.posts)} posts (total: {paged.total})")
    return paged


@router.get(
    "/all",
    response_model=List[schemas.Post]
)
async def get_all_posts(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return a list of all posts including their content, newest posts first.
    """

    return await local.manager.list_all()


@router.get(
    "/{slug}",
    response_model=schemas.Post,
    responses={304: {}, 404: {"model": schemas.APIError}}
)
async def get_post_by_slug(slug: str, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the post currently holding the slug.

    The response carries the revision of the post in the `ETag` header.
    A 304 response without body will be returned if the `If-None-Match`
    header contains the current entity tag of the post.
    A 400 error will be returned for malformed slugs.
    A 404 error will be returned if no post holds that slug.
    """

    post = await local.manager.get_by_slug(slug)
    if local.etag.not_modified(post):
        return Response(status_code=304, headers={"ETag": f'"{post.revision}"'})
    local.etag.add_header(local.response, post)
    return post


@router.post(
    "",
    status_code=201,
    response_model=schemas.Post,
    responses={401: {"model": schemas.APIError}, 403: {"model": schemas.APIError}, 409: {"model": schemas.APIError}}
)
async def create_new_post(
        post: schemas.PostCreation,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Create a new post.

    Without a `slug`, a unique slug will be generated from the title.
    An explicitly requested slug must be valid; if it's already in use,
    a 409 error will be returned (or, depending on the server config,
    a suffix will be added to make it unique). The `date` defaults to today.
    A 401 or 403 error will be returned for callers other than the admin.
    """

    created = await local.manager.create(post, local.authorized)
    local.etag.add_header(local.response, created)
    local.response.headers["Location"] = f"{local.request.url.path.rstrip('/')}/{created.slug}"
    return created


@router.put(
    "/{post_id}",
    response_model=schemas.Post,
    responses={
        401: {"model": schemas.APIError},
        403: {"model": schemas.APIError},
        404: {"model": schemas.APIError},
        409: {"model": schemas.APIError},
        412: {"model": schemas.APIError}
    }
)
async def update_existing_post(
        post_id: str,
        post: schemas.PostUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Replace the editable fields of an existing post.

    The slug changes if a new `slug` is given or the title changed.
    Send the `ETag` of the fetched post in the `If-Match` header to make
    sure that nobody else modified the post in the meantime.
    A 404 error will be returned if the `post_id` doesn't exist.
    A 409 error will be returned if the requested slug is in use or if the
    post was modified concurrently while the request was processed.
    A 412 error will be returned if the `If-Match` header is outdated.
    """

    updated = await local.manager.update(post_id, post, local.authorized, local.etag.expected_revision)
    local.etag.add_header(local.response, updated)
    return updated


@router.delete(
    "/{post_id}",
    status_code=204,
    responses={
        401: {"model": schemas.APIError},
        403: {"model": schemas.APIError},
        404: {"model": schemas.APIError},
        409: {"model": schemas.APIError},
        412: {"model": schemas.APIError}
    }
)
async def delete_existing_post(post_id: str, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Delete an existing post.

    A 404 error will be returned if the `post_id` doesn't exist.
    A 409 error will be returned if the post was modified concurrently.
    A 412 error will be returned if the `If-Match` header is outdated.
    """

    await local.manager.delete(post_id, local.authorized, local.etag.expected_revision)
    return Response(status_code=204)
