"""
ETag helper library for the core REST API

The entity tag of a post is its revision token. Clients can send it back
in the ``If-Match`` header of a ``PUT`` or ``DELETE`` request to make the
modification conditional on the version they've seen, which detects
mid-air collisions across the whole round trip through the client.
"""

import logging
from typing import Optional

from fastapi import Request, Response

from .base import BadRequest
from .. import schemas
from ..persistence.store import Revision


logger = logging.getLogger(__name__)


def _unquote(tag: str) -> str:
    if tag.startswith('"'):
        tag = tag[1:]
    if tag.endswith('"'):
        tag = tag[:-1]
    return tag


class ETag:
    """
    Helper class to read and write the revision-based entity tags of a request
    """

    request: Request

    def __init__(self, request: Request):
        self.request = request

        for field in ["If-Modified-Since", "If-Unmodified-Since", "If-Range"]:
            if request.headers.get(field):
                logger.warning(f"'{field}' header not supported.")
                logger.debug(f"Field value: {request.headers.get(field)!r}")

    @staticmethod
    def add_header(response: Response, post: schemas.Post) -> bool:
        """
        Add the ETag header field of the post to the response

        :return: whether the ETag header has been set on the response
        """

        if not post.revision:
            return False
        response.headers["ETag"] = f'"{post.revision}"'
        return True

    @property
    def expected_revision(self) -> Optional[Revision]:
        """
        Revision from the ``If-Match`` header, if the client sent a single strong tag

        ``If-Match: *`` or a missing header result in ``None``, which makes the
        server use the revision it read itself.

        :raises BadRequest: if the header contains weak or multiple tags
        """

        match = self.request.headers.get("If-Match")
        if match is None or match.strip() in ("", "*"):
            return None

        tags = [tag for tag in map(str.strip, match.split(",")) if tag != ""]
        if any(tag.startswith("W/") for tag in tags):
            raise BadRequest("Weak entity tags can't be used for modifications.", f"If-Match: {match}")
        if len(tags) != 1:
            raise BadRequest("Exactly one entity tag is required in 'If-Match'.", f"If-Match: {match}")
        return Revision(_unquote(tags[0]))

    def not_modified(self, post: schemas.Post) -> bool:
        """
        Determine whether the client's cached version (``If-None-Match``) is still current
        """

        match = self.request.headers.get("If-None-Match")
        if not match or not post.revision:
            return False
        if match.strip() == "*":
            return True
        tags = [_unquote(tag.strip().removeprefix("W/")) for tag in match.split(",")]
        return post.revision in tags
