"""
Blog core API dependency library
"""

import logging
from typing import Optional

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import auth, base
from .etag import ETag
from ..misc.posts import PostManager
from ..settings import Settings


logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_manager(request: Request) -> PostManager:
    return request.app.state.manager


async def get_principal(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(HTTPBearer(auto_error=False)),
        settings: Settings = Depends(get_settings)
) -> Optional[str]:
    """
    Return the subject of the bearer token of the request (or None for anonymous requests)
    """

    request.state.principal = None
    if credentials is None:
        return None
    try:
        principal = auth.decode_access_token(credentials.credentials, settings.auth)
    except ValueError as exc:
        raise base.InvalidToken(str(exc)) from exc
    request.state.principal = principal
    return principal


class LocalRequestData:
    """
    Collection of core dependencies used by all path operations

    This class stores references to various important objects that
    will almost certainly be used by request handlers (path operations).
    Note that any dependency added here will be added to the OpenAPI
    definition, if it refers to a Query, Header, Path or Cookie.
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            manager: PostManager = Depends(get_manager),
            settings: Settings = Depends(get_settings),
            principal: Optional[str] = Depends(get_principal)
    ):
        self.request = request
        self.response = response
        self.headers = request.headers
        self.manager = manager
        self.config = settings
        self.principal = principal
        self.etag = ETag(request)

    @property
    def authorized(self) -> bool:
        """
        Flag whether the principal of this request may modify posts
        """

        return auth.is_admin(self.principal, self.config.auth)
