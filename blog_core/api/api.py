"""
Blog core REST API definitions

The API serves the posts of a blog from a revisioned document store.
Reading posts is public, while creating, updating and deleting posts
requires a bearer token of the configured admin principal.
"""

import contextlib
import logging.config
from typing import Any, Callable, Dict, Optional, Union

import fastapi
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import base
from .routers import router
from .. import err, schemas, __version__
from ..misc.posts import PostManager
from ..persistence import create_store
from ..persistence.store import DocumentStore
from ..settings import Settings


DEFAULT_EXCEPTION_HANDLERS: Dict[Any, Callable] = {
    err.BlogCoreException: base.handle_core_exception,
    StarletteHTTPException: base.APIException.handle,
    RequestValidationError: base.handle_request_validation_error,
    Exception: base.handle_generic_exception
}


API_DOC = __doc__ + """
The API tries to always return JSON-encoded data to any kind of request,
if return data is necessary for that response. All error responses use the
schema of the `APIError`, which allows user agents to make certain
assumptions about the returned response. The following error responses
are used in the API code:

1. `400` (Bad Request) for invalid input, e.g. a blank title, a malformed slug
   or an invalid page specification. The `message` can be shown to end users.
2. `401` (Unauthorized) for modifications without a valid bearer token and
   `403` (Forbidden) for modifications by a principal other than the admin.
3. `404` (Not Found) whenever a post can't be found by its slug or ID.
4. `409` (Conflict) if an explicitly requested slug is already taken or if
   another writer modified the post while the request was processed. The
   `repeat` flag of the `APIError` is set for the latter case: the client
   should fetch the post again and decide whether to repeat its request.
5. `412` (Precondition Failed) if the revision in the `If-Match` header of a
   `PUT` or `DELETE` request is not the current revision of the post.

A `502` (Bad Gateway) error indicates that the document store couldn't be
reached or answered unexpectedly. The request may be repeated later.
"""


def create_app(
        settings: Optional[Settings] = None,
        store: Optional[DocumentStore] = None,
        configure_logging: bool = True,
        responses: Optional[Dict[Union[int, str], Dict[str, Any]]] = None
) -> fastapi.FastAPI:
    """
    Create a new ``FastAPI`` instance using the specified settings and switches

    This function is conveniently used to allow overwriting the settings
    before launching the application as well as to allow multiple ``FastAPI``
    instances in one program, which in turn makes unit testing much easier.

    :param settings: optional Settings instance (would be created if not present)
    :param store: optional document store (would be created from the settings if not present)
    :param configure_logging: switch whether to configure logging
    :param responses: additional responses for the OpenAPI documentation
    :return: new ``FastAPI`` instance
    """

    if settings is None:
        settings = Settings()

    if configure_logging:
        logging.config.dictConfig(settings.logging.model_dump())
    logger = logging.getLogger(__name__)
    logger.debug("Starting application...")

    if store is None:
        store = create_store(settings.store, logger=logging.getLogger("blog_core.persistence"))
    manager = PostManager(store, general=settings.general, logger=logging.getLogger("blog_core.posts"))

    @contextlib.asynccontextmanager
    async def lifespan(_: fastapi.FastAPI):
        logger.info(f"Starting API with {type(store).__name__}...")
        yield
        logger.info("Shutting down...")
        await store.close()

    app = fastapi.FastAPI(
        title="Blog core REST API",
        version=__version__,
        description=API_DOC,
        responses=responses or {400: {"model": schemas.APIError}},
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.manager = manager

    for exc, handler in DEFAULT_EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc, handler)

    @app.get("/", include_in_schema=False)
    async def redirect_root():
        return RedirectResponse("./docs")

    app.include_router(router)
    return app


class APIWrapper:
    """
    Wrapper class around the FastAPI main object, accessible via the ``app`` property

    There should be only one global instance of this object, which should only
    export its functionality to hold the ``app`` property. This wrapper can be
    used to allow easy command-line usage via ``uvicorn`` calls. Example:

    .. code-block::

        uvicorn blog_core.api:api.app
    """

    def __init__(self):
        self._app: Optional[fastapi.FastAPI] = None

    def set_app(self, application: fastapi.FastAPI):
        if not isinstance(application, fastapi.FastAPI):
            raise TypeError
        self._app = application

    @property
    def app(self) -> fastapi.FastAPI:
        """
        Return the ``app`` instance (or create it with default settings if it doesn't exist)
        """

        if self._app is not None:
            return self._app
        self._app = create_app()
        return self._app


api = APIWrapper()
