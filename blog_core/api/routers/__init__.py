"""
Blog core router modules for handling requests to various endpoints

This module exports the ``router`` object which includes all known endpoints.
"""

from fastapi import APIRouter

# The order of the imports defines the order of the endpoints in the OpenAPI documentation
from . import generic, posts

router = APIRouter()
router.include_router(generic.router)
router.include_router(posts.router)
