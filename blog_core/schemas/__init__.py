"""
Blog core schema definitions

Posts have a base schema ``Post`` and the following extended schemas:
 * ``PostMetadata`` for listings (everything except the content)
 * ``PostCreation`` to create a new post
 * ``PostUpdate`` to replace the editable fields of an existing post

The identifier of a post is never part of a creation or update
request, it's assigned by the server and taken from the request path.

This package also contains the ``config`` module, but it's not
exported by default, since it's only used by the settings.
"""

from .bases import *
from .errors import *
