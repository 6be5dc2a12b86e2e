"""
Blog core project-wide exception classes

The core never converts these exceptions into default values. The
HTTP layer translates them into error responses (see ``api.base``),
every other caller gets them as they were raised.
"""

from typing import Optional


class BlogCoreException(Exception):
    """
    Base class for all project-wide exceptions

    The ``message`` should be short and readable by end users, while
    ``details`` may contain anything that helps debugging the problem.
    """

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class ValidationError(BlogCoreException):
    """
    Exception for malformed input that the caller is able to correct

    This covers invalid slug patterns, empty required fields, fields
    exceeding their maximum length and out-of-range page specifications.
    """


class InvalidInput(ValidationError):
    """
    Exception when the slug allocator got nothing it could work with

    This happens if the base candidate is empty after sanitization
    and no fallback seed to build a synthetic base was given.
    """


class NotFound(BlogCoreException):
    """
    Exception when a referenced post does not exist in the document store
    """

    def __init__(self, resource: str, details: Optional[str] = None):
        super().__init__(f"{resource} was not found.", details)
        self.resource = resource


class SlugTaken(BlogCoreException):
    """
    Exception when an explicitly requested slug is already held by another post
    """

    def __init__(self, slug: str, details: Optional[str] = None):
        super().__init__(f"The slug {slug!r} is already in use.", details)
        self.slug = slug


class RevisionConflict(BlogCoreException):
    """
    Exception when the revision of a write doesn't match the stored revision

    Another writer modified or removed the document in the meantime. The
    caller has to fetch the document again and decide whether to retry.
    """

    def __init__(self, document_id: str, details: Optional[str] = None):
        super().__init__(f"Document {document_id!r} was modified concurrently.", details)
        self.document_id = document_id


class StoreError(BlogCoreException):
    """
    Exception for any other failure of the document store (transport, timeout, bad response)
    """


class Unauthorized(BlogCoreException):
    """
    Exception when a caller that was not authorized upstream tries to modify posts
    """
