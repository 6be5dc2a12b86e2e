"""
Slug normalization and validation

Everything in this module is pure: no I/O and the same input always
yields the same output. Uniqueness is handled by ``misc.allocator``.
"""

import re
import hashlib
import datetime
import unicodedata

from ..err import ValidationError


MAX_SLUG_LENGTH: int = 200
MIN_SLUG_LENGTH: int = 1
HASH_LENGTH: int = 6
FALLBACK_PREFIX: str = "post"

VALID_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
_SEPARATORS = re.compile(r"[^a-z0-9]+")
_INVALID_CHARACTERS = re.compile(r"[^a-z0-9-]")
_HYPHENS = re.compile(r"-+")


def _strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def truncate(slug: str, length: int = MAX_SLUG_LENGTH) -> str:
    """
    Cut a slug to the given length without leaving a trailing hyphen
    """

    return slug[:length].rstrip("-")


def normalize(title: str) -> str:
    """
    Convert a title into a candidate slug

    Diacritics are stripped (``Olá`` becomes ``ola``), the text is lower-cased
    and every run of characters other than ``a-z`` and ``0-9`` is replaced by
    one hyphen. Leading and trailing hyphens are removed and the result is
    truncated to ``MAX_SLUG_LENGTH``. The result may be empty, e.g. for titles
    without any Latin letters or digits; callers have to fall back to a
    synthetic base (see ``fallback_base``) in that case.

    :param title: any title string
    :return: candidate slug, possibly empty
    """

    if not title:
        return ""
    slug = _SEPARATORS.sub("-", _strip_diacritics(title).lower()).strip("-")
    return truncate(slug)


def sanitize(slug: str) -> str:
    """
    Clean up a caller-supplied base candidate by dropping invalid characters
    """

    if not slug:
        return ""
    slug = _INVALID_CHARACTERS.sub("", slug.strip().lower())
    return truncate(_HYPHENS.sub("-", slug).strip("-"))


def is_valid_slug(slug: str) -> bool:
    if not slug or not MIN_SLUG_LENGTH <= len(slug) <= MAX_SLUG_LENGTH:
        return False
    return VALID_SLUG_PATTERN.match(slug) is not None


def validate_slug(slug: str) -> str:
    """
    Return the slug unchanged if it's valid

    :raises ValidationError: if the slug is empty, too long or doesn't match the pattern
    """

    if not is_valid_slug(slug):
        raise ValidationError(
            "Invalid slug. Use lower-case letters, digits and single hyphens between them.",
            f"slug={slug!r}"
        )
    return slug


def short_hash(value: str) -> str:
    return hashlib.md5(value.encode("UTF-8")).hexdigest()[:HASH_LENGTH]


def fallback_base(seed: str, today: datetime.date) -> str:
    """
    Build a synthetic base candidate like ``post-2024-01-1a2b3c`` for titles without usable characters
    """

    return f"{FALLBACK_PREFIX}-{today:%Y-%m}-{short_hash(seed)}"
