"""
Slug allocation: turning a candidate into a slug no other post holds

The allocator tries human-readable alternatives first and trades
readability for a termination guarantee later on. Every tier has a fixed
number of attempts and the last one is accepted unconditionally, so an
allocation always ends after at most ``MAX_STORE_QUERIES`` queries.
"""

import time
import logging
import datetime
from typing import Optional

from . import slugs
from ..err import InvalidInput
from ..persistence.store import DocumentStore


MAX_SEQUENTIAL_ATTEMPTS: int = 50
MAX_HASH_ATTEMPTS: int = 5
FIRST_SEQUENTIAL_NUMBER: int = 2
MAX_STORE_QUERIES: int = 1 + MAX_SEQUENTIAL_ATTEMPTS + 1 + MAX_HASH_ATTEMPTS


class SystemClock:
    """
    Source of the current date and high resolution timestamps
    """

    @staticmethod
    def now() -> datetime.datetime:
        return datetime.datetime.now()

    @staticmethod
    def time_ns() -> int:
        return time.time_ns()


def with_suffix(base: str, suffix: str) -> str:
    """
    Append a suffix to a base slug, shortening the base to keep the result within the length limit
    """

    return slugs.truncate(base, slugs.MAX_SLUG_LENGTH - len(suffix) - 1) + "-" + suffix


class SlugAllocator:
    """
    Allocator of unique slugs, querying the document store for every candidate

    Instances don't keep any state between calls. Candidates are probed
    one after another, since an earlier free candidate must always win.
    The ``exclude_id`` of the allocation methods names the post that's being
    edited: its own current slug doesn't count as a collision, which keeps
    an edited post's slug stable.
    """

    def __init__(self, store: DocumentStore, clock=None, logger: Optional[logging.Logger] = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.logger = logger or logging.getLogger(__name__)

    async def slug_in_use(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        """
        Determine whether a post other than ``exclude_id`` currently holds the slug
        """

        holders = await self.store.find_by_slug(slug)
        return any(holder.id != exclude_id for holder in holders)

    async def allocate(
            self,
            base_candidate: str,
            exclude_id: Optional[str] = None,
            fallback_seed: Optional[str] = None
    ) -> str:
        """
        Find a slug based on the given candidate that's not in use by any other post

        The tiers are tried in strict order: the candidate itself, sequential
        numbers (``candidate-2`` up to ``candidate-51``), the current year and
        month (``candidate-2024-01``), up to five short hashes and finally the
        current timestamp in milliseconds, which isn't verified anymore.

        :param base_candidate: preferred slug (will be sanitized before usage)
        :param exclude_id: optional ID of a post whose slug doesn't count as collision
        :param fallback_seed: optional string used to build a synthetic base if the
            sanitized candidate is empty (e.g. the original title of the post)
        :return: slug that's valid and was not in use during the check
        :raises InvalidInput: if the candidate is empty and no fallback seed was given
        :raises StoreError: if the document store fails to answer a uniqueness check
        """

        candidate = slugs.sanitize(base_candidate)
        if not candidate:
            if fallback_seed is None:
                raise InvalidInput("The slug candidate must not be empty.", f"candidate={base_candidate!r}")
            candidate = slugs.fallback_base(fallback_seed, self.clock.now().date())
            self.logger.debug(f"Empty slug candidate, using synthetic base {candidate!r}")

        if not await self.slug_in_use(candidate, exclude_id):
            self.logger.debug(f"Allocated slug {candidate!r}")
            return candidate

        self.logger.debug(f"Slug {candidate!r} is already in use, trying sequential numbers")
        for number in range(FIRST_SEQUENTIAL_NUMBER, FIRST_SEQUENTIAL_NUMBER + MAX_SEQUENTIAL_ATTEMPTS):
            sequential = with_suffix(candidate, str(number))
            if not await self.slug_in_use(sequential, exclude_id):
                self.logger.debug(f"Allocated sequential slug {sequential!r}")
                return sequential

        self.logger.warning(f"Exceeded {MAX_SEQUENTIAL_ATTEMPTS} sequential attempts for slug {candidate!r}")
        dated = with_suffix(candidate, f"{self.clock.now():%Y-%m}")
        if not await self.slug_in_use(dated, exclude_id):
            self.logger.debug(f"Allocated dated slug {dated!r}")
            return dated

        for attempt in range(MAX_HASH_ATTEMPTS):
            hashed = with_suffix(candidate, slugs.short_hash(f"{candidate}{self.clock.time_ns()}{attempt}"))
            if not await self.slug_in_use(hashed, exclude_id):
                self.logger.debug(f"Allocated hashed slug {hashed!r}")
                return hashed

        last_resort = with_suffix(candidate, str(self.clock.time_ns() // 1_000_000))
        self.logger.warning(f"Too many hash collisions, using timestamp slug {last_resort!r}")
        return last_resort

    async def allocate_from_title(self, title: str, exclude_id: Optional[str] = None) -> str:
        """
        Normalize a title and allocate a unique slug for it (with a synthetic base for unusable titles)
        """

        return await self.allocate(slugs.normalize(title), exclude_id, fallback_seed=title)
