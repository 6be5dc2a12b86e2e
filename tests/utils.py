"""
Helper functions to make writing unit tests for the blog core easier
"""

import os
import sys
import random
import string
import secrets
import logging
import datetime
import unittest
from typing import Callable, Dict, List, Optional

from fastapi.testclient import TestClient

from blog_core import schemas, settings as _settings
from blog_core.api import auth
from blog_core.api.api import create_app
from blog_core.err import StoreError
from blog_core.misc.allocator import SlugAllocator
from blog_core.misc.posts import PostManager
from blog_core.persistence import database
from blog_core.persistence.memory import MemoryStore
from blog_core.persistence.store import SlugHolder
from blog_core.schemas.config import GeneralConfig

from . import conf


def make_post(title: str, **kwargs) -> schemas.PostCreation:
    kwargs.setdefault("content", f"Some content about {title}")
    return schemas.PostCreation(title=title, **kwargs)


def make_update(title: str, **kwargs) -> schemas.PostUpdate:
    kwargs.setdefault("content", f"Updated content about {title}")
    return schemas.PostUpdate(title=title, **kwargs)


class FixedClock:
    """
    Clock for the slug allocator that always returns the same date

    The nanosecond timestamp advances by one millisecond per call, so that
    subsequent hash and timestamp candidates differ, but stay predictable.
    """

    def __init__(self, now: Optional[datetime.datetime] = None):
        self._now = now or datetime.datetime.fromisoformat(conf.FIXED_NOW)
        self._ns = int(self._now.timestamp()) * 1_000_000_000

    def now(self) -> datetime.datetime:
        return self._now

    def time_ns(self) -> int:
        self._ns += 1_000_000
        return self._ns


class RecordingStore(MemoryStore):
    """
    Memory store recording every slug query, optionally pretending some slugs are held by another post
    """

    def __init__(self, taken: Optional[Callable[[str], bool]] = None):
        super().__init__(logging.getLogger("tests.store"))
        self.taken = taken
        self.slug_queries: List[str] = []

    async def find_by_slug(self, slug: str) -> List[SlugHolder]:
        self.slug_queries.append(slug)
        if self.taken is not None and self.taken(slug):
            return [SlugHolder(id="someone-else", slug=slug)]
        return await super().find_by_slug(slug)


class UnavailableStore(MemoryStore):
    """
    Memory store whose uniqueness checks and listings always fail like an unreachable database
    """

    async def find_by_slug(self, slug: str) -> List[SlugHolder]:
        raise StoreError("The document store is not available.", "unit test")

    async def list_posts(self, skip: int = 0, limit: Optional[int] = None):
        raise StoreError("The document store is not available.", "unit test")


class BaseTest(unittest.TestCase):
    """
    A base class for unit tests which introduces simple setup and teardown of unit tests

    If a subclass needs special setup or teardown functionality, it **MUST**
    call the superclasses setup and teardown methods: the superclass setup
    method at the beginning of the subclass setup method, the superclass
    teardown method at the end of the subclass teardown method.
    """

    config_file: Optional[str] = None
    _old_config_paths: Optional[List[str]] = None

    def setUp(self) -> None:
        super().setUp()
        self.config_file = f"config_{os.getpid()}_{secrets.token_hex(8)}.json"
        self._old_config_paths = _settings.CONFIG_PATHS
        _settings.CONFIG_PATHS = [self.config_file]

    def tearDown(self) -> None:
        if self.config_file and os.path.exists(self.config_file):
            os.remove(self.config_file)
        _settings.CONFIG_PATHS = self._old_config_paths
        super().tearDown()


class BaseAsyncTest(BaseTest, unittest.IsolatedAsyncioTestCase):
    pass


class BaseManagerTests(BaseAsyncTest):
    """
    Base class for tests of the slug allocator and the post manager using a recording memory store
    """

    store: RecordingStore
    clock: FixedClock
    allocator: SlugAllocator
    manager: PostManager
    general: GeneralConfig = GeneralConfig()

    def setUp(self) -> None:
        super().setUp()
        self.store = RecordingStore()
        self.clock = FixedClock()
        self.allocator = SlugAllocator(self.store, self.clock, logging.getLogger("tests.allocator"))
        self.manager = PostManager(self.store, self.allocator, self.general, logging.getLogger("tests.posts"))


class BasePersistenceTests(BaseAsyncTest):
    """
    Base class for tests using the SQL document store with a temporary sqlite database
    """

    database_url: Optional[str] = None
    _database_file: Optional[str] = None

    def setUp(self) -> None:
        super().setUp()
        if conf.DATABASE_URL is not None:
            self.database_url = conf.DATABASE_URL

        else:
            self._database_file = conf.DATABASE_DEFAULT_FILE_FORMAT.format(
                os.getpid(),
                "".join([random.choice(string.ascii_lowercase) for _ in range(6)])
            )

            try:
                open(self._database_file, "wb").close()
                os.remove(self._database_file)
                self.database_url = conf.DATABASE_URL_FORMAT.format(self._database_file)

            except OSError as exc:
                self.database_url = conf.DATABASE_FALLBACK_URL
                self._database_file = None
                print(
                    f"{exc}: Falling back to in-memory database. This is not recommended!",
                    file=sys.stderr
                )

        database.PRINT_SQLITE_WARNING = False
        database.init(self.database_url, conf.SQLALCHEMY_ECHOING)

    def tearDown(self) -> None:
        database.get_engine().dispose()
        if self._database_file and os.path.exists(self._database_file):
            os.remove(self._database_file)
        super().tearDown()


class BaseAPITests(BaseTest):
    """
    Base class for tests of the REST API using the ``TestClient`` and a memory store
    """

    settings: _settings.Settings
    store: MemoryStore
    client: TestClient

    def get_settings(self) -> _settings.Settings:
        return _settings.Settings(
            auth={"admin_email": conf.ADMIN_EMAIL, "token_secret": conf.TOKEN_SECRET},
            store={"backend": "memory"}
        )

    def setUp(self) -> None:
        super().setUp()
        self.settings = self.get_settings()
        self.store = MemoryStore(logging.getLogger("tests.store"))
        self.client = TestClient(create_app(self.settings, store=self.store, configure_logging=False))

    def tearDown(self) -> None:
        self.client.close()
        super().tearDown()

    def auth_headers(self, subject: str = conf.ADMIN_EMAIL, **kwargs) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {auth.create_access_token(subject, self.settings.auth)}"}
        headers.update(kwargs)
        return headers

    def create_post(self, title: str, **kwargs) -> dict:
        kwargs.setdefault("content", f"Some content about {title}")
        response = self.client.post("/posts", json={"title": title, **kwargs}, headers=self.auth_headers())
        self.assertEqual(201, response.status_code, response.text)
        return response.json()
