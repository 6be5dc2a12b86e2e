"""
Blog core settings unit tests
"""

import os
import json
import logging
import unittest.mock

import pydantic

from blog_core import settings as _settings
from blog_core.misc.logger import enforce_logger
from blog_core.misc.posts import PostManager
from blog_core.persistence.memory import MemoryStore
from blog_core.schemas import config

from . import utils


class SettingsTests(utils.BaseTest):
    def test_defaults_without_file(self):
        self.assertEqual({}, _settings.read_settings_from_file())
        settings = _settings.Settings()
        self.assertEqual(config.SlugPolicy.REJECT, settings.general.explicit_slug_policy)
        self.assertEqual(config.StoreBackend.MEMORY, settings.store.backend)
        self.assertEqual(10, settings.general.default_page_size)
        self.assertIsNone(settings.auth.admin_email)
        self.assertGreaterEqual(len(settings.auth.token_secret), 16)

    def test_read_config_file(self):
        conf = _settings.get_default_core_config()
        conf.store.backend = config.StoreBackend.SQL
        conf.store.sql.connection = "sqlite:///blog.db"
        conf.auth.admin_email = "admin@example.com"
        conf.general.explicit_slug_policy = config.SlugPolicy.SUFFIX
        _settings.store_configuration(conf, self.config_file)

        with open(self.config_file) as f:
            content = json.load(f)
        self.assertEqual("sql", content["store"]["backend"])
        self.assertEqual(conf.auth.token_secret, content["auth"]["token_secret"])

        settings = _settings.Settings()
        self.assertEqual(config.StoreBackend.SQL, settings.store.backend)
        self.assertEqual("sqlite:///blog.db", settings.store.sql.connection)
        self.assertEqual("admin@example.com", settings.auth.admin_email)
        self.assertEqual(config.SlugPolicy.SUFFIX, settings.general.explicit_slug_policy)
        self.assertEqual(conf.auth.token_secret, settings.auth.token_secret)

    def test_environment_overrides_file(self):
        conf = _settings.get_default_core_config()
        conf.store.sql.connection = "sqlite:///blog.db"
        _settings.store_configuration(conf, self.config_file)

        with unittest.mock.patch.dict(os.environ, {"STORE__BACKEND": "sql", "SERVER__PORT": "8080"}):
            settings = _settings.Settings()
        self.assertEqual(config.StoreBackend.SQL, settings.store.backend)
        self.assertEqual("sqlite:///blog.db", settings.store.sql.connection)
        self.assertEqual(8080, settings.server.port)

    def test_keyword_arguments_override_file(self):
        conf = _settings.get_default_core_config()
        conf.auth.admin_email = "file@example.com"
        _settings.store_configuration(conf, self.config_file)

        settings = _settings.Settings(auth={"admin_email": "kwargs@example.com"})
        self.assertEqual("kwargs@example.com", settings.auth.admin_email)

    def test_create_nonexistent(self):
        _settings.SETTINGS_CREATE_NONEXISTENT = True
        try:
            self.assertFalse(os.path.exists(self.config_file))
            data = _settings.read_settings_from_file()
            self.assertTrue(os.path.exists(self.config_file))
            self.assertEqual("memory", data["store"]["backend"])
        finally:
            _settings.SETTINGS_CREATE_NONEXISTENT = False

    def test_invalid_values(self):
        with self.assertRaises(pydantic.ValidationError):
            config.CoreConfig(general={"default_page_size": 20, "max_page_size": 10})
        with self.assertRaises(pydantic.ValidationError):
            config.CoreConfig(server={"port": 0})
        with self.assertRaises(pydantic.ValidationError):
            config.CoreConfig(store={"backend": "mongodb"})
        with self.assertRaises(pydantic.ValidationError):
            config.CoreConfig(general={"explicit_slug_policy": "ignore"})

    def test_enforce_logger(self):
        logger = logging.getLogger("tests.settings")
        self.assertIs(logger, enforce_logger(logger))
        with self.assertRaises(TypeError):
            enforce_logger("tests.settings")

        with self.assertLogs("blog_core.misc.posts", level="WARNING") as logs:
            self.assertEqual("blog_core.misc.posts", enforce_logger(None, "blog_core.misc.posts").name)
        self.assertIn("'blog_core.misc.posts'", logs.output[0])
        self.assertNotIn("post manager", logs.output[0])

        with self.assertLogs("blog_core.misc.posts", level="WARNING"):
            PostManager(MemoryStore(logger=logger))

    def test_logging_config(self):
        import logging.config
        settings = _settings.Settings()
        dumped = settings.logging.model_dump()
        self.assertEqual(1, dumped["version"])
        self.assertIn("asyncio_no_debug", dumped["filters"])
        dumped["handlers"]["file"]["filename"] = os.devnull
        logging.config.dictConfig(dumped)
