"""
Blog core persistence: revisioned document stores

Use ``create_store`` to get the store configured in the settings.
"""

import logging
from typing import Optional

from .store import Document, DocumentStore, Revision, SlugHolder, POST_DOCUMENT_TYPE
from ..schemas import config


def create_store(store_config: config.StoreConfig, logger: Optional[logging.Logger] = None) -> DocumentStore:
    """
    Create a new document store instance for the configured backend

    :param store_config: store section of the settings
    :param logger: optional logger passed to the store
    :return: store instance (which should be closed after usage)
    :raises ValueError: for an unknown backend
    """

    if store_config.backend == config.StoreBackend.MEMORY:
        from .memory import MemoryStore
        return MemoryStore(logger=logger)

    if store_config.backend == config.StoreBackend.COUCHDB:
        from .couchdb import CouchDBStore
        return CouchDBStore(
            store_config.couchdb.uri,
            store_config.couchdb.database,
            username=store_config.couchdb.username,
            password=store_config.couchdb.password,
            timeout=store_config.couchdb.timeout,
            logger=logger
        )

    if store_config.backend == config.StoreBackend.SQL:
        from . import database
        from .sql import SQLStore
        database.init(store_config.sql.connection, store_config.sql.debug_sql)
        return SQLStore(logger=logger)

    raise ValueError(f"Unknown document store backend {store_config.backend!r}")
