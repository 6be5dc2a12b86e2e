"""
Special schemas for the configuration file and its properties
"""

import enum
import secrets
from typing import Dict, Optional, Union

import pydantic


@enum.unique
class SlugPolicy(str, enum.Enum):
    """
    Handling of explicitly requested slugs which are already taken
    """

    REJECT = "reject"
    SUFFIX = "suffix"


@enum.unique
class StoreBackend(str, enum.Enum):
    MEMORY = "memory"
    COUCHDB = "couchdb"
    SQL = "sql"


class GeneralConfig(pydantic.BaseModel):
    explicit_slug_policy: SlugPolicy = SlugPolicy.REJECT
    default_page_size: pydantic.conint(ge=1, le=50) = 10
    max_page_size: pydantic.conint(ge=1, le=50) = 50


class ServerConfig(pydantic.BaseModel):
    host: str = "127.0.0.1"
    port: pydantic.conint(gt=0, lt=65536) = 9899
    public_base_url: Optional[pydantic.HttpUrl] = None


class AuthConfig(pydantic.BaseModel):
    admin_email: Optional[pydantic.constr(max_length=255)] = None
    token_secret: pydantic.constr(min_length=16) = pydantic.Field(default_factory=lambda: secrets.token_hex(32))
    token_algorithm: str = "HS256"
    token_lifetime_minutes: pydantic.PositiveInt = 120


class CouchDBConfig(pydantic.BaseModel):
    uri: str = "http://127.0.0.1:5984"
    database: pydantic.constr(min_length=1, max_length=255) = "blog"
    username: str = "admin"
    password: str = ""
    timeout: pydantic.PositiveFloat = 30.0


class SQLConfig(pydantic.BaseModel):
    connection: str = "sqlite://"
    debug_sql: bool = False


class StoreConfig(pydantic.BaseModel):
    backend: StoreBackend = StoreBackend.MEMORY
    couchdb: CouchDBConfig = pydantic.Field(default_factory=CouchDBConfig)
    sql: SQLConfig = pydantic.Field(default_factory=SQLConfig)


class LoggingConfig(pydantic.BaseModel):
    version: pydantic.conint(ge=1, le=1) = 1
    disable_existing_loggers: bool = False
    incremental: bool = False
    filters: Dict[str, Dict[str, Union[str, list]]] = {
        "asyncio_no_debug": {
            "()": "blog_core.misc.logger.NoDebugFilter",
            "name": "asyncio"
        }
    }
    formatters: Dict[str, Dict[str, str]] = {
        "default": {
            "style": "{",
            "format": "{asctime}: blog_core {process}: [{levelname}] {name}: {message}",
            "datefmt": "%d.%m.%Y %H:%M:%S"
        },
        "file": {
            "style": "{",
            "format": "{asctime} ({process}): [{levelname}] {name}: {message}",
            "datefmt": "%d.%m.%Y %H:%M"
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": "%(asctime)s %(client_addr)s - \"%(request_line)s\" %(status_code)s"
        }
    }
    loggers: Dict[str, dict] = {
        "uvicorn.access": {
            "level": "INFO",
            "handlers": ["access"],
            "propagate": False
        }
    }
    handlers: Dict[str, Dict[str, Union[str, list]]] = {
        "default": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "default",
            "filters": ["asyncio_no_debug"]
        },
        "file": {
            "level": "DEBUG",
            "class": "logging.FileHandler",
            "filename": "./blog_core.log",
            "formatter": "file",
            "filters": ["asyncio_no_debug"]
        },
        "access": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "access"
        }
    }
    root: dict = {
        "level": "INFO",
        "handlers": ["default", "file"]
    }


class CoreConfig(pydantic.BaseModel):
    general: GeneralConfig = pydantic.Field(default_factory=GeneralConfig)
    server: ServerConfig = pydantic.Field(default_factory=ServerConfig)
    auth: AuthConfig = pydantic.Field(default_factory=AuthConfig)
    store: StoreConfig = pydantic.Field(default_factory=StoreConfig)
    logging: LoggingConfig = pydantic.Field(default_factory=LoggingConfig)

    @pydantic.model_validator(mode="after")
    def enforce_page_size_constraints(self):
        if self.general.default_page_size > self.general.max_page_size:
            raise ValueError("Field 'default_page_size' must not exceed 'max_page_size'")
        return self
