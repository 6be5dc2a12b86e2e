"""
Data definitions used for unit testing
"""

from typing import Optional

# Set the database URL to be used by the SQL store tests (default: None)
# which will be passed to SQLAlchemy, so make sure it's understood by SQLAlchemy
# (using None enables the sqlite database instead, see below)
DATABASE_URL: Optional[str] = None

# Default file format for halfway persistent sqlite database files,
# which will be removed after the unittests have completed (the
# placeholders will be filled with the PID and a random nonce)
DATABASE_DEFAULT_FILE_FORMAT: str = "/tmp/unittest_{}_{}.db"

# Default database URL when DATABASE_URL above is not set (the
# placeholder will be filled with the database file location from above)
DATABASE_URL_FORMAT: str = "sqlite:///{}"

# Fallback database URL (in-memory sqlite database) when the persistent sqlite
# file can't be written, which might be the case when the target is not writeable
DATABASE_FALLBACK_URL: str = "sqlite://"

# Enable or disable echoing of commands issued by SQLAlchemy (default: False)
SQLALCHEMY_ECHOING: bool = False

# E-mail address of the admin principal used by the API tests
ADMIN_EMAIL: str = "admin@example.com"

# Secret to sign the bearer tokens used by the API tests
TOKEN_SECRET: str = "unittest-token-secret-0123456789"

# Fixed point in time returned by the clock of the slug allocator in unit tests
FIXED_NOW: str = "2024-01-15T12:30:00"
