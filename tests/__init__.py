"""
Blog core unit tests
"""

import unittest

from .test_allocator import SlugAllocatorTests, SuffixTests
from .test_api import APITests, APIWrapperTests, AuthTests, SuffixPolicyAPITests
from .test_cli import StandaloneCLITests
from .test_couchdb import CouchDBHelperTests, CouchDBSetupTests, CouchDBStoreTests
from .test_persistence import MemoryStoreTests, SQLStoreTests, StoreFactoryTests
from .test_posts import (
    PostCreationTests,
    PostDeletionTests,
    PostListingTests,
    PostUpdateTests,
    RequestValidationTests,
    SuffixPolicyTests
)
from .test_settings import SettingsTests
from .test_slugs import SlugNormalizationTests, SlugValidationTests


TEST_CLASSES = [
    APITests,
    APIWrapperTests,
    AuthTests,
    CouchDBHelperTests,
    CouchDBSetupTests,
    CouchDBStoreTests,
    MemoryStoreTests,
    PostCreationTests,
    PostDeletionTests,
    PostListingTests,
    PostUpdateTests,
    RequestValidationTests,
    SettingsTests,
    SlugAllocatorTests,
    SlugNormalizationTests,
    SlugValidationTests,
    SQLStoreTests,
    StandaloneCLITests,
    StoreFactoryTests,
    SuffixPolicyAPITests,
    SuffixPolicyTests,
    SuffixTests,
]


def get_suite() -> unittest.TestSuite:
    suite = unittest.TestSuite()
    for cls in TEST_CLASSES:
        for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
            suite.addTest(cls(fixture))
    return suite
