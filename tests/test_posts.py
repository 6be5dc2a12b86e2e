"""
Blog core post manager unit tests
"""

import asyncio
import datetime

from blog_core import schemas
from blog_core.err import NotFound, RevisionConflict, SlugTaken, StoreError, Unauthorized, ValidationError
from blog_core.misc.posts import PostManager, has_explicit_slug, validate_request
from blog_core.persistence.store import Revision
from blog_core.schemas.config import GeneralConfig, SlugPolicy

from . import utils


class PostCreationTests(utils.BaseManagerTests):
    async def test_create_from_title(self):
        post = await self.manager.create(utils.make_post("Olá, Mundo!", tags=["news"]), True)
        self.assertEqual("ola-mundo", post.slug)
        self.assertEqual("Olá, Mundo!", post.title)
        self.assertEqual(["news"], post.tags)
        self.assertEqual(datetime.date(2024, 1, 15), post.date)
        self.assertIsNotNone(post.revision)
        self.assertEqual(post, await self.manager.get(post.id))
        self.assertEqual(post, await self.manager.get_by_slug("ola-mundo"))

    async def test_same_title_twice(self):
        first = await self.manager.create(utils.make_post("Olá, Mundo!"), True)
        second = await self.manager.create(utils.make_post("Ola Mundo"), True)
        third = await self.manager.create(utils.make_post("OLA MUNDO!!"), True)
        self.assertEqual(["ola-mundo", "ola-mundo-2", "ola-mundo-3"], [first.slug, second.slug, third.slug])
        self.assertEqual(3, len({first.id, second.id, third.id}))

    async def test_unusable_title(self):
        post = await self.manager.create(utils.make_post("日本語のタイトル"), True)
        self.assertRegex(post.slug, r"^post-2024-01-[0-9a-f]{6}$")

    async def test_explicit_date(self):
        post = await self.manager.create(utils.make_post("Old", date=datetime.date(2001, 2, 3)), True)
        self.assertEqual(datetime.date(2001, 2, 3), post.date)

    async def test_explicit_slug(self):
        post = await self.manager.create(utils.make_post("Foo", slug="my-own-slug"), True)
        self.assertEqual("my-own-slug", post.slug)

        with self.assertRaises(SlugTaken):
            await self.manager.create(utils.make_post("Bar", slug="my-own-slug"), True)
        with self.assertRaises(ValidationError):
            await self.manager.create(utils.make_post("Bar", slug="Not A Slug"), True)
        self.assertEqual(1, len(self.store))

    async def test_blank_slug_means_absent(self):
        post = await self.manager.create(utils.make_post("Hello", slug="   "), True)
        self.assertEqual("hello", post.slug)

    async def test_unauthorized(self):
        with self.assertRaises(Unauthorized):
            await self.manager.create(utils.make_post("Hello"), False)
        self.assertEqual(0, len(self.store))
        self.assertEqual([], self.store.slug_queries)

    async def test_invalid_content(self):
        for request in [
            utils.make_post(""),
            utils.make_post("   "),
            utils.make_post("Title", content=""),
            utils.make_post("Title", content=" \n "),
            utils.make_post("Title", tags=["ok", "  "])
        ]:
            with self.assertRaises(ValidationError):
                await self.manager.create(request, True)
        self.assertEqual(0, len(self.store))

    async def test_store_error_propagates(self):
        manager = PostManager(utils.UnavailableStore(), general=GeneralConfig(), logger=self.manager.logger)
        with self.assertRaises(StoreError):
            await manager.create(utils.make_post("Hello"), True)


class SuffixPolicyTests(utils.BaseManagerTests):
    general = GeneralConfig(explicit_slug_policy=SlugPolicy.SUFFIX)

    async def test_explicit_slug_gets_suffix(self):
        first = await self.manager.create(utils.make_post("Foo", slug="my-slug"), True)
        second = await self.manager.create(utils.make_post("Bar", slug="my-slug"), True)
        self.assertEqual("my-slug", first.slug)
        self.assertEqual("my-slug-2", second.slug)

        updated = await self.manager.update(first.id, utils.make_update("Foo", slug="my-slug"), True)
        self.assertEqual("my-slug", updated.slug)


class PostUpdateTests(utils.BaseManagerTests):
    async def test_title_change_moves_slug(self):
        post = await self.manager.create(utils.make_post("Hello World"), True)
        updated = await self.manager.update(post.id, utils.make_update("Goodbye World"), True)
        self.assertEqual(post.id, updated.id)
        self.assertEqual("goodbye-world", updated.slug)
        self.assertNotEqual(post.revision, updated.revision)
        with self.assertRaises(NotFound):
            await self.manager.get_by_slug("hello-world")
        self.assertEqual(updated, await self.manager.get_by_slug("goodbye-world"))

    async def test_same_title_keeps_slug(self):
        await self.manager.create(utils.make_post("Hello"), True)
        post = await self.manager.create(utils.make_post("Hello"), True)
        self.assertEqual("hello-2", post.slug)

        self.store.slug_queries.clear()
        updated = await self.manager.update(post.id, utils.make_update("Hello", tags=["x"]), True)
        self.assertEqual("hello-2", updated.slug)
        self.assertEqual(["x"], updated.tags)
        self.assertEqual([], self.store.slug_queries)

    async def test_title_change_normalizing_to_own_slug(self):
        post = await self.manager.create(utils.make_post("Hello World"), True)
        updated = await self.manager.update(post.id, utils.make_update("hello, world!"), True)
        self.assertEqual("hello-world", updated.slug)

    async def test_date_kept_unless_given(self):
        post = await self.manager.create(utils.make_post("Old", date=datetime.date(2001, 2, 3)), True)
        updated = await self.manager.update(post.id, utils.make_update("Old"), True)
        self.assertEqual(datetime.date(2001, 2, 3), updated.date)
        updated = await self.manager.update(post.id, utils.make_update("Old", date=datetime.date(2002, 1, 1)), True)
        self.assertEqual(datetime.date(2002, 1, 1), updated.date)

    async def test_explicit_slug(self):
        other = await self.manager.create(utils.make_post("Other"), True)
        post = await self.manager.create(utils.make_post("Post"), True)
        with self.assertRaises(SlugTaken):
            await self.manager.update(post.id, utils.make_update("Post", slug=other.slug), True)
        updated = await self.manager.update(post.id, utils.make_update("Post", slug="renamed"), True)
        self.assertEqual("renamed", updated.slug)
        updated = await self.manager.update(post.id, utils.make_update("Post", slug="renamed"), True)
        self.assertEqual("renamed", updated.slug)

    async def test_missing_post(self):
        with self.assertRaises(NotFound):
            await self.manager.update("does-not-exist", utils.make_update("Foo"), True)

    async def test_unauthorized(self):
        post = await self.manager.create(utils.make_post("Foo"), True)
        with self.assertRaises(Unauthorized):
            await self.manager.update(post.id, utils.make_update("Bar"), False)
        self.assertEqual(post, await self.manager.get(post.id))

    async def test_stale_expected_revision(self):
        post = await self.manager.create(utils.make_post("Foo"), True)
        updated = await self.manager.update(post.id, utils.make_update("Foo"), True, post.revision)
        with self.assertRaises(RevisionConflict):
            await self.manager.update(post.id, utils.make_update("Bar"), True, post.revision)
        self.assertEqual(updated, await self.manager.get(post.id))

    async def test_concurrent_updates(self):
        post = await self.manager.create(utils.make_post("Foo"), True)
        results = await asyncio.gather(
            self.manager.update(post.id, utils.make_update("First"), True, post.revision),
            self.manager.update(post.id, utils.make_update("Second"), True, post.revision),
            return_exceptions=True
        )
        successes = [r for r in results if isinstance(r, schemas.Post)]
        conflicts = [r for r in results if isinstance(r, RevisionConflict)]
        self.assertEqual(1, len(successes), results)
        self.assertEqual(1, len(conflicts), results)
        self.assertNotEqual(post.revision, successes[0].revision)
        self.assertEqual(successes[0], await self.manager.get(post.id))

    async def test_concurrent_updates_without_expected_revision(self):
        post = await self.manager.create(utils.make_post("Foo"), True)
        results = await asyncio.gather(
            self.manager.update(post.id, utils.make_update("First"), True),
            self.manager.update(post.id, utils.make_update("Second"), True),
            return_exceptions=True
        )
        self.assertEqual(1, len([r for r in results if isinstance(r, schemas.Post)]), results)
        self.assertEqual(1, len([r for r in results if isinstance(r, RevisionConflict)]), results)


class PostDeletionTests(utils.BaseManagerTests):
    async def test_delete_frees_slug(self):
        post = await self.manager.create(utils.make_post("Olá, Mundo!"), True)
        await self.manager.delete(post.id, True)
        with self.assertRaises(NotFound):
            await self.manager.get(post.id)

        self.store.slug_queries.clear()
        recreated = await self.manager.create(utils.make_post("Olá, Mundo!"), True)
        self.assertEqual("ola-mundo", recreated.slug)
        self.assertNotEqual(post.id, recreated.id)
        self.assertEqual(["ola-mundo"], self.store.slug_queries)

    async def test_delete_twice(self):
        post = await self.manager.create(utils.make_post("Foo"), True)
        await self.manager.delete(post.id, True)
        with self.assertRaises(NotFound):
            await self.manager.delete(post.id, True)

    async def test_unauthorized(self):
        post = await self.manager.create(utils.make_post("Foo"), True)
        with self.assertRaises(Unauthorized):
            await self.manager.delete(post.id, False)
        self.assertEqual(1, len(self.store))

    async def test_stale_expected_revision(self):
        post = await self.manager.create(utils.make_post("Foo"), True)
        updated = await self.manager.update(post.id, utils.make_update("Foo"), True)
        with self.assertRaises(RevisionConflict):
            await self.manager.delete(post.id, True, post.revision)
        await self.manager.delete(post.id, True, Revision(updated.revision))
        self.assertEqual(0, len(self.store))

    async def test_delete_during_update(self):
        post = await self.manager.create(utils.make_post("Foo"), True)
        results = await asyncio.gather(
            self.manager.update(post.id, utils.make_update("Bar"), True, post.revision),
            self.manager.delete(post.id, True, post.revision),
            return_exceptions=True
        )
        self.assertEqual(1, len([r for r in results if isinstance(r, (RevisionConflict, NotFound))]), results)

    async def test_non_post_document(self):
        await self.store.create("settings", {"type": "site_settings", "title": "x"})
        with self.assertRaises(NotFound):
            await self.manager.get("settings")
        with self.assertRaises(NotFound):
            await self.manager.delete("settings", True)
        self.assertEqual(1, len(self.store))


class PostListingTests(utils.BaseManagerTests):
    async def asyncSetUp(self) -> None:
        for day in range(1, 8):
            await self.manager.create(utils.make_post(f"Day {day}", date=datetime.date(2024, 1, day)), True)

    async def test_pages(self):
        first = await self.manager.list_page(0, 3)
        self.assertEqual(["day-7", "day-6", "day-5"], [p.slug for p in first.posts])
        self.assertEqual(7, first.total)
        self.assertEqual(3, first.total_pages)
        self.assertTrue(first.has_next)

        last = await self.manager.list_page(2, 3)
        self.assertEqual(["day-1"], [p.slug for p in last.posts])
        self.assertFalse(last.has_next)

        beyond = await self.manager.list_page(5, 3)
        self.assertEqual([], beyond.posts)
        self.assertFalse(beyond.has_next)

    async def test_page_contains_metadata_only(self):
        page = await self.manager.list_page()
        self.assertEqual(7, len(page.posts))
        self.assertEqual(self.general.default_page_size, page.size)
        for post in page.posts:
            self.assertIsInstance(post, schemas.PostMetadata)
            self.assertNotIn("content", post.model_dump())

    async def test_invalid_pages(self):
        for page, size in [(-1, 3), (0, 0), (0, self.general.max_page_size + 1)]:
            with self.assertRaises(ValidationError):
                await self.manager.list_page(page, size)

    async def test_list_all(self):
        posts = await self.manager.list_all()
        self.assertEqual([f"day-{d}" for d in range(7, 0, -1)], [p.slug for p in posts])
        self.assertTrue(all(p.content for p in posts))

    async def test_get_by_invalid_slug(self):
        with self.assertRaises(ValidationError):
            await self.manager.get_by_slug("Day 1")
        with self.assertRaises(NotFound):
            await self.manager.get_by_slug("day-8")


class RequestValidationTests(utils.BaseManagerTests):
    def test_explicit_slug_detection(self):
        self.assertFalse(has_explicit_slug(utils.make_post("Foo")))
        self.assertFalse(has_explicit_slug(utils.make_post("Foo", slug="")))
        self.assertTrue(has_explicit_slug(utils.make_post("Foo", slug="foo")))

    def test_validate_request(self):
        validate_request(utils.make_post("Foo", summary="", tags=[]))
        with self.assertRaises(ValidationError):
            validate_request(utils.make_post("Foo", slug="-foo"))
        with self.assertRaises(ValidationError):
            validate_request(schemas.PostCreation.model_construct(
                title="Foo",
                slug=None,
                date=None,
                tags=None,
                summary="x" * (schemas.MAX_SUMMARY_LENGTH + 1),
                content="Bar"
            ))
