"""
Tests for the collaborator implementations (stores, search index, scheduler, tokens).

The SQL stores run against an in-memory SQLite database.
"""

import asyncio
import threading
from datetime import timedelta

import pytest

from services.auth_tokens import TokenService, check_password, hash_password
from services.scheduler import InMemoryScheduler
from services.search import InMemorySearchIndex
from services.stores import DuplicateEmailError, InMemoryPostStore, InMemoryUserStore, utcnow

POST_FIELDS = {
    "kind": "article",
    "title": "Harbour plan approved",
    "excerpt": "Seven votes to two.",
    "body": "The harbour plan passed.",
    "status": "published",
    "author_id": 1,
    "tags": ["harbour", "council"],
}


@pytest.fixture
def sql_stores():
    from db.engine import dispose_engines, get_engine
    from services.sql_store import SqlPostStore, SqlUserStore, create_schema

    engine = get_engine("sqlite://", warmup=False)
    create_schema(engine)
    yield SqlUserStore(engine), SqlPostStore(engine)
    dispose_engines()


@pytest.fixture(params=["memory", "sql"])
def stores(request):
    if request.param == "memory":
        return InMemoryUserStore(), InMemoryPostStore()
    return request.getfixturevalue("sql_stores")


class TestUserStores:
    def test_add_and_lookup(self, stores):
        users, _ = stores

        async def scenario():
            created = await users.add(" Editor@Example.com ", "pw", "editor", "Ed")
            return created, await users.find_by_email("editor@example.com"), await users.get(created.id)

        created, by_email, by_id = asyncio.run(scenario())
        assert created.email == "editor@example.com"
        assert by_email == by_id
        assert check_password(by_id.password_hash, "pw")
        assert by_id.to_principal().role == "editor"

    def test_duplicate_email(self, stores):
        users, _ = stores

        async def scenario():
            await users.add("a@example.com", "pw", "reader")
            await users.add("A@example.com", "pw", "reader")

        with pytest.raises(DuplicateEmailError):
            asyncio.run(scenario())


class TestPostStores:
    def test_crud(self, stores):
        _, posts = stores

        async def scenario():
            created = await posts.create(POST_FIELDS)
            updated = await posts.update(created.uuid, {"title": "Renamed", "tags": ["harbour"]})
            fetched = await posts.get(created.uuid)
            deleted = await posts.delete(created.uuid)
            return created, updated, fetched, deleted, await posts.get(created.uuid), await posts.delete(created.uuid)

        created, updated, fetched, deleted, gone, deleted_again = asyncio.run(scenario())
        assert created.tags == ("harbour", "council")
        assert updated.title == fetched.title == "Renamed"
        assert fetched.tags == ("harbour",)
        assert deleted is True
        assert gone is None
        assert deleted_again is False

    def test_update_missing_post(self, stores):
        _, posts = stores
        assert asyncio.run(posts.update("nope", {"title": "x"})) is None

    def test_list_filters_and_paginates(self, stores):
        _, posts = stores

        async def scenario():
            for i in range(5):
                await posts.create({**POST_FIELDS, "title": f"post {i}", "tags": ["harbour"] if i % 2 else ["arts"]})
            await posts.create({**POST_FIELDS, "status": "draft"})
            return (
                await posts.list(page=1, limit=2, status="published"),
                await posts.list(page=3, limit=2, status="published"),
                await posts.list(page=1, limit=10, status="published", tags=["harbour"]),
                await posts.list(page=1, limit=10, kind="gallery"),
            )

        first, last, tagged, galleries = asyncio.run(scenario())
        assert len(first[0]) == 2 and first[1] == 5
        assert len(last[0]) == 1
        assert tagged[1] == 2
        assert galleries == ([], 0)


class TestSearchIndex:
    def test_only_published_posts_are_searchable(self):
        posts, index = InMemoryPostStore(), InMemorySearchIndex()

        async def scenario():
            published = await posts.create(POST_FIELDS)
            draft = await posts.create({**POST_FIELDS, "status": "draft", "title": "Harbour draft"})
            await index.index(published)
            await index.index(draft)
            return published, await index.search("harbour")

        published, hits = asyncio.run(scenario())
        assert [h.uuid for h in hits] == [published.uuid]

    def test_unpublishing_removes_from_index(self):
        posts, index = InMemoryPostStore(), InMemorySearchIndex()

        async def scenario():
            record = await posts.create(POST_FIELDS)
            await index.index(record)
            await index.index(await posts.update(record.uuid, {"status": "draft"}))
            return await index.search("harbour")

        assert asyncio.run(scenario()) == []

    def test_kind_filter_and_empty_query(self):
        posts, index = InMemoryPostStore(), InMemorySearchIndex()

        async def scenario():
            await index.index(await posts.create(POST_FIELDS))
            return await index.search("harbour", kind="gallery"), await index.search("!!")

        assert asyncio.run(scenario()) == ([], [])


class TestScheduler:
    def test_reschedule_replaces_job(self):
        scheduler = InMemoryScheduler()
        when = utcnow() + timedelta(hours=1)

        async def scenario():
            first = await scheduler.schedule("p1", when)
            second = await scheduler.schedule("p1", when + timedelta(hours=1))
            return first, second

        first, second = asyncio.run(scenario())
        assert first.job_id != second.job_id
        assert [j.job_id for j in scheduler.jobs] == [second.job_id]

    def test_run_due_only_runs_due_jobs(self):
        scheduler = InMemoryScheduler()
        now = utcnow()
        ran = []

        async def publish(uuid):
            ran.append(uuid)
            return uuid

        async def scenario():
            await scheduler.schedule("due", now - timedelta(minutes=1))
            await scheduler.schedule("later", now + timedelta(minutes=1))
            return await scheduler.run_due(now, publish)

        assert asyncio.run(scenario()) == ["due"]
        assert ran == ["due"]
        assert [j.post_uuid for j in scheduler.jobs] == ["later"]


class TestTokenService:
    def test_issue_and_verify(self):
        tokens = TokenService(secret="s")
        assert tokens.verify(tokens.issue(42, "a@example.com")) == 42

    def test_garbage_token(self):
        assert TokenService(secret="s").verify("garbage") is None

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService(secret="")

    def test_password_hashing(self):
        hashed = hash_password("pw")
        assert hashed != "pw"
        assert check_password(hashed, "pw")
        assert not check_password(hashed, "other")
        assert not check_password("", "pw")


class TestCrossLoopAccess:
    """Async views each run on their own event loop in a worker thread."""

    def test_waiter_on_another_loop_is_released(self):
        posts = InMemoryPostStore()
        done = threading.Event()

        def other_request():
            asyncio.run(posts.delete("missing"))
            done.set()

        with posts._lock:
            worker = threading.Thread(target=other_request)
            worker.start()
            assert not done.wait(0.1)

        worker.join(timeout=5)
        assert done.is_set()

    def test_concurrent_loops_share_collaborators(self):
        posts, index, scheduler = InMemoryPostStore(), InMemorySearchIndex(), InMemoryScheduler()
        errors = []

        def request_cycle(i):
            async def scenario():
                record = await posts.create({**POST_FIELDS, "title": f"harbour {i}"})
                await index.index(record)
                await scheduler.schedule(record.uuid, utcnow() + timedelta(hours=1))
                await index.search("harbour")
                await posts.list(page=1, limit=5)
            try:
                asyncio.run(scenario())
            except Exception as e:
                errors.append(e)

        workers = [threading.Thread(target=request_cycle, args=(i,)) for i in range(8)]
        for w in workers:
            w.start()
        for w in workers:
            w.join(timeout=10)

        assert errors == []
        assert not any(w.is_alive() for w in workers)
        assert len(posts) == 8
        assert len(scheduler.jobs) == 8
