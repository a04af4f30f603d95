"""
Модульные тесты OptimisticWriter: проверка → запись → повторная проверка → компенсация.

Гонки моделируются хранилищами-наследниками MemoryDocumentStore:
- RacingStore вставляет конкурирующий документ перед нашей записью;
- InvisibleStore не показывает записанные документы при чтении;
- ContendedStore отвечает StaleRevisionError заданное число раз;
- VanishingStore удаляет документ-ссылку сразу после нашей записи.
"""

import asyncio

import pytest

from app.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from app.repositories.document_store import StaleRevisionError
from app.repositories.memory_store import MemoryDocumentStore
from app.schemas.comment import Comment
from app.schemas.like import Like
from app.services.bounded_store import BoundedStore
from app.services.optimistic import OptimisticWriter

from tests.conftest import make_user_payload

pytestmark = pytest.mark.unit

LIKE_KEY = [{"postId": "p1", "userId": "u-bob"}]


class RacingStore(MemoryDocumentStore):
    """Перед первой записью в коллекцию вставляет конкурента с тем же ключом."""

    def __init__(self, collection: str, rival: dict):
        super().__init__()
        self.race_collection = collection
        self.rival = rival
        self.raced = False

    async def create(self, collection, data, doc_id=None):
        if collection == self.race_collection and not self.raced:
            self.raced = True
            await super().create(collection, self.rival)
        return await super().create(collection, data, doc_id)


class InvisibleStore(MemoryDocumentStore):
    """Чтение с запаздыванием: find не видит ни одного лайка."""

    async def find(self, collection, filters=None, **kwargs):
        if collection == "likes":
            return []
        return await super().find(collection, filters, **kwargs)


class ContendedStore(MemoryDocumentStore):
    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures

    async def update(self, collection, doc_id, patch, expected_rev=None):
        if self.failures > 0:
            self.failures -= 1
            raise StaleRevisionError(collection, doc_id, expected_rev, None)
        return await super().update(collection, doc_id, patch, expected_rev)


class VanishingStore(MemoryDocumentStore):
    """После записи в коллекцию удаляет документ, на который ссылается запись."""

    def __init__(self, collection: str, target: tuple):
        super().__init__()
        self.watch_collection = collection
        self.target = target

    async def create(self, collection, data, doc_id=None):
        created = await super().create(collection, data, doc_id)
        if collection == self.watch_collection:
            await super().delete(*self.target)
        return created


# ---------------------------------------------------------------------------
# create_unique
# ---------------------------------------------------------------------------

async def test_create_unique_writes_when_key_free(store):
    writer = OptimisticWriter(store)
    created = await writer.create_unique("likes", {"postId": "p1", "userId": "u-bob"}, LIKE_KEY, "дубликат")
    assert created["postId"] == "p1"
    assert await store.count("likes") == 1


async def test_create_unique_precheck_conflict(store):
    writer = OptimisticWriter(store)
    await store.create("likes", {"postId": "p1", "userId": "u-bob"})
    with pytest.raises(ConflictError):
        await writer.create_unique("likes", {"postId": "p1", "userId": "u-bob"}, LIKE_KEY, "дубликат")
    assert await store.count("likes") == 1


async def test_create_unique_loser_compensates():
    """Конкурент записан раньше (меньший _seq) → наша запись удаляется."""
    racing = RacingStore("likes", {"postId": "p1", "userId": "u-bob"})
    writer = OptimisticWriter(BoundedStore(racing))

    with pytest.raises(ConflictError):
        await writer.create_unique("likes", {"postId": "p1", "userId": "u-bob"}, LIKE_KEY, "дубликат", doc_id="mine")

    remaining = await racing.find("likes")
    assert len(remaining) == 1
    assert remaining[0]["id"] != "mine"


async def test_create_unique_not_visible_gives_up_and_compensates():
    invisible = InvisibleStore()
    writer = OptimisticWriter(BoundedStore(invisible), max_attempts=2)

    with pytest.raises(ConflictError):
        await writer.create_unique("likes", {"postId": "p1", "userId": "u-bob"}, LIKE_KEY, "дубликат", doc_id="l1")

    assert await invisible.get("likes", "l1") is None


async def test_create_unique_existing_id_conflicts(store):
    writer = OptimisticWriter(store)
    await store.create("days_goals", {"monthlyTarget": 10}, "u-alice")
    with pytest.raises(ConflictError):
        await writer.create_unique("days_goals", {"monthlyTarget": 12}, [], "уже есть", doc_id="u-alice")


async def test_concurrent_likes_exactly_one_survives(post_service, alice_post, bob):
    """Одновременные лайки одного пользователя: ровно один успех и один конфликт."""
    results = await asyncio.gather(
        post_service.like_post(alice_post.id, bob.id),
        post_service.like_post(alice_post.id, bob.id),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == 1
    assert await post_service.store.count("likes", {"postId": alice_post.id}) == 1


async def test_concurrent_usernames_exactly_one_survives(user_service):
    results = await asyncio.gather(
        user_service.create_user(make_user_payload("dana"), "u-dana-1"),
        user_service.create_user(make_user_payload("dana", email="dana2@example.com"), "u-dana-2"),
        return_exceptions=True,
    )

    assert sum(isinstance(r, ConflictError) for r in results) == 1
    assert await user_service.store.count("users", {"username": "dana"}) == 1


async def test_concurrent_follows_exactly_one_survives(follow_service, alice, bob):
    results = await asyncio.gather(
        *(follow_service.follow(bob.id, alice.id) for _ in range(3)),
        return_exceptions=True,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert await follow_service.store.count("follows", {"followerId": alice.id}) == 1


# ---------------------------------------------------------------------------
# Ссылки на пост и родительский комментарий
# ---------------------------------------------------------------------------

async def test_create_referenced_keeps_record_when_target_exists(store):
    writer = OptimisticWriter(store)
    await store.create("posts", {"content": "a"}, "p1")

    created = await writer.create_referenced("comments", {"postId": "p1", "content": "ок"}, [("posts", "p1")])
    assert await store.get("comments", created["id"]) is not None


async def test_create_referenced_duplicate_id_conflicts(store):
    writer = OptimisticWriter(store)
    await store.create("comments", {"postId": "p1", "content": "a"}, "c1")

    with pytest.raises(ConflictError):
        await writer.create_referenced("comments", {"postId": "p1", "content": "b"}, [], doc_id="c1")


async def test_create_referenced_target_deleted_during_write():
    """Родительский комментарий удалён сразу после записи ответа → ответ откатывается."""
    vanishing = VanishingStore("comments", ("comments", "c1"))
    writer = OptimisticWriter(BoundedStore(vanishing))
    await vanishing.create("posts", {"content": "a"}, "p1")

    with pytest.raises(NotFoundError) as exc_info:
        await writer.create_referenced(
            "comments",
            {"postId": "p1", "parentId": "c1", "content": "ответ"},
            [("posts", "p1"), ("comments", "c1")],
            doc_id="c2",
        )

    assert exc_info.value.entity_id == "c1"
    assert await vanishing.get("comments", "c2") is None


async def test_create_unique_target_deleted_during_write():
    vanishing = VanishingStore("likes", ("posts", "p1"))
    writer = OptimisticWriter(BoundedStore(vanishing))
    await vanishing.create("posts", {"content": "a"}, "p1")

    with pytest.raises(NotFoundError):
        await writer.create_unique(
            "likes", {"postId": "p1", "userId": "u-bob"}, LIKE_KEY, "дубликат", references=[("posts", "p1")]
        )

    assert await vanishing.count("likes") == 0


async def test_like_racing_post_deletion_leaves_no_orphans(post_service, alice, alice_post, bob):
    """Лайк параллельно с удалением поста: лайк либо отклонён, либо удалён вместе с постом."""
    like_result, _ = await asyncio.gather(
        post_service.like_post(alice_post.id, bob.id),
        post_service.delete_post(alice_post.id, alice.id),
        return_exceptions=True,
    )

    assert isinstance(like_result, (Like, NotFoundError))
    assert await post_service.store.get("posts", alice_post.id) is None
    assert await post_service.store.count("likes", {"postId": alice_post.id}) == 0


async def test_comment_racing_post_deletion_leaves_no_orphans(post_service, alice, alice_post, bob):
    comment_result, _ = await asyncio.gather(
        post_service.add_comment({"postId": alice_post.id, "content": "успел?"}, bob.id),
        post_service.delete_post(alice_post.id, alice.id),
        return_exceptions=True,
    )

    assert isinstance(comment_result, (Comment, NotFoundError))
    assert await post_service.store.count("comments", {"postId": alice_post.id}) == 0


async def test_reply_racing_parent_deletion_leaves_no_orphans(post_service, alice, alice_post, bob):
    parent = await post_service.add_comment({"postId": alice_post.id, "content": "1"}, bob.id)

    reply_result, deleted = await asyncio.gather(
        post_service.add_comment({"postId": alice_post.id, "content": "2", "parentId": parent.id}, alice.id),
        post_service.delete_comment(parent.id, bob.id),
        return_exceptions=True,
    )

    assert isinstance(reply_result, (Comment, NotFoundError))
    assert deleted >= 1
    assert await post_service.store.count("comments", {"parentId": parent.id}) == 0
    assert await post_service.store.count("comments", {"postId": alice_post.id}) == 0


async def test_like_on_post_deleted_before_write_not_found(post_service, alice, alice_post, bob):
    await post_service.delete_post(alice_post.id, alice.id)
    with pytest.raises(NotFoundError):
        await post_service.like_post(alice_post.id, bob.id)


# ---------------------------------------------------------------------------
# Положение комментария в треде
# ---------------------------------------------------------------------------

async def test_concurrent_cross_reparent_keeps_thread_intact(post_service, alice_post, bob):
    """Встречный перенос двух комментариев друг под друга отклоняется, цикла нет."""
    a = await post_service.add_comment({"postId": alice_post.id, "content": "a"}, bob.id)
    b = await post_service.add_comment({"postId": alice_post.id, "content": "b"}, bob.id)

    results = await asyncio.gather(
        post_service.update_comment(a.id, {"parentId": b.id}, bob.id),
        post_service.update_comment(b.id, {"parentId": a.id}, bob.id),
        return_exceptions=True,
    )

    assert all(isinstance(r, InvalidArgumentError) for r in results)
    roots = await post_service.list_comment_threads(alice_post.id)
    assert sorted(r.id for r in roots) == sorted([a.id, b.id])


# ---------------------------------------------------------------------------
# update_unique / update_with_retry
# ---------------------------------------------------------------------------

async def test_update_unique_restores_previous_values_on_duplicate():
    """Дубликат появился после записи → прежние значения возвращаются."""
    memory = MemoryDocumentStore()
    store = BoundedStore(memory)
    writer = OptimisticWriter(store)
    current = await memory.create("users", {"username": "bob", "email": "bob@example.com"}, "u-bob")

    class SneakyStore(BoundedStore):
        async def update(self, collection, doc_id, patch, expected_rev=None):
            updated = await super().update(collection, doc_id, patch, expected_rev)
            if patch.get("username") == "alice":
                await memory.create("users", {"username": "alice", "email": "alice@example.com"}, "u-alice")
            return updated

    writer.store = SneakyStore(memory)
    with pytest.raises(ConflictError):
        await writer.update_unique("users", current, {"username": "alice"}, [{"username": "alice"}], "занято")

    assert (await memory.get("users", "u-bob"))["username"] == "bob"
    assert await store.count("users", {"username": "alice"}) == 1


async def test_update_unique_stale_revision_conflicts(store):
    writer = OptimisticWriter(store)
    current = await store.create("posts", {"content": "a"}, "p1")
    await store.update("posts", "p1", {"content": "b"})

    with pytest.raises(ConflictError):
        await writer.update_unique("posts", current, {"content": "c"}, [], "изменён")


async def test_update_with_retry_recovers_from_stale_revision():
    contended = ContendedStore(failures=2)
    writer = OptimisticWriter(BoundedStore(contended), max_attempts=3)
    await contended.create("notifications", {"isRead": False}, "n1")

    async def mutate(current):
        return {"isRead": True}

    updated = await writer.update_with_retry("notifications", "n1", mutate)
    assert updated["isRead"] is True


async def test_update_with_retry_gives_up():
    contended = ContendedStore(failures=10)
    writer = OptimisticWriter(BoundedStore(contended), max_attempts=3)
    await contended.create("notifications", {"isRead": False}, "n1")

    async def mutate(current):
        return {"isRead": True}

    with pytest.raises(ConflictError):
        await writer.update_with_retry("notifications", "n1", mutate)


async def test_update_with_retry_missing_document(store):
    writer = OptimisticWriter(store)

    async def mutate(current):
        return {}

    with pytest.raises(NotFoundError):
        await writer.update_with_retry("notifications", "missing", mutate)
