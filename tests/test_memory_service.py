"""
Memory service: store writes kept in step with the vector index, explicit
creation results, and pruning that never touches pinned or favorite memories.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from memlayer.core.dao import MemoryDAO
from memlayer.core.errors import StoreUnavailableError
from memlayer.core.memory_service import MemoryService
from memlayer.core.schema import CreateMemoryInput, MemoryType
from memlayer.vector.adapter import EmbeddingVectorAdapter, VectorAdapter
from memlayer.vector.embeddings import DeterministicHashEmbedding
from memlayer.vector.fallback import VectorFallbackAdapter
from memlayer.vector.index import SimpleInMemoryVectorStore
from memlayer.vector.types import VectorMetadata


@pytest.fixture
def dao(tmp_path):
    return MemoryDAO(str(tmp_path / "memories.db"))


@pytest.fixture
def vector():
    return EmbeddingVectorAdapter(SimpleInMemoryVectorStore(), DeterministicHashEmbedding(dimension=32))


@pytest.fixture
def service(dao, vector):
    return MemoryService(dao, vector)


def make_input(title="Deploy", content="use docker compose", **kwargs):
    kwargs.setdefault("project_id", "p")
    return CreateMemoryInput(type=MemoryType.FACT, title=title, content=content, **kwargs)


class TestCreate:

    def test_create_indexes_memory(self, service, vector):
        result = service.create(make_input())

        assert result.ok
        assert result.indexed is True
        assert result.error is None
        matches = vector.query("Deploy use docker compose", 1)
        assert matches[0].id == result.memory.id
        assert matches[0].metadata == {"project_id": "p", "memory_id": result.memory.id, "type": "FACT"}

    def test_vector_add_arguments(self, dao):
        vector = MagicMock(spec=VectorAdapter)
        service = MemoryService(dao, vector)

        memory = service.create(make_input(title="T", content="C")).memory

        vector.add.assert_called_once_with(
            memory.id, "T C", VectorMetadata(project_id="p", memory_id=memory.id, type="FACT")
        )

    def test_optional_vector_failure_reports_not_indexed(self, dao):
        """The memory is stored even though the index is down."""
        inner = MagicMock(spec=VectorAdapter)
        inner.add.side_effect = RuntimeError("index offline")
        service = MemoryService(dao, VectorFallbackAdapter(inner, optional=True))

        result = service.create(make_input())

        assert result.ok
        assert result.indexed is False
        assert dao.get(result.memory.id) is not None

    def test_indexed_is_per_call_not_sticky(self, dao):
        """After one failed add, a later successful add still reports indexed=True."""
        inner = MagicMock(spec=VectorAdapter)
        inner.add.side_effect = [RuntimeError("index offline"), None]
        vector = VectorFallbackAdapter(inner, optional=True)
        service = MemoryService(dao, vector)

        first = service.create(make_input(title="one"))
        second = service.create(make_input(title="two"))

        assert first.indexed is False
        assert second.indexed is True
        assert not vector.is_healthy()

    def test_mandatory_vector_failure_propagates(self, dao):
        inner = MagicMock(spec=VectorAdapter)
        inner.add.side_effect = StoreUnavailableError("index offline", backend="vector")
        service = MemoryService(dao, VectorFallbackAdapter(inner, optional=False))

        with pytest.raises(StoreUnavailableError):
            service.create(make_input())

    def test_validation_error_propagates(self, service):
        with pytest.raises(ValueError):
            service.create(make_input(project_id=""))

    def test_create_many_reports_each_input(self, service, dao):
        results = service.create_many([
            make_input(title="one"),
            make_input(project_id=""),
            make_input(title="three", confidence=2.0),
            make_input(title="four"),
        ])

        assert [r.ok for r in results] == [True, False, False, True]
        assert "project_id" in results[1].error
        assert "confidence" in results[2].error
        assert dao.count() == 2


class TestUpdateDelete:

    def test_update_reindexes(self, service, vector):
        memory = service.create(make_input()).memory

        updated = service.update(memory.id, title="Rollback", content="use helm rollback")

        assert updated.title == "Rollback"
        assert vector.query("Rollback use helm rollback", 1)[0].score == pytest.approx(1.0)
        assert vector.store.size() == 1

    def test_update_ignores_vector_delete_failure(self, dao):
        vector = MagicMock(spec=VectorAdapter)
        vector.delete.side_effect = RuntimeError("not indexed")
        service = MemoryService(dao, vector)
        memory = dao.create(make_input())

        updated = service.update(memory.id, content="changed")

        assert updated.content == "changed"
        vector.add.assert_called_once()

    def test_update_missing(self, service):
        assert service.update("missing", title="x") is None

    def test_delete(self, service, vector, dao):
        memory = service.create(make_input()).memory

        assert service.delete(memory.id) is True
        assert dao.get(memory.id) is None
        assert vector.store.size() == 0
        assert service.delete(memory.id) is False

    def test_get_by_ids(self, service):
        a = service.create(make_input(title="a")).memory
        b = service.create(make_input(title="b")).memory
        assert {m.id for m in service.get_by_ids([a.id, b.id, "nope"])} == {a.id, b.id}


class TestPrune:

    def test_prune_never_removes_pinned_or_favorite(self, dao, vector):
        service = MemoryService(dao, vector)
        old = datetime.now(timezone.utc) - timedelta(days=90)

        stale = dao.create(make_input(title="stale"), created_at=old)
        pinned = dao.create(make_input(title="pinned", is_pinned=True), created_at=old)
        favorite = dao.create(make_input(title="fav", is_favorite=True), created_at=old)
        fresh = dao.create(make_input(title="fresh"))
        for memory in (stale, pinned, favorite, fresh):
            vector.add(memory.id, memory.title)

        assert service.prune_older_than(30) == 1

        assert dao.get(stale.id) is None
        assert {m.id for m in dao.list_memories()} == {pinned.id, favorite.id, fresh.id}
        assert vector.store.size() == 3

    def test_prune_continues_when_vector_delete_fails(self, dao):
        vector = MagicMock(spec=VectorAdapter)
        vector.delete.side_effect = RuntimeError("offline")
        service = MemoryService(dao, vector)
        dao.create(make_input(), created_at=datetime.now(timezone.utc) - timedelta(days=10))

        assert service.prune_older_than(5) == 1
        assert dao.count() == 0

    def test_prune_requires_positive_days(self, service):
        with pytest.raises(ValueError):
            service.prune_older_than(0)
