"""
Vector fallback adapter: optional mode degrades, mandatory mode propagates,
and the first failure marks the adapter unhealthy for good.
"""

import logging
from unittest.mock import MagicMock

import pytest

from memlayer.core.errors import StoreUnavailableError
from memlayer.vector.adapter import VectorAdapter
from memlayer.vector.fallback import VectorFallbackAdapter
from memlayer.vector.types import QueryResult, VectorMetadata


@pytest.fixture
def inner():
    return MagicMock(spec=VectorAdapter)


@pytest.fixture
def failing_inner():
    adapter = MagicMock(spec=VectorAdapter)
    error = StoreUnavailableError("connection refused", backend="vector")
    adapter.add.side_effect = error
    adapter.query.side_effect = error
    adapter.delete.side_effect = error
    return adapter


def test_passthrough_when_healthy(inner):
    """Calls reach the inner adapter unchanged."""
    inner.query.return_value = [QueryResult(id="m1", score=0.8)]
    adapter = VectorFallbackAdapter(inner, optional=True)
    metadata = VectorMetadata(project_id="p", memory_id="m1", type="FACT")

    adapter.add("m1", "some text", metadata)
    results = adapter.query("text", 5, VectorMetadata(project_id="p"))
    adapter.delete("m1")

    inner.add.assert_called_once_with("m1", "some text", metadata)
    inner.query.assert_called_once_with("text", 5, VectorMetadata(project_id="p"))
    inner.delete.assert_called_once_with("m1")
    assert [r.id for r in results] == ["m1"]
    assert adapter.is_healthy()


class TestOptionalMode:

    def test_query_failure_returns_empty(self, failing_inner):
        adapter = VectorFallbackAdapter(failing_inner, optional=True)
        assert adapter.query("anything", 10) == []
        assert not adapter.is_healthy()

    def test_add_failure_is_swallowed(self, failing_inner):
        adapter = VectorFallbackAdapter(failing_inner, optional=True)
        adapter.add("m1", "text")
        assert not adapter.is_healthy()

    def test_delete_failure_is_swallowed(self, failing_inner):
        adapter = VectorFallbackAdapter(failing_inner, optional=True)
        adapter.delete("m1")
        assert not adapter.is_healthy()

    def test_failure_is_logged_as_degraded(self, failing_inner, caplog):
        adapter = VectorFallbackAdapter(failing_inner, optional=True)
        with caplog.at_level(logging.WARNING, logger="memlayer"):
            adapter.query("anything", 3)
        assert "vector.query" in caplog.text
        assert "degraded" in caplog.text

    def test_try_add_reports_each_call(self, inner):
        inner.add.side_effect = [RuntimeError("boom"), None]
        adapter = VectorFallbackAdapter(inner, optional=True)

        assert adapter.try_add("m1", "text") is False
        assert adapter.try_add("m2", "text") is True
        assert not adapter.is_healthy()

    def test_flag_is_sticky_after_recovery(self, inner):
        """A later success does not clear the unhealthy flag."""
        inner.query.side_effect = [RuntimeError("boom"), [QueryResult(id="m1", score=0.5)]]
        adapter = VectorFallbackAdapter(inner, optional=True)

        assert adapter.query("q", 3) == []
        assert [r.id for r in adapter.query("q", 3)] == ["m1"]
        assert not adapter.is_healthy()


class TestMandatoryMode:

    def test_query_failure_propagates(self, failing_inner):
        adapter = VectorFallbackAdapter(failing_inner, optional=False)
        with pytest.raises(StoreUnavailableError):
            adapter.query("anything", 10)
        assert not adapter.is_healthy()

    def test_add_failure_propagates(self, failing_inner):
        adapter = VectorFallbackAdapter(failing_inner, optional=False)
        with pytest.raises(StoreUnavailableError):
            adapter.add("m1", "text")

    def test_try_add_failure_propagates(self, failing_inner):
        adapter = VectorFallbackAdapter(failing_inner, optional=False)
        with pytest.raises(StoreUnavailableError):
            adapter.try_add("m1", "text")

    def test_delete_failure_propagates(self, failing_inner):
        adapter = VectorFallbackAdapter(failing_inner, optional=False)
        with pytest.raises(StoreUnavailableError):
            adapter.delete("m1")

    def test_original_exception_is_reraised(self, inner):
        error = RuntimeError("disk full")
        inner.add.side_effect = error
        adapter = VectorFallbackAdapter(inner, optional=False)

        with pytest.raises(RuntimeError) as exc_info:
            adapter.add("m1", "text")
        assert exc_info.value is error
