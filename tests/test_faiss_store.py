"""
Test cases for FaissVectorStore implementation.
"""

import numpy as np
import pytest

pytest.importorskip("faiss")

from memlayer.vector import FaissVectorStore, VectorMetadata, VectorRecord


def vec(*values, dimension=4):
    array = np.zeros(dimension, dtype=np.float32)
    array[:len(values)] = values
    return array


@pytest.fixture
def store():
    return FaissVectorStore(dimension=4)


def test_faiss_store_initialization(store):
    """Test that FaissVectorStore can be initialized correctly."""
    assert store.dimension == 4
    assert store.size() == 0


def test_faiss_store_add_and_search(store):
    """Nearest vectors come first with cosine scores."""
    store.batch_add([
        VectorRecord(id="x", vector=vec(1, 0)),
        VectorRecord(id="y", vector=vec(0, 1)),
        VectorRecord(id="xy", vector=vec(1, 1)),
    ])

    results = store.search(vec(1, 0), top_k=2)
    assert [r.id for r in results] == ["x", "xy"]
    assert results[0].score == pytest.approx(1.0, abs=1e-5)
    assert results[1].score == pytest.approx(np.sqrt(0.5), abs=1e-5)


def test_faiss_store_replace_same_id(store):
    """Re-adding an ID replaces the old vector instead of duplicating it."""
    store.add(VectorRecord(id="m", vector=vec(1, 0), metadata={"v": 1}))
    store.add(VectorRecord(id="m", vector=vec(0, 1), metadata={"v": 2}))

    assert store.size() == 1
    results = store.search(vec(0, 1), top_k=5)
    assert [r.id for r in results] == ["m"]
    assert results[0].metadata == {"v": 2}


def test_faiss_store_duplicate_ids_in_batch(store):
    """The last record wins when an ID repeats within a batch."""
    store.batch_add([
        VectorRecord(id="m", vector=vec(1, 0)),
        VectorRecord(id="m", vector=vec(0, 1)),
    ])
    assert store.size() == 1
    assert store.search(vec(0, 1), top_k=1)[0].score == pytest.approx(1.0, abs=1e-5)


def test_faiss_store_true_deletion(store):
    """Deleted vectors leave the index."""
    store.batch_add([VectorRecord(id=str(i), vector=vec(1, i)) for i in range(3)])
    store.delete("1")
    store.delete("missing")

    assert store.size() == 2
    assert "1" not in [r.id for r in store.search(vec(1, 1), top_k=5)]


def test_faiss_store_zero_vector_removes(store):
    store.add(VectorRecord(id="m", vector=vec(1, 0)))
    store.add(VectorRecord(id="m", vector=vec()))
    assert store.size() == 0


def test_faiss_store_filter_scans_whole_index(store):
    """A filtered search finds matches ranked below top_k overall."""
    records = [VectorRecord(id=f"a{i}", vector=vec(1, i * 0.01), metadata={"project_id": "A"}) for i in range(10)]
    records.append(VectorRecord(id="b", vector=vec(0, 1), metadata={"project_id": "B"}))
    store.batch_add(records)

    results = store.search(vec(1, 0), top_k=1, filter=VectorMetadata(project_id="B"))
    assert [r.id for r in results] == ["b"]


def test_faiss_store_dimension_mismatch(store):
    with pytest.raises(ValueError):
        store.add(VectorRecord(id="m", vector=np.ones(3, dtype=np.float32)))


def test_faiss_store_clear(store):
    store.batch_add([VectorRecord(id=str(i), vector=vec(1, i)) for i in range(3)])
    store.clear()

    assert store.size() == 0
    assert store.search(vec(1, 0), top_k=3) == []


def test_faiss_store_save_and_load(store, tmp_path):
    """A saved index reloads with the same IDs, metadata and label counter."""
    store.batch_add([
        VectorRecord(id="x", vector=vec(1, 0), metadata={"project_id": "p"}),
        VectorRecord(id="y", vector=vec(0, 1), metadata={"project_id": "q"}),
    ])
    store.delete("y")
    path = str(tmp_path / "index" / "memories.faiss")

    store.save(path)
    restored = FaissVectorStore(dimension=4)
    restored.load(path)

    assert restored.size() == 1
    results = restored.search(vec(1, 0), top_k=5)
    assert [r.id for r in results] == ["x"]
    assert results[0].metadata == {"project_id": "p"}

    restored.add(VectorRecord(id="z", vector=vec(0, 0, 1)))
    assert restored.id_to_vector_index["z"] == 2
    assert restored.size() == 2


def test_faiss_store_load_dimension_mismatch(store, tmp_path):
    path = str(tmp_path / "memories.faiss")
    store.save(path)

    with pytest.raises(ValueError):
        FaissVectorStore(dimension=8).load(path)
