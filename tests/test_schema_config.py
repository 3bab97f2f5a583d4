"""
Tag encoding, error bodies and configuration factories.
"""

from datetime import datetime, timedelta, timezone

import pytest

from memlayer.core import config
from memlayer.core.errors import AppError, InvalidFilterError, bad_request, conflict, internal, not_found
from memlayer.core.schema import as_utc, encode_tags, parse_tags
from memlayer.vector.adapter import EmbeddingVectorAdapter
from memlayer.vector.embeddings import DeterministicHashEmbedding, OpenAIEmbedding
from memlayer.vector.fallback import VectorFallbackAdapter
from memlayer.vector.index import SimpleInMemoryVectorStore


class TestTags:

    def test_parse_lowercases(self):
        assert parse_tags('["API", "Db"]') == ["api", "db"]

    def test_parse_empty(self):
        assert parse_tags(None) == []
        assert parse_tags("") == []

    def test_parse_malformed_lenient(self):
        assert parse_tags("{oops") == []
        assert parse_tags('[1, 2]') == []

    def test_parse_malformed_strict(self):
        with pytest.raises(InvalidFilterError):
            parse_tags("{oops", strict=True)
        with pytest.raises(InvalidFilterError):
            parse_tags('"api"', strict=True)

    def test_encode(self):
        assert encode_tags([" API ", "", "db"]) == '["api", "db"]'
        assert encode_tags([]) is None
        assert encode_tags(None) is None
        assert encode_tags(["  "]) is None


def test_as_utc():
    naive = datetime(2024, 5, 1, 10, 0)
    assert as_utc(naive) == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    plus_two = datetime(2024, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    converted = as_utc(plus_two)
    assert converted.tzinfo == timezone.utc
    assert converted.hour == 10


class TestErrors:

    def test_helpers(self):
        assert not_found().status_code == 404
        assert bad_request("bad").code == "BAD_REQUEST"
        assert conflict("dup").status_code == 409
        assert internal().code == "INTERNAL_ERROR"

    def test_to_dict_omits_missing_details(self):
        assert AppError("X", "msg", 418).to_dict() == {"code": "X", "message": "msg", "status_code": 418}
        assert not_found("gone", {"id": "1"}).to_dict()["details"] == {"id": "1"}


class TestConfigFactories:

    def test_embedding_providers(self):
        assert isinstance(config.get_embedding_provider("hash"), DeterministicHashEmbedding)
        assert isinstance(config.get_embedding_provider("openai"), OpenAIEmbedding)
        with pytest.raises(ValueError):
            config.get_embedding_provider("nope")

    def test_vector_stores(self):
        assert isinstance(config.get_vector_store(8, "memory"), SimpleInMemoryVectorStore)
        with pytest.raises(ValueError):
            config.get_vector_store(8, "nope")

    def test_factories_return_fresh_instances(self):
        assert config.get_vector_store(8, "memory") is not config.get_vector_store(8, "memory")

    def test_build_vector_adapter(self, monkeypatch):
        monkeypatch.setattr(config, "EMBED_PROVIDER", "hash")
        monkeypatch.setattr(config, "VECTOR_PROVIDER", "memory")

        adapter = config.build_vector_adapter(optional=False)

        assert isinstance(adapter, VectorFallbackAdapter)
        assert adapter.optional is False
        assert isinstance(adapter.inner, EmbeddingVectorAdapter)

    def test_validate_config(self, monkeypatch):
        monkeypatch.setattr(config, "VECTOR_PROVIDER", "memory")
        monkeypatch.setattr(config, "EMBED_PROVIDER", "hash")
        monkeypatch.setattr(config, "MAX_VECTOR_K", 100)
        monkeypatch.setattr(config, "RECENCY_HALF_LIFE_DAYS", 30.0)
        monkeypatch.setattr(config, "PRUNE_DAYS", None)
        assert config.validate_config() == []

        monkeypatch.setattr(config, "VECTOR_PROVIDER", "chroma")
        monkeypatch.setattr(config, "MAX_VECTOR_K", 0)
        issues = config.validate_config()
        assert "Invalid VECTOR_PROVIDER: chroma" in issues
        assert "MAX_VECTOR_K must be >= 1" in issues
