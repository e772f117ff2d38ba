"""Tests for JSONCacheStore."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vaultchat.index.storage import JSONCacheStore
from vaultchat.models import CacheEntry


def _entry(title: str = "Note", content: str = "apple") -> CacheEntry:
    return CacheEntry(
        title=title,
        content=content,
        terms=["0", "1"],
        title_terms=["0"],
        tf_idf_score=0.5,
        bm25_score=1.25,
        staleness_key="1:5",
    )


@pytest.fixture
def store(tmp_path: Path) -> JSONCacheStore:
    return JSONCacheStore(tmp_path / "cache" / "cache.json")


class TestLoad:
    """Test loading the cache file."""

    def test_missing_file_starts_empty(self, store: JSONCacheStore) -> None:
        assert store.load() == {}
        assert len(store) == 0

    def test_load_existing(self, tmp_path: Path) -> None:
        """Should parse entries keyed by document id."""
        cache_path = tmp_path / "cache.json"
        cache_path.write_text(
            json.dumps(
                {
                    "a.md": {
                        "title": "a",
                        "content": "apple",
                        "terms": ["1"],
                        "titleTerms": [],
                        "tfIdfScore": 0.1,
                        "bm25Score": 0.2,
                    }
                }
            )
        )
        store = JSONCacheStore(cache_path)

        entries = store.load()

        assert list(entries) == ["a.md"]
        assert entries["a.md"].terms == ["1"]
        assert entries["a.md"].bm25_score == 0.2
        assert "a.md" in store

    def test_corrupt_file_is_not_fatal(self, tmp_path: Path, caplog) -> None:
        """A broken cache file is logged and replaced by an empty in-memory cache."""
        cache_path = tmp_path / "cache.json"
        cache_path.write_text("{not json")
        store = JSONCacheStore(cache_path)

        assert store.load() == {}
        assert "Failed to load cache" in caplog.text

    def test_non_object_file(self, tmp_path: Path) -> None:
        cache_path = tmp_path / "cache.json"
        cache_path.write_text("[1, 2]")

        assert JSONCacheStore(cache_path).load() == {}


class TestPersist:
    """Test writing the cache file."""

    def test_stage_waits_for_next_write(self, store: JSONCacheStore) -> None:
        store.stage("a.md", _entry(content="staged"))

        assert store.get("a.md").content == "staged"
        assert not store.cache_path.exists()

        store.put("b.md", _entry())

        raw = json.loads(store.cache_path.read_text(encoding="utf-8"))
        assert set(raw) == {"a.md", "b.md"}

    def test_items_is_a_snapshot(self, store: JSONCacheStore) -> None:
        store.put("a.md", _entry())
        items = store.items()

        store.put("b.md", _entry())

        assert [doc_id for doc_id, _ in items] == ["a.md"]

    def test_put_writes_through(self, store: JSONCacheStore) -> None:
        """Every put persists the whole snapshot."""
        store.put("a.md", _entry())

        raw = json.loads(store.cache_path.read_text(encoding="utf-8"))

        assert raw == {
            "a.md": {
                "title": "Note",
                "content": "apple",
                "terms": ["0", "1"],
                "titleTerms": ["0"],
                "tfIdfScore": 0.5,
                "bm25Score": 1.25,
                "stalenessKey": "1:5",
            }
        }
        assert store.durable

    def test_reload_after_persist(self, store: JSONCacheStore) -> None:
        store.put("a.md", _entry(content="first"))
        store.put("b.md", _entry(content="second"))

        reloaded = JSONCacheStore(store.cache_path)
        entries = reloaded.load()

        assert list(entries) == ["a.md", "b.md"]
        assert entries["b.md"].content == "second"

    def test_unicode_content(self, store: JSONCacheStore) -> None:
        store.put("한글.md", _entry(content="사과 바나나"))

        assert JSONCacheStore(store.cache_path).load()["한글.md"].content == "사과 바나나"

    def test_write_failure_keeps_memory(self, tmp_path: Path) -> None:
        """If the file cannot be written the store stays usable in memory."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = JSONCacheStore(blocker / "cache.json")

        store.put("a.md", _entry())

        assert not store.durable
        assert store.get("a.md") is not None

    def test_transaction_error_skips_persist(self, store: JSONCacheStore) -> None:
        """A failing transaction body is not written to disk."""
        with pytest.raises(RuntimeError):
            with store.transaction() as entries:
                entries["a.md"] = _entry()
                raise RuntimeError("boom")

        assert not store.cache_path.exists()

    def test_remove(self, store: JSONCacheStore) -> None:
        store.put("a.md", _entry())
        store.put("b.md", _entry())

        removed = store.remove(["a.md", "missing.md"])

        assert removed == 1
        assert store.doc_ids() == ["b.md"]
        assert list(json.loads(store.cache_path.read_text())) == ["b.md"]
