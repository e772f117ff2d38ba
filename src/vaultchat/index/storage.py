"""JSON file cache of per-document term data."""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from vaultchat.errors import CacheIOError
from vaultchat.models import CacheEntry

LOGGER = logging.getLogger(__name__)


class JSONCacheStore:
    """Persistence layer for cache entries keyed by document id.

    Every mutation made through :meth:`transaction` is written through to the
    cache file. Load and write failures are logged and the store keeps
    working in memory; :attr:`durable` tells whether the last write succeeded.
    """

    def __init__(self, cache_path: Path) -> None:
        self.cache_path = Path(cache_path)
        self.durable = True
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    @property
    def entries(self) -> Dict[str, CacheEntry]:
        return self._entries

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, doc_id: str) -> CacheEntry | None:
        return self._entries.get(doc_id)

    def doc_ids(self) -> List[str]:
        return list(self._entries)

    def items(self) -> List[Tuple[str, CacheEntry]]:
        with self._lock:
            return list(self._entries.items())

    def _read_file(self) -> Dict[str, CacheEntry]:
        try:
            with self.cache_path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise CacheIOError(f"Failed to load cache {self.cache_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise CacheIOError(f"Cache {self.cache_path} is not a JSON object")
        return {str(doc_id): CacheEntry.from_json(data) for doc_id, data in raw.items()}

    def load(self) -> Dict[str, CacheEntry]:
        """Replace in-memory entries with the cache file contents, if readable."""
        with self._lock:
            if not self.cache_path.exists():
                LOGGER.debug("No cache at %s, starting empty", self.cache_path)
                self._entries = {}
                return self._entries
            try:
                self._entries = self._read_file()
            except CacheIOError as exc:
                LOGGER.error("%s; continuing with an empty in-memory cache", exc)
                self._entries = {}
            return self._entries

    def persist(self) -> bool:
        """Write the full snapshot to disk. Returns False when the write failed."""
        with self._lock:
            snapshot = {doc_id: entry.to_json() for doc_id, entry in self._entries.items()}
            tmp_path = self.cache_path.with_name(self.cache_path.name + ".tmp")
            try:
                self.cache_path.parent.mkdir(parents=True, exist_ok=True)
                with tmp_path.open("w", encoding="utf-8") as handle:
                    json.dump(snapshot, handle, ensure_ascii=False)
                os.replace(tmp_path, self.cache_path)
            except OSError as exc:
                LOGGER.error("Failed to persist cache %s: %s", self.cache_path, exc)
                self.durable = False
                return False
            self.durable = True
            return True

    @contextmanager
    def transaction(self) -> Iterator[Dict[str, CacheEntry]]:
        """Mutate entries under the store lock and persist once the block succeeds."""
        with self._lock:
            yield self._entries
            self.persist()

    def stage(self, doc_id: str, entry: CacheEntry) -> None:
        """Set an entry in memory only; the next transaction writes it out."""
        with self._lock:
            self._entries[doc_id] = entry

    def put(self, doc_id: str, entry: CacheEntry) -> None:
        with self.transaction() as entries:
            entries[doc_id] = entry

    def remove(self, doc_ids: List[str]) -> int:
        with self.transaction() as entries:
            removed = [doc_id for doc_id in doc_ids if entries.pop(doc_id, None) is not None]
        return len(removed)
