"""Document store abstraction and the on-disk Markdown vault implementation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Protocol

from vaultchat.errors import DocumentStoreError
from vaultchat.models import DocumentInfo
from vaultchat.utils.files import compute_staleness_key, iter_markdown_paths

LOGGER = logging.getLogger(__name__)

ModifyCallback = Callable[[str], None]


class DocumentStore(Protocol):
    """Source of the documents the corpus index is built from."""

    def list_documents(self) -> List[DocumentInfo]: ...

    def read(self, doc_id: str) -> str: ...

    def staleness_key(self, doc_id: str) -> str: ...

    def subscribe_on_modify(self, callback: ModifyCallback) -> None: ...

    def resolve_link(self, text: str) -> str | None: ...


class MarkdownVault:
    """A directory of Markdown notes addressed by vault-relative POSIX paths."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._callbacks: List[ModifyCallback] = []
        self._known: Dict[str, str] | None = None

    def _path_for(self, doc_id: str) -> Path:
        path = (self.root / doc_id).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise DocumentStoreError(f"Document outside vault: {doc_id}")
        return path

    def list_documents(self) -> List[DocumentInfo]:
        if not self.root.is_dir():
            raise DocumentStoreError(f"Vault not found: {self.root}")
        try:
            return [
                DocumentInfo(doc_id=path.relative_to(self.root).as_posix(), title=path.stem)
                for path in iter_markdown_paths(self.root)
            ]
        except OSError as exc:
            raise DocumentStoreError(f"Failed to list {self.root}: {exc}") from exc

    def read(self, doc_id: str) -> str:
        try:
            return self._path_for(doc_id).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentStoreError(f"Failed to read {doc_id}: {exc}") from exc

    def staleness_key(self, doc_id: str) -> str:
        try:
            return compute_staleness_key(self._path_for(doc_id))
        except OSError as exc:
            raise DocumentStoreError(f"Failed to stat {doc_id}: {exc}") from exc

    def subscribe_on_modify(self, callback: ModifyCallback) -> None:
        self._callbacks.append(callback)

    def poll_changes(self) -> List[str]:
        """Fire modification callbacks for documents created or changed since the last poll.

        The first poll only records the current state.
        """
        current: Dict[str, str] = {}
        for info in self.list_documents():
            try:
                current[info.doc_id] = self.staleness_key(info.doc_id)
            except DocumentStoreError as exc:
                LOGGER.warning("%s", exc)

        previous, self._known = self._known, current
        if previous is None:
            return []

        changed = [doc_id for doc_id, key in current.items() if previous.get(doc_id) != key]
        for doc_id in changed:
            for callback in self._callbacks:
                callback(doc_id)
        return changed

    def resolve_link(self, text: str) -> str | None:
        """Resolve a ``[[wiki link]]`` target to a document id, or None."""
        target = text.strip()
        if target.startswith("[[") and target.endswith("]]"):
            target = target[2:-2]
        target = target.split("|", 1)[0].split("#", 1)[0].strip()
        if not target:
            return None

        candidates = [target] if target.endswith(".md") else [target + ".md", target]
        documents = self.list_documents()
        ids = {info.doc_id for info in documents}
        for candidate in candidates:
            if candidate in ids:
                return candidate

        stem = Path(target).name.removesuffix(".md")
        for info in documents:
            if info.title == stem:
                return info.doc_id
        return None
