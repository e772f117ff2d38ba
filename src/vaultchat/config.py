"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

SEARCH_ALGORITHMS = ("BM25", "TF-IDF")
DEFAULT_MODEL = "gemini-1.5-flash"
CACHE_DIR_NAME = ".vaultchat"


def _get_default_api_key() -> str:
    """Read the Gemini API key from the environment, if any."""
    return os.environ.get("GOOGLE_API_KEY") or os.environ.get("GEMINI_API_KEY") or ""


@dataclass(slots=True)
class AppConfig:
    vault_path: Path = Path(".")
    cache_path: Path | None = None
    platform: str = "gemini"
    model_name: str = DEFAULT_MODEL
    api_key: str | None = None
    document_num: int = 5
    max_context_length: int = 4000
    chunk_enabled: bool = False
    chunk_num: int = 3
    search_algorithm: str = "BM25"

    def __post_init__(self) -> None:
        self.vault_path = Path(self.vault_path)
        if self.api_key is None:
            self.api_key = _get_default_api_key()
        if self.search_algorithm not in SEARCH_ALGORITHMS:
            raise ValueError(
                f"Unknown search algorithm {self.search_algorithm!r}, "
                f"expected one of {', '.join(SEARCH_ALGORITHMS)}"
            )
        if self.document_num < 0 or self.chunk_num < 1 or self.max_context_length < 0:
            raise ValueError("document_num, chunk_num and max_context_length must be positive")

    def resolve_cache_path(self) -> Path:
        """Cache file location; relative paths are taken against the vault."""
        if self.cache_path is None:
            return self.vault_path / CACHE_DIR_NAME / "cache.json"
        cache_path = Path(self.cache_path)
        if cache_path.is_absolute():
            return cache_path
        return self.vault_path / cache_path
