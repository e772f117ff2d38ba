"""Exception types raised across VaultChat."""

from __future__ import annotations


class VaultChatError(Exception):
    """Base class for all VaultChat errors."""


class TokenizationError(VaultChatError):
    """Input could not be tokenized."""


class DocumentStoreError(VaultChatError):
    """A document could not be listed or read."""


class CacheIOError(VaultChatError):
    """The cache file could not be loaded or written."""


class RankingInputError(VaultChatError):
    """Ranking was requested over an empty corpus."""


class GenerationError(VaultChatError):
    """The language model service failed to produce a response."""
