"""VaultChat - retrieval and context assembly for chatting with a Markdown vault."""

__version__ = "0.1.0"
