"""Command line interface for VaultChat."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from vaultchat.chat.history import ChatSession
from vaultchat.config import AppConfig
from vaultchat.context import ContextAssembler
from vaultchat.errors import GenerationError
from vaultchat.index.indexer import CorpusIndex
from vaultchat.index.search import Ranker
from vaultchat.index.storage import JSONCacheStore
from vaultchat.ingestion.vault import MarkdownVault
from vaultchat.llm.factory import create_service
from vaultchat.web.app import app as web_app


console = Console()
app = typer.Typer(help="VaultChat - chat with your Markdown vault")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _open_index(config: AppConfig) -> CorpusIndex:
    if not config.vault_path.is_dir():
        raise typer.BadParameter(f"Vault not found: {config.vault_path}")
    store = MarkdownVault(config.vault_path)
    cache = JSONCacheStore(config.resolve_cache_path())
    index = CorpusIndex(store, cache)
    index.load_or_initialize()
    index.refresh()
    if not cache.durable:
        console.print("[yellow]Cache could not be written, continuing in memory.[/yellow]")
    return index


@app.command()
def index(
    vault: Path = typer.Argument(..., help="Vault directory.", resolve_path=True),
    cache: Path = typer.Option(None, "--cache", help="Cache file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build or refresh the term cache of a vault."""
    _setup_logging(verbose)
    config = AppConfig(vault_path=vault, cache_path=cache)
    if not config.vault_path.is_dir():
        raise typer.BadParameter(f"Vault not found: {config.vault_path}")

    store = MarkdownVault(config.vault_path)
    cache_store = JSONCacheStore(config.resolve_cache_path())
    corpus = CorpusIndex(store, cache_store)

    console.print(f"Indexing into [bold]{cache_store.cache_path}[/bold]...")
    stats = corpus.load_or_initialize()
    refreshed = corpus.refresh()
    # documents inserted above are seen again, unchanged, by refresh()
    skipped = max(refreshed.skipped - stats.inserted, 0)
    console.print(
        f"Inserted: {stats.inserted}, updated: {refreshed.updated}, "
        f"skipped: {skipped}, failed: {stats.failed + refreshed.failed}"
    )
    if corpus.total_documents() == 0:
        console.print("[yellow]No Markdown files found.[/yellow]")


@app.command()
def search(
    vault: Path = typer.Argument(..., help="Vault directory.", resolve_path=True),
    query: str = typer.Argument(..., help="Query text"),
    cache: Path = typer.Option(None, "--cache", help="Cache file path"),
    algorithm: str = typer.Option("BM25", "--algorithm", "-a", help="BM25 or TF-IDF"),
    top_k: int = typer.Option(AppConfig().document_num, help="Number of results to display"),
    chunks: bool = typer.Option(False, "--chunks", help="Score heading-delimited chunks"),
    chunk_num: int = typer.Option(AppConfig().chunk_num, help="Chunks averaged per document"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Rank vault notes against a query."""
    _setup_logging(verbose)
    try:
        config = AppConfig(
            vault_path=vault,
            cache_path=cache,
            search_algorithm=algorithm,
            document_num=top_k,
            chunk_enabled=chunks,
            chunk_num=chunk_num,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    ranker = Ranker.from_config(_open_index(config), config)
    results = ranker.rank(query)
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Snippet")

    for result in results:
        snippet = result.content.replace("\n", " ")
        table.add_row(f"{result.score:.4f}", result.doc_id, snippet[:180])

    console.print(table)


@app.command()
def ask(
    vault: Path = typer.Argument(..., help="Vault directory.", resolve_path=True),
    query: str = typer.Argument(..., help="Question for the assistant"),
    cache: Path = typer.Option(None, "--cache", help="Cache file path"),
    model: str = typer.Option(AppConfig().model_name, help="Gemini model name"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Gemini API key"),
    current: Optional[str] = typer.Option(None, "--current", help="Vault path of the open document"),
    selected: str = typer.Option("", "--selected", help="Currently selected text"),
    prompt: Optional[str] = typer.Option(None, "--prompt", help="Selected prompt preset"),
    stream: bool = typer.Option(False, "--stream", help="Print the answer as it arrives"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Answer a question using the most relevant notes as context."""
    _setup_logging(verbose)
    config = AppConfig(vault_path=vault, cache_path=cache, model_name=model, api_key=api_key)
    if not config.api_key:
        raise typer.BadParameter("Gemini API key is not configured (set GOOGLE_API_KEY or --api-key)")

    corpus = _open_index(config)
    assembler = ContextAssembler.from_config(Ranker.from_config(corpus, config), corpus.store, config)
    context = assembler.assemble(query, current_document=current, selected_text=selected)

    session = ChatSession(create_service(config.platform, config.api_key), config.model_name)
    try:
        if stream:
            for delta in session.ask_stream(query, context, selected_prompt=prompt):
                console.print(delta, end="", markup=False, highlight=False)
            console.print()
        else:
            console.print(session.ask(query, context, selected_prompt=prompt), markup=False)
    except GenerationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.command()
def prune(
    vault: Path = typer.Argument(..., help="Vault directory.", resolve_path=True),
    cache: Path = typer.Option(None, "--cache", help="Cache file path"),
) -> None:
    """Remove cache entries for notes that no longer exist."""
    config = AppConfig(vault_path=vault, cache_path=cache)
    if not config.resolve_cache_path().exists():
        console.print("[yellow]Cache not found, nothing to prune.[/yellow]")
        return

    removed = _open_index(config).prune()
    console.print(f"Removed {removed} orphaned documents.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting web interface on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
