"""FastAPI application exposing search, context assembly and chat."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from vaultchat.chat.history import ChatSession
from vaultchat.config import AppConfig
from vaultchat.context import ContextAssembler
from vaultchat.errors import GenerationError
from vaultchat.index.indexer import CorpusIndex
from vaultchat.index.search import Ranker
from vaultchat.index.storage import JSONCacheStore
from vaultchat.ingestion.vault import MarkdownVault
from vaultchat.llm.factory import create_service

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="VaultChat Web", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# vault path -> chat session, one conversation per vault
_SESSIONS: Dict[str, ChatSession] = {}
# vault path -> API key the session's service was built with
_SESSION_KEYS: Dict[str, str] = {}


class VaultPayload(BaseModel):
    vault: Path
    cache: Path | None = None


class SearchPayload(VaultPayload):
    query: str
    top_k: int = 5
    algorithm: str = "BM25"
    chunk_enabled: bool = False
    chunk_num: int = 3


class ContextPayload(SearchPayload):
    current_document: str | None = None
    selected_text: str = ""
    max_context_length: int = 4000


class ChatPayload(ContextPayload):
    selected_prompt: str | None = None
    model: str | None = None
    api_key: str | None = None


def _config_for(payload: VaultPayload, **overrides: Any) -> AppConfig:
    try:
        return AppConfig(vault_path=payload.vault.expanduser(), cache_path=payload.cache, **overrides)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _open_index(config: AppConfig, *, refresh: bool = True) -> CorpusIndex:
    if not config.vault_path.is_dir():
        raise HTTPException(status_code=404, detail=f"Vault not found: {config.vault_path}")
    index = CorpusIndex(MarkdownVault(config.vault_path), JSONCacheStore(config.resolve_cache_path()))
    index.load_or_initialize()
    if refresh:
        index.refresh()
    return index


def _search_config(payload: SearchPayload, **overrides: Any) -> AppConfig:
    if not payload.query.strip():
        raise HTTPException(status_code=400, detail="Empty query")
    return _config_for(
        payload,
        search_algorithm=payload.algorithm,
        document_num=max(1, min(payload.top_k, 50)),
        chunk_enabled=payload.chunk_enabled,
        chunk_num=payload.chunk_num,
        **overrides,
    )


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _run_index_job(config: AppConfig) -> dict[str, Any]:
    index = _open_index(config, refresh=False)
    stats = index.refresh()
    return {
        "documents": index.total_documents(),
        "updated": stats.updated,
        "inserted": stats.inserted,
        "failed": stats.failed,
        "durable": index.cache.durable,
    }


@app.post("/index")
async def index_vault(payload: VaultPayload) -> dict[str, Any]:
    config = _config_for(payload)
    stats = await asyncio.to_thread(_run_index_job, config)
    return {"status": "ok", "cache": str(config.resolve_cache_path()), "stats": stats}


@app.post("/search")
async def search_documents(payload: SearchPayload) -> dict[str, List[dict[str, Any]]]:
    config = _search_config(payload)
    ranker = Ranker.from_config(_open_index(config), config)
    results = ranker.rank(payload.query)
    return {
        "results": [
            {"path": result.doc_id, "title": result.title, "score": result.score}
            for result in results
        ]
    }


def _assemble(payload: ContextPayload, config: AppConfig) -> tuple[str, List[str]]:
    index = _open_index(config)
    assembler = ContextAssembler.from_config(Ranker.from_config(index, config), index.store, config)
    built = assembler.build(
        payload.query,
        current_document=payload.current_document,
        selected_text=payload.selected_text,
    )
    return built.text, [result.doc_id for result in built.results]


@app.post("/context")
async def build_context(payload: ContextPayload) -> dict[str, Any]:
    config = _search_config(payload, max_context_length=payload.max_context_length)
    context, paths = _assemble(payload, config)
    return {"context": context, "documents": paths}


@app.post("/chat")
async def chat(payload: ChatPayload) -> dict[str, Any]:
    config = _search_config(
        payload,
        max_context_length=payload.max_context_length,
        api_key=payload.api_key,
        model_name=payload.model or AppConfig().model_name,
    )
    if not config.api_key:
        raise HTTPException(status_code=400, detail="Gemini API key is not configured")

    context, paths = _assemble(payload, config)
    key = str(config.vault_path.resolve())
    session = _SESSIONS.get(key)
    if session is None:
        session = ChatSession(create_service(config.platform, config.api_key), config.model_name)
        _SESSIONS[key] = session
    elif _SESSION_KEYS.get(key) != config.api_key:
        LOGGER.info("API key changed for %s, rebuilding the LLM service", key)
        session.service = create_service(config.platform, config.api_key)
    _SESSION_KEYS[key] = config.api_key
    session.model = config.model_name

    try:
        response = await asyncio.to_thread(
            session.ask, payload.query, context, selected_prompt=payload.selected_prompt
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except GenerationError as exc:
        LOGGER.error("Generation failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {"response": response, "documents": paths, "turns": len(session.history)}


@app.post("/chat/reset")
async def reset_chat(payload: VaultPayload) -> dict[str, str]:
    session = _SESSIONS.get(str(payload.vault.expanduser().resolve()))
    if session is not None:
        session.reset()
    return {"status": "ok"}
