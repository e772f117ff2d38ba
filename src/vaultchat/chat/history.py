"""Conversation history with per-request ephemeral turns."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List

from vaultchat.llm.base import RULE_TEXT, LLMService
from vaultchat.models import ConversationTurn, Role

LOGGER = logging.getLogger(__name__)


class ConversationHistory:
    """Ordered turns; ephemeral turns are tagged and removed by tag."""

    def __init__(self, turns: Iterable[ConversationTurn] = ()) -> None:
        self._turns: List[ConversationTurn] = list(turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(list(self._turns))

    @property
    def turns(self) -> List[ConversationTurn]:
        return list(self._turns)

    def persistent(self) -> List[ConversationTurn]:
        return [turn for turn in self._turns if not turn.ephemeral]

    def push_ephemeral(self, role: Role, text: str) -> None:
        self._turns.append(ConversationTurn(role=role, parts=[text], ephemeral=True))

    def strip_ephemeral(self) -> int:
        before = len(self._turns)
        self._turns = self.persistent()
        return before - len(self._turns)

    def append_exchange(self, query: str, response: str) -> None:
        self._turns.append(ConversationTurn(role="user", parts=[query]))
        self._turns.append(ConversationTurn(role="model", parts=[response]))

    def clear(self) -> None:
        self._turns.clear()


class ChatSession:
    """Runs one request at a time against an LLM service and keeps the history clean.

    Each request injects the rule text, the assembled context and an optional
    prompt marker as ephemeral turns. They are removed once the request ends,
    successful or not, and only a completed request appends its query and
    response.
    """

    def __init__(
        self,
        service: LLMService,
        model: str,
        *,
        history: ConversationHistory | None = None,
        rule_text: str = RULE_TEXT,
    ) -> None:
        self.service = service
        self.model = model
        self.history = history if history is not None else ConversationHistory()
        self.rule_text = rule_text
        self._busy = threading.Lock()

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("A request is already in progress for this session")
        try:
            yield
        finally:
            self._busy.release()

    def _inject(self, context: str, selected_prompt: str | None) -> None:
        self.history.push_ephemeral("user", self.rule_text)
        if context:
            self.history.push_ephemeral("user", context)
        if selected_prompt:
            self.history.push_ephemeral("user", f"prompt: {selected_prompt}")

    def ask(self, query: str, context: str = "", *, selected_prompt: str | None = None) -> str:
        """Blocking generation; raises GenerationError and leaves history untouched on failure."""
        with self._exclusive():
            self._inject(context, selected_prompt)
            try:
                response = self.service.generate(query, self.history.turns, self.model)
            finally:
                self.history.strip_ephemeral()
            self.history.append_exchange(query, response)
            return response

    def ask_stream(
        self,
        query: str,
        context: str = "",
        *,
        selected_prompt: str | None = None,
        on_chunk: Callable[[str], None] | None = None,
    ) -> Iterator[str]:
        """Yield response deltas as they arrive.

        The exchange is appended to the history only once the stream is fully
        consumed; closing the generator early or a GenerationError discards it.
        """
        with self._exclusive():
            self._inject(context, selected_prompt)
            buffer: List[str] = []
            completed = False
            try:
                for delta in self.service.generate_stream(query, self.history.turns, self.model):
                    buffer.append(delta)
                    if on_chunk is not None:
                        on_chunk(delta)
                    yield delta
                completed = True
            finally:
                self.history.strip_ephemeral()
                if completed:
                    self.history.append_exchange(query, "".join(buffer))
                else:
                    LOGGER.info("Streaming request did not complete, history left unchanged")

    def reset(self) -> None:
        self.history.clear()
