"""Language model service interface and platform catalogue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Protocol, Sequence

from vaultchat.models import ConversationTurn

RULE_TEXT = """# Rules
1. Document References:
   - If you reference a document, be sure to provide the document's wiki link (e.g. [[path/to/document]]).
   - Always use wiki-style links and include the section when applicable.
2. Context Awareness:
   - "Current Opened Document": the active document in the user's view.
   - "Selected Text": text currently highlighted by the user.
3. Response Guidelines:
   - Answer in the language of the user's question.
   - Keep markdown formatting in responses.

---
Please process the following query based on these guidelines."""


class LLMService(Protocol):
    """A chat model that answers a query given the prior conversation."""

    platform: str

    def generate(self, query: str, history: Sequence[ConversationTurn], model: str) -> str: ...

    def generate_stream(
        self, query: str, history: Sequence[ConversationTurn], model: str
    ) -> Iterator[str]: ...


@dataclass(frozen=True, slots=True)
class LLMModel:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class LLMPlatformInfo:
    id: str
    name: str
    api_key_name: str
    models: tuple[LLMModel, ...]


LLM_PLATFORMS: tuple[LLMPlatformInfo, ...] = (
    LLMPlatformInfo(
        id="gemini",
        name="Google Gemini",
        api_key_name="Google API Key",
        models=(
            LLMModel("gemini-1.5-flash", "Gemini 1.5 Flash"),
            LLMModel("gemini-1.5-pro", "Gemini 1.5 Pro"),
            LLMModel("gemini-2.0-flash", "Gemini 2.0 Flash"),
        ),
    ),
)


def get_platform_info(platform: str) -> LLMPlatformInfo | None:
    return next((info for info in LLM_PLATFORMS if info.id == platform), None)


def get_platform_models(platform: str) -> List[LLMModel]:
    info = get_platform_info(platform)
    return list(info.models) if info else []
