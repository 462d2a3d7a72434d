from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Protocol


@dataclass
class LLMResponse:
    raw_text: str


class LLMAdapter(Protocol):
    name: str = "llm"

    def generate(self, prompt: str) -> str:
        raise NotImplementedError

    def complete(self, prompt: str) -> LLMResponse:
        return LLMResponse(raw_text=self.generate(prompt))

    def stream(self, prompt: str) -> Iterator[str]:
        """Yield the response incrementally; default is one chunk."""
        yield self.complete(prompt).raw_text
