from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from crudflow.utils.io import write_text
from crudflow.utils.time import iso_timestamp

LOADING = "Generating..."


@dataclass
class TranscriptEntry:
    role: str
    content: str
    timestamp: str = field(default_factory=iso_timestamp)


class Transcript:
    """Conversation sink for one run.

    Prompts and answers are echoed to ``stream`` as they arrive and, when a
    ``raw_dir`` is given, stored as ``turnNN_prompt.txt`` / ``turnNN_response.txt``.
    """

    def __init__(
        self,
        raw_dir: Optional[Path] = None,
        echo: bool = True,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.raw_dir = raw_dir
        self.echo = echo
        self.stream = stream or sys.stdout
        self.entries: List[TranscriptEntry] = []
        self._turn = 0

    def add_user_message(self, text: str) -> None:
        self._turn += 1
        self.entries.append(TranscriptEntry(role="user", content=text))
        self._write_raw("prompt", text)
        self._print(f"\n=== prompt #{self._turn} ===\n{text}\n")

    def add_placeholder(self, text: str = LOADING) -> None:
        self.entries.append(TranscriptEntry(role="assistant", content=text))
        self._print(f"=== response #{self._turn} ===\n")

    def update_message(self, chunks: Iterable[str]) -> str:
        """Replace the last message with the streamed answer and return its final text."""
        if not self.entries or self.entries[-1].role != "assistant":
            self.add_placeholder()
        parts: List[str] = []
        for chunk in chunks:
            parts.append(chunk)
            self._print(chunk)
        text = "".join(parts)
        self.entries[-1].content = text
        self._print("\n")
        self._write_raw("response", text)
        return text

    def add_error(self, text: str) -> None:
        self.entries.append(TranscriptEntry(role="error", content=text))
        self._write_raw("error", text)
        self._print(f"\n[error] {text}\n")

    def _write_raw(self, suffix: str, text: str) -> None:
        if self.raw_dir is not None:
            write_text(self.raw_dir / f"turn{self._turn:02d}_{suffix}.txt", text)

    def _print(self, text: str) -> None:
        if self.echo:
            self.stream.write(text)
            self.stream.flush()
