from __future__ import annotations

import logging
import queue
import threading
from typing import Iterable, Iterator, Optional, Tuple

from crudflow.adapters.llm_base import LLMAdapter
from crudflow.errors import ModelCallError, PipelineCancelledError, PromptTimeoutError
from crudflow.transcript import LOADING, Transcript
from crudflow.utils.cancel import CancellationToken

logger = logging.getLogger(__name__)


class PromptRunner:
    """Submits a prompt and blocks until the full answer is assembled.

    Chunks are forwarded to the transcript as they arrive; the assembled text
    is the return value. Each prompt gets its own child cancellation token so a
    timeout abandons that prompt only.
    """

    def __init__(
        self,
        adapter: LLMAdapter,
        transcript: Transcript,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> None:
        self.adapter = adapter
        self.transcript = transcript
        self.timeout = timeout
        self.token = token or CancellationToken()
        self.calls = 0

    def execute(self, prompt: str) -> str:
        self.token.raise_if_cancelled()
        self.calls += 1
        self.transcript.add_user_message(prompt)
        self.transcript.add_placeholder(LOADING)
        call_token = self.token.child()
        try:
            if self.timeout is None:
                return self._collect(prompt, call_token)
            return self._collect_with_timeout(prompt, call_token)
        except PipelineCancelledError:
            self.transcript.add_error("cancelled")
            raise
        except ModelCallError as exc:
            self.transcript.add_error(str(exc))
            raise
        except Exception as exc:
            self.transcript.add_error(str(exc))
            provider = getattr(self.adapter, "name", "")
            raise ModelCallError(f"Model call failed: {exc}", provider=provider) from exc

    def _collect(self, prompt: str, call_token: CancellationToken) -> str:
        chunks = self._guarded(self.adapter.stream(prompt), call_token)
        return self.transcript.update_message(chunks)

    def _collect_with_timeout(self, prompt: str, call_token: CancellationToken) -> str:
        # Daemon worker: a call stuck inside the SDK must not keep the process alive.
        outcome: "queue.Queue[Tuple[bool, object]]" = queue.Queue(maxsize=1)

        def work() -> None:
            try:
                outcome.put((True, self._collect(prompt, call_token)))
            except Exception as exc:
                outcome.put((False, exc))

        worker = threading.Thread(target=work, name="crudflow-prompt", daemon=True)
        worker.start()
        try:
            ok, value = outcome.get(timeout=self.timeout)
        except queue.Empty:
            call_token.cancel()
            logger.error("Prompt exceeded %.0fs timeout", self.timeout)
            raise PromptTimeoutError(self.timeout) from None
        if not ok:
            raise value
        return value

    def _guarded(self, chunks: Iterable[str], call_token: CancellationToken) -> Iterator[str]:
        for chunk in chunks:
            call_token.raise_if_cancelled()
            yield chunk
        # An abandoned prompt must not write its answer into a later turn.
        call_token.raise_if_cancelled()
