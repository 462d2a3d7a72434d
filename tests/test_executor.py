"""Tests for prompt execution, transcripts and cancellation."""

import io
import subprocess
import sys
import threading
import time

import pytest

from crudflow.adapters.llm_base import LLMAdapter
from crudflow.errors import ModelCallError, PipelineCancelledError, PromptTimeoutError
from crudflow.executor import PromptRunner
from crudflow.transcript import LOADING, Transcript
from crudflow.utils.cancel import CancellationToken
from tests.conftest import REPO_ROOT, ScriptedAdapter

HANGING_RUN = """
import sys
import time

from crudflow.adapters.llm_base import LLMAdapter
from crudflow.errors import PromptTimeoutError
from crudflow.executor import PromptRunner
from crudflow.transcript import Transcript


class Hanging(LLMAdapter):
    def stream(self, prompt):
        time.sleep(60)
        yield "late"


try:
    PromptRunner(Hanging(), Transcript(echo=False), timeout=0.2).execute("p")
except PromptTimeoutError:
    sys.exit(3)
"""


class ChunkAdapter(LLMAdapter):
    name = "chunks"

    def __init__(self, chunks):
        self.chunks = chunks

    def stream(self, prompt):
        yield from self.chunks


class BlockingAdapter(LLMAdapter):
    name = "blocking"

    def __init__(self):
        self.release = threading.Event()

    def stream(self, prompt):
        yield "partial"
        self.release.wait(5)
        yield " rest"


class TrailingAdapter(LLMAdapter):
    """Finishes its stream only after the caller has given up."""

    name = "trailing"

    def __init__(self):
        self.release = threading.Event()

    def stream(self, prompt):
        yield "partial"
        self.release.wait(5)


def _wait_for_prompt_threads():
    for _ in range(250):
        if not any(thread.name == "crudflow-prompt" for thread in threading.enumerate()):
            return
        time.sleep(0.02)


class TestPromptRunner:
    def test_chunks_are_streamed_and_assembled(self, tmp_path):
        out = io.StringIO()
        transcript = Transcript(raw_dir=tmp_path, stream=out)
        runner = PromptRunner(ChunkAdapter(["class ", "A ", "{}"]), transcript)

        assert runner.execute("make a class") == "class A {}"
        assert "make a class" in out.getvalue()
        assert "class A {}" in out.getvalue()
        assert (tmp_path / "turn01_prompt.txt").read_text(encoding="utf-8") == "make a class"
        assert (tmp_path / "turn01_response.txt").read_text(encoding="utf-8") == "class A {}"
        assert [entry.role for entry in transcript.entries] == ["user", "assistant"]
        assert transcript.entries[-1].content == "class A {}"

    def test_turns_are_numbered(self, tmp_path):
        runner = PromptRunner(ScriptedAdapter(["one", "two"]), Transcript(raw_dir=tmp_path, echo=False))
        runner.execute("first")
        runner.execute("second")
        assert (tmp_path / "turn02_response.txt").read_text(encoding="utf-8") == "two"
        assert runner.calls == 2

    def test_adapter_errors_are_wrapped(self, tmp_path):
        transcript = Transcript(raw_dir=tmp_path, echo=False)
        runner = PromptRunner(ScriptedAdapter([ValueError("boom")]), transcript)

        with pytest.raises(ModelCallError, match="boom") as info:
            runner.execute("prompt")

        assert info.value.provider == "scripted"
        assert transcript.entries[-1].role == "error"
        assert (tmp_path / "turn01_error.txt").exists()

    def test_model_call_errors_pass_through(self, transcript):
        error = ModelCallError("quota", provider="openai")
        runner = PromptRunner(ScriptedAdapter([error]), transcript)
        with pytest.raises(ModelCallError) as info:
            runner.execute("prompt")
        assert info.value is error

    def test_cancelled_token_prevents_call(self, transcript):
        token = CancellationToken()
        token.cancel()
        adapter = ScriptedAdapter(["never"])
        runner = PromptRunner(adapter, transcript, token=token)

        with pytest.raises(PipelineCancelledError):
            runner.execute("prompt")
        assert adapter.prompts == []
        assert transcript.entries == []

    def test_timeout_abandons_the_prompt(self, transcript):
        adapter = BlockingAdapter()
        runner = PromptRunner(adapter, transcript, timeout=0.05)
        try:
            with pytest.raises(PromptTimeoutError):
                runner.execute("slow")
        finally:
            adapter.release.set()
        assert not runner.token.cancelled

    def test_timed_out_prompt_does_not_keep_the_process_alive(self):
        started = time.monotonic()
        result = subprocess.run(
            [sys.executable, "-c", HANGING_RUN],
            cwd=REPO_ROOT,
            capture_output=True,
            text=True,
            timeout=30,
        )
        assert result.returncode == 3, result.stderr
        assert time.monotonic() - started < 15

    def test_abandoned_prompt_does_not_write_its_answer(self, tmp_path):
        transcript = Transcript(raw_dir=tmp_path, echo=False)
        adapter = TrailingAdapter()
        runner = PromptRunner(adapter, transcript, timeout=0.05)
        with pytest.raises(PromptTimeoutError):
            runner.execute("slow")

        adapter.release.set()
        _wait_for_prompt_threads()

        assert not (tmp_path / "turn01_response.txt").exists()
        assert [entry.role for entry in transcript.entries] == ["user", "assistant", "error"]
        assert transcript.entries[1].content == LOADING

    def test_fast_prompt_within_timeout(self, transcript):
        runner = PromptRunner(ScriptedAdapter(["ok"]), transcript, timeout=5)
        assert runner.execute("quick") == "ok"


class TestCancellationToken:
    def test_child_follows_parent(self):
        parent = CancellationToken()
        child = parent.child()
        parent.cancel()
        assert child.cancelled
        with pytest.raises(PipelineCancelledError):
            child.raise_if_cancelled()

    def test_parent_ignores_child(self):
        parent = CancellationToken()
        parent.child().cancel()
        assert not parent.cancelled
