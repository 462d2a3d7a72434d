from __future__ import annotations

import logging
import os
import time
from typing import Iterator

from openai import OpenAI
from openai import APIConnectionError, APITimeoutError, RateLimitError, InternalServerError

from crudflow.adapters.llm_base import LLMAdapter, LLMResponse
from crudflow.config import prompt_timeout_from_env
from crudflow.errors import ModelCallError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a senior Java Spring Boot developer. "
    "Answer with complete Java classes inside ```java code blocks."
)


class OpenAIAdapter(LLMAdapter):
    name = "openai"

    def __init__(self) -> None:
        self.api_key = os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is not set.")
        self.client = OpenAI(api_key=self.api_key)
        self.model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.timeout = prompt_timeout_from_env()

    def _request_kwargs(self, prompt: str) -> dict:
        kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": int(os.getenv("ORCH_MAX_OUTPUT_TOKENS", "2400")),
            "temperature": float(os.getenv("ORCH_TEMPERATURE", "0.2")),
        }
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return kwargs

    def complete(self, prompt: str) -> LLMResponse:
        attempt = 0
        backoff = 1.0
        while True:
            attempt += 1
            try:
                response = self.client.chat.completions.create(**self._request_kwargs(prompt))
                content = response.choices[0].message.content
                if content is None:
                    raise ModelCallError("OpenAI returned empty content.", provider=self.name)
                usage = getattr(response, "usage", None)
                if usage:
                    logger.info(
                        "[openai] model=%s prompt_tokens=%s completion_tokens=%s total_tokens=%s",
                        self.model,
                        getattr(usage, "prompt_tokens", None),
                        getattr(usage, "completion_tokens", None),
                        getattr(usage, "total_tokens", None),
                    )
                return LLMResponse(raw_text=content)
            except RateLimitError as exc:
                error = getattr(exc, "error", None)
                code = getattr(error, "code", None)
                if code == "insufficient_quota":
                    raise ModelCallError(
                        "OpenAI API quota exceeded. Please enable billing in your OpenAI account.",
                        provider=self.name,
                    ) from exc
                if attempt >= 4:
                    raise
            except (APITimeoutError, APIConnectionError, InternalServerError):
                if attempt >= 4:
                    raise
            logger.warning("[openai] transient error, sleeping %.1fs (attempt %d)", backoff, attempt)
            time.sleep(backoff)
            backoff *= 2

    def stream(self, prompt: str) -> Iterator[str]:
        chunks = self.client.chat.completions.create(stream=True, **self._request_kwargs(prompt))
        for chunk in chunks:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta

    def generate(self, prompt: str) -> str:
        return self.complete(prompt).raw_text
