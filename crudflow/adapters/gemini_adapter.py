from __future__ import annotations

import logging
import os
import random
import time
from typing import Iterator, List

from google import genai
from google.genai import types

from crudflow.adapters.llm_base import LLMAdapter
from crudflow.config import prompt_timeout_from_env
from crudflow.errors import ModelCallError

logger = logging.getLogger(__name__)


class GeminiAdapter(LLMAdapter):
    name = "gemini"

    def __init__(self) -> None:
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY is not set.")

        timeout = prompt_timeout_from_env()
        # HttpOptions.timeout is in milliseconds.
        http_options = types.HttpOptions(timeout=int(timeout * 1000)) if timeout else None
        self.client = genai.Client(api_key=api_key, http_options=http_options)

        primary = os.getenv("GEMINI_MODEL", "gemini-flash-latest")
        self.model_candidates: List[str] = [
            primary,
            "gemini-pro",
            "gemini-1.5-pro",
        ]

        self.max_attempts = int(os.getenv("GEMINI_MAX_ATTEMPTS", "5"))
        self.base_delay = float(os.getenv("GEMINI_BASE_DELAY_SECONDS", "1.0"))

    def _is_transient(self, err: Exception) -> bool:
        msg = str(err).lower()
        return any(s in msg for s in ["503", "unavailable", "429", "too many", "timeout", "temporarily"])

    def _config(self) -> dict:
        return {
            "max_output_tokens": int(os.getenv("ORCH_MAX_OUTPUT_TOKENS", "2400")),
            "temperature": float(os.getenv("ORCH_TEMPERATURE", "0.2")),
        }

    def _sleep(self, attempt: int, err: Exception) -> None:
        delay = self.base_delay * (2 ** (attempt - 1)) + random.random() * 0.5
        logger.warning("[gemini] transient error: %s -> sleeping %.2fs", err, delay)
        time.sleep(delay)

    def generate(self, prompt: str) -> str:
        last_err: Exception | None = None

        for model in self.model_candidates:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    logger.info("[gemini] model=%s attempt=%d/%d", model, attempt, self.max_attempts)
                    response = self.client.models.generate_content(
                        model=model,
                        contents=prompt,
                        config=self._config(),
                    )
                    text = getattr(response, "text", None)
                    if not text:
                        raise ModelCallError("Gemini returned empty content.", provider=self.name)
                    return text

                except Exception as e:
                    last_err = e
                    if not self._is_transient(e):
                        break
                    self._sleep(attempt, e)

            logger.warning("[gemini] switching model after failures: %s", model)

        raise ModelCallError(
            "Gemini generate_content failed for all candidate models. "
            f"Last error: {last_err}",
            provider=self.name,
        ) from last_err

    def stream(self, prompt: str) -> Iterator[str]:
        # Fallback across models only before the first chunk has been yielded.
        last_err: Exception | None = None
        for model in self.model_candidates:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    chunks = self.client.models.generate_content_stream(
                        model=model,
                        contents=prompt,
                        config=self._config(),
                    )
                    iterator = iter(chunks)
                    first = next(iterator, None)
                except Exception as e:
                    last_err = e
                    if not self._is_transient(e):
                        break
                    self._sleep(attempt, e)
                    continue

                if first is not None and getattr(first, "text", None):
                    yield first.text
                for chunk in iterator:
                    text = getattr(chunk, "text", None)
                    if text:
                        yield text
                return

            logger.warning("[gemini] switching model after failures: %s", model)

        raise ModelCallError(
            "Gemini generate_content_stream failed for all candidate models. "
            f"Last error: {last_err}",
            provider=self.name,
        ) from last_err
