from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class PipelineSettings:
    prompt_timeout: Optional[float] = 300.0
    endpoint_attempts: int = 2
    story_min_length: int = 40

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "PipelineSettings":
        if env_file is not None:
            load_dotenv(env_file)
        return cls(
            prompt_timeout=prompt_timeout_from_env(),
            endpoint_attempts=max(1, int(_env("CRUDFLOW_ENDPOINT_ATTEMPTS", "2"))),
            story_min_length=int(_env("CRUDFLOW_STORY_MIN_LENGTH", "40")),
        )


def prompt_timeout_from_env() -> Optional[float]:
    """Seconds allowed per prompt; ``None`` when the timeout is disabled."""
    timeout = float(_env("CRUDFLOW_PROMPT_TIMEOUT", "300"))
    return timeout if timeout > 0 else None


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)
