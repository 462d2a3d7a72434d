"""Exceptions raised by the crudflow pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    pass


class ModelCallError(PipelineError):
    """Raised when the language-model connector fails to produce a response."""

    def __init__(self, message: str, provider: str = "") -> None:
        self.provider = provider
        super().__init__(message)


class PromptTimeoutError(ModelCallError):
    """Raised when a prompt does not complete within its timeout."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Prompt did not complete within {timeout:g}s")


class PipelineCancelledError(PipelineError):
    """Raised when a run's cancellation token fires."""

    pass


class StoryNotFoundError(PipelineError):
    def __init__(self, story_id: str) -> None:
        self.story_id = story_id
        super().__init__(f"Story '{story_id}' not found")


class StoryBoardError(PipelineError):
    """Raised when the story board file is missing or fails schema validation."""

    pass


class SourceTreeError(PipelineError):
    """Raised when the target source tree cannot be used."""

    pass
