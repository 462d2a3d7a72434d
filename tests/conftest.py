"""Shared fixtures for the crudflow test suite."""
from __future__ import annotations

from pathlib import Path
from typing import List, Union

import pytest

from crudflow.adapters.llm_base import LLMAdapter, LLMResponse
from crudflow.executor import PromptRunner
from crudflow.models import ProjectInfo, Story
from crudflow.prompts import PromptTemplate
from crudflow.source.spring_tree import SpringSourceTree
from crudflow.transcript import Transcript

REPO_ROOT = Path(__file__).resolve().parents[1]
PROMPTS_DIR = REPO_ROOT / "configs" / "prompts"
SCHEMA_PATH = REPO_ROOT / "schemas" / "story_board.schema.json"

APPLICATION = """package com.example.blog;

import org.springframework.boot.autoconfigure.SpringBootApplication;

@SpringBootApplication
public class BlogApplication {
}
"""


class ScriptedAdapter(LLMAdapter):
    """Answers prompts from a queue; exceptions in the queue are raised."""

    name = "scripted"

    def __init__(self, responses: List[Union[str, Exception]]) -> None:
        self.responses = list(responses)
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> LLMResponse:
        self.prompts.append(prompt)
        if not self.responses:
            raise AssertionError("Unexpected prompt")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return LLMResponse(raw_text=item)


class FakeKanban:
    def __init__(self, description: str, valid: bool) -> None:
        self.story = Story(id="7", title="Orders", description=description)
        self.valid = valid
        self.updates: List[tuple] = []

    def get_project_info(self) -> ProjectInfo:
        return ProjectInfo(name="shop", description="Online shop")

    def get_story(self, story_id: str) -> Story:
        return self.story

    def is_valid_story(self, text: str) -> bool:
        return self.valid

    def update_story_detail(self, story_id: str, detail: str) -> None:
        self.updates.append((story_id, detail))


def write_java(project: Path, package: str, name: str, code: str) -> Path:
    path = project / "src" / "main" / "java" / Path(*package.split(".")) / f"{name}.java"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(code, encoding="utf-8")
    return path


@pytest.fixture
def spring_project(tmp_path: Path) -> Path:
    project = tmp_path / "app"
    write_java(project, "com.example.blog", "BlogApplication", APPLICATION)
    return project


@pytest.fixture
def source(spring_project: Path) -> SpringSourceTree:
    return SpringSourceTree(spring_project)


@pytest.fixture
def transcript() -> Transcript:
    return Transcript(echo=False)


@pytest.fixture
def prompts() -> PromptTemplate:
    return PromptTemplate(PROMPTS_DIR)


@pytest.fixture
def make_runner(transcript: Transcript):
    def _make(responses: List[Union[str, Exception]]) -> PromptRunner:
        return PromptRunner(ScriptedAdapter(responses), transcript)

    return _make
