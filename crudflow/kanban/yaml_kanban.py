from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Dict

import yaml
from jsonschema import ValidationError, validate

from crudflow.errors import StoryBoardError, StoryNotFoundError
from crudflow.models import ProjectInfo, Story
from crudflow.utils.io import read_text, write_text

logger = logging.getLogger(__name__)

_USER_STORY_RE = re.compile(r"\bas an?\b.+\bi want\b|\buser story\b", re.IGNORECASE | re.DOTALL)
_PLACEHOLDER_RE = re.compile(r"\b(?:TODO|TBD|FIXME)\b|<[a-z][^<>\n]*>|\{\{[^{}\n]*\}\}|\.\.\.")


class YamlKanban:
    """Story store backed by a YAML story board file.

    The file is validated against ``story_board.schema.json`` when loaded and
    before every save.
    """

    def __init__(self, path: Path, schema_path: Path, min_length: int = 40) -> None:
        self.path = path
        self.schema = json.loads(read_text(schema_path))
        self.min_length = min_length
        self._lock = threading.Lock()
        self._board = self._load()

    def get_project_info(self) -> ProjectInfo:
        project = self._board["project"]
        return ProjectInfo(name=project["name"], description=project.get("description", ""))

    def get_story(self, story_id: str) -> Story:
        raw = self._find(story_id)
        return Story(
            id=str(raw["id"]),
            title=raw.get("title", ""),
            description=raw.get("description", ""),
            detail=raw.get("detail", ""),
        )

    def is_valid_story(self, text: str) -> bool:
        text = (text or "").strip()
        if len(text) < self.min_length:
            return False
        if _PLACEHOLDER_RE.search(text):
            return False
        return bool(_USER_STORY_RE.search(text))

    def update_story_detail(self, story_id: str, detail: str) -> None:
        with self._lock:
            self._find(story_id)["detail"] = detail
            self._save()
        logger.info("Story %s detail updated", story_id)

    def _find(self, story_id: str) -> Dict:
        for raw in self._board["stories"]:
            if str(raw["id"]) == str(story_id):
                return raw
        raise StoryNotFoundError(str(story_id))

    def _load(self) -> Dict:
        if not self.path.exists():
            raise StoryBoardError(f"Story board not found: {self.path}")
        try:
            board = yaml.safe_load(read_text(self.path)) or {}
        except yaml.YAMLError as exc:
            raise StoryBoardError(f"Story board is not valid YAML: {exc}") from exc
        self._validate(board)
        return board

    def _save(self) -> None:
        self._validate(self._board)
        write_text(self.path, yaml.safe_dump(self._board, sort_keys=False, allow_unicode=True))

    def _validate(self, board: Dict) -> None:
        try:
            validate(instance=board, schema=self.schema)
        except ValidationError as exc:
            raise StoryBoardError(f"Story board {self.path} is invalid: {exc.message}") from exc
