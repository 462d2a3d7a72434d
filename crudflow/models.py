from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass
class Story:
    id: str
    title: str
    description: str
    detail: str = ""


@dataclass
class ProjectInfo:
    name: str
    description: str = ""


@dataclass(frozen=True)
class ModelDescriptor:
    """Snapshot of an existing source class used as prompt context."""

    name: str
    members: Tuple[str, ...] = ()

    def format(self) -> str:
        if not self.members:
            return f"class {self.name}"
        return f"class {self.name} {{ {', '.join(self.members)} }}"


EMPTY_DESCRIPTOR = ModelDescriptor(name="")


@dataclass(frozen=True)
class TargetEndpoint:
    endpoint: str
    controller: ModelDescriptor
    needs_creation: bool = False

    @property
    def found(self) -> bool:
        return bool(self.endpoint)


class ArtifactKind(str, Enum):
    CONTROLLER = "controller"
    SERVICE = "service"
    ENTITY = "entity"
    DTO = "dto"
    REPOSITORY = "repository"
    GENERIC = "generic"


class InventoryKind(str, Enum):
    MODEL = "model"
    CONTROLLER = "controller"
    SERVICE = "service"


@dataclass
class PipelineRunState:
    """Mutable context owned by one story run.

    ``is_new_controller`` may be assigned once, during endpoint resolution.
    """

    selected_controller_name: str = ""
    selected_controller_code: str = ""
    _is_new_controller: Optional[bool] = field(default=None, repr=False)

    @property
    def is_new_controller(self) -> bool:
        return bool(self._is_new_controller)

    def mark_new_controller(self, value: bool) -> None:
        if self._is_new_controller is not None:
            raise RuntimeError("is_new_controller is already set for this run")
        self._is_new_controller = value


@dataclass
class SourceChange:
    action: str
    kind: ArtifactKind
    path: Path


@dataclass
class RunReport:
    story_id: str
    story_detail: str = ""
    target: Optional[TargetEndpoint] = None
    service_name: str = ""
    completed_steps: List[str] = field(default_factory=list)
    changes: List[SourceChange] = field(default_factory=list)
