from __future__ import annotations

import logging
from typing import Optional, Protocol

from crudflow.codegen.classifier import classify
from crudflow.codegen.java_source import class_name
from crudflow.models import ArtifactKind, PipelineRunState

logger = logging.getLogger(__name__)


class SourceMutator(Protocol):
    def create_controller_or_update_method(self, name: str, code: str, force_create: bool) -> None: ...

    def create_service(self, code: str) -> None: ...

    def create_entity(self, code: str) -> None: ...

    def create_dto(self, code: str) -> None: ...

    def create_repository(self, code: str) -> None: ...

    def create_class(self, code: str, package: Optional[str] = None) -> None: ...


class ArtifactRouter:
    """Maps each generated unit to one source mutation; performs no I/O itself."""

    def __init__(self, source: SourceMutator, state: PipelineRunState) -> None:
        self.source = source
        self.state = state

    def route(
        self,
        unit: str,
        controller_name: str = "",
        force_create: bool = False,
        controller_hint: bool = False,
    ) -> ArtifactKind:
        kind = classify(unit, controller_hint=controller_hint)
        logger.info("Routing %s as %s", class_name(unit) or "<anonymous>", kind.value)

        if kind is ArtifactKind.CONTROLLER:
            self.state.selected_controller_code = unit
            name = controller_name or class_name(unit)
            self.source.create_controller_or_update_method(name, unit, force_create)
        elif kind is ArtifactKind.SERVICE:
            self.source.create_service(unit)
        elif kind is ArtifactKind.ENTITY:
            self.source.create_entity(unit)
        elif kind is ArtifactKind.DTO:
            self.source.create_dto(unit)
        elif kind is ArtifactKind.REPOSITORY:
            self.source.create_repository(unit)
        else:
            self.source.create_class(unit, None)
        return kind
