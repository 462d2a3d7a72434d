from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol

from crudflow.codegen import java_source
from crudflow.codegen.parsers import parse_code_blocks
from crudflow.codegen.router import ArtifactRouter
from crudflow.codegen.splitter import split_classes
from crudflow.executor import PromptRunner
from crudflow.models import InventoryKind, PipelineRunState
from crudflow.prompts import PromptTemplate
from crudflow.utils.io import read_text

logger = logging.getLogger(__name__)


class ServiceSource(Protocol):
    def find_file(self, kind: InventoryKind, name: str) -> Optional[Path]: ...

    def update_method(self, file: Path, service_name: str, code: str) -> None: ...


def missing_methods(used: List[str], existing: List[str]) -> List[str]:
    defined = set(existing)
    return [name for name in used if name not in defined]


class ServiceReconciler:
    """Grows the service behind the selected controller; never replaces it."""

    def __init__(
        self,
        runner: PromptRunner,
        prompts: PromptTemplate,
        source: ServiceSource,
        router: ArtifactRouter,
    ) -> None:
        self.runner = runner
        self.prompts = prompts
        self.source = source
        self.router = router

    def reconcile(self, service_name: str, state: PipelineRunState) -> None:
        service_file = self.source.find_file(InventoryKind.SERVICE, service_name)
        if service_file is not None:
            self.update_service(service_file, service_name, state)
        else:
            self.create_service(service_name, state)

    def create_service(self, service_name: str, state: PipelineRunState) -> None:
        controller_file = self.source.find_file(
            InventoryKind.CONTROLLER, state.selected_controller_name
        )
        if controller_file is not None:
            controller_code = read_text(controller_file)
        else:
            controller_code = state.selected_controller_code

        prompt = self.prompts.create_service_and_repository(controller_code, service_name)
        result = self.runner.execute(prompt)
        units = split_classes(result)
        if not units:
            logger.warning("No service or repository code generated for %s", service_name)
            return
        for unit in units:
            self.router.route(unit, force_create=True)

    def update_service(self, service_file: Path, service_name: str, state: PipelineRunState) -> None:
        used = java_source.find_service_usages(state.selected_controller_code, service_name)
        service_code = read_text(service_file)
        missing = missing_methods(used, java_source.method_names(service_code))
        if not missing:
            logger.info("%s already defines every method the controller uses", service_name)
            return

        logger.info("%s is missing methods: %s", service_name, ", ".join(missing))
        usages = java_source.find_usage_lines(state.selected_controller_code, service_name)
        prompt = self.prompts.update_service_method(service_name, service_code, usages, missing)
        result = self.runner.execute(prompt)
        # Method-only answers have no class body to split; use their code blocks as-is.
        units = split_classes(result) or parse_code_blocks(result)
        if not units:
            logger.warning("No method code generated for %s", service_name)
            return
        for unit in units:
            self.source.update_method(service_file, service_name, unit)
