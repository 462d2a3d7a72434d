from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List

from crudflow.models import ModelDescriptor, ProjectInfo
from crudflow.utils.io import read_text


class PromptTemplate:
    """Renders pipeline prompts from the markdown templates in ``prompts_dir``.

    Every prompt is the template text followed by an ``INPUT:`` section with a
    JSON payload, so templates can refer to ``INPUT.<key>``.
    """

    def __init__(self, prompts_dir: Path) -> None:
        self.prompts_dir = prompts_dir
        self._cache: Dict[str, str] = {}

    def story_detail(self, project: ProjectInfo, description: str) -> str:
        payload = {
            "project": {"name": project.name, "description": project.description},
            "story": description,
        }
        return self._render("story_detail", payload)

    def create_dto_and_entity(self, story_detail: str, models: Iterable[ModelDescriptor]) -> str:
        payload = {"story": story_detail, "models": _describe(models)}
        return self._render("create_dto_and_entity", payload)

    def suggest_endpoint(self, story_detail: str, controllers: Iterable[ModelDescriptor]) -> str:
        payload = {"story": story_detail, "controllers": _describe(controllers)}
        return self._render("suggest_endpoint", payload)

    def update_controller_method(
        self,
        controller: ModelDescriptor,
        story_detail: str,
        models: Iterable[ModelDescriptor],
        services: Iterable[ModelDescriptor],
        is_new_controller: bool,
    ) -> str:
        payload = {
            "story": story_detail,
            "controller": controller.format(),
            "is_new_controller": is_new_controller,
            "models": _describe(models),
            "services": _describe(services),
        }
        return self._render("update_controller_method", payload)

    def create_service_and_repository(self, controller_code: str, service_name: str) -> str:
        payload = {"service_name": service_name, "controller_code": controller_code}
        return self._render("create_service_and_repository", payload)

    def update_service_method(
        self,
        service_name: str,
        service_code: str,
        usages: List[str],
        missing_methods: List[str],
    ) -> str:
        payload = {
            "service_name": service_name,
            "service_code": service_code,
            "usages": usages,
            "missing_methods": missing_methods,
        }
        return self._render("update_service_method", payload)

    def _render(self, name: str, payload: Dict) -> str:
        template = self._cache.get(name)
        if template is None:
            template = read_text(self.prompts_dir / f"{name}.md").strip()
            self._cache[name] = template
        return f"{template}\n\nINPUT:\n{json.dumps(payload, indent=2)}\n"


def _describe(descriptors: Iterable[ModelDescriptor]) -> List[str]:
    return [descriptor.format() for descriptor in descriptors]
