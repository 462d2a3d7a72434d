from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from crudflow.codegen.java_source import class_name
from crudflow.codegen.router import ArtifactRouter
from crudflow.codegen.splitter import split_classes
from crudflow.config import PipelineSettings
from crudflow.endpoint import EndpointResolver
from crudflow.executor import PromptRunner
from crudflow.models import (
    InventoryKind,
    ModelDescriptor,
    PipelineRunState,
    ProjectInfo,
    RunReport,
    Story,
    TargetEndpoint,
)
from crudflow.prompts import PromptTemplate
from crudflow.reconciler import ServiceReconciler
from crudflow.source.spring_tree import SpringSourceTree
from crudflow.utils.retry import retry_call

logger = logging.getLogger(__name__)


class StoryStore(Protocol):
    def get_project_info(self) -> ProjectInfo: ...

    def get_story(self, story_id: str) -> Story: ...

    def is_valid_story(self, text: str) -> bool: ...

    def update_story_detail(self, story_id: str, detail: str) -> None: ...


def service_name_for(controller_name: str) -> str:
    return controller_name.removesuffix("Controller") + "Service"


class CrudPipeline:
    """Drives one story through the five generation steps.

    Steps run strictly in order; each receives the run's ``PipelineRunState``
    explicitly so independent runs can share a pipeline instance.
    """

    def __init__(
        self,
        kanban: StoryStore,
        runner: PromptRunner,
        source: SpringSourceTree,
        prompts: PromptTemplate,
        settings: Optional[PipelineSettings] = None,
    ) -> None:
        self.kanban = kanban
        self.runner = runner
        self.source = source
        self.prompts = prompts
        self.settings = settings or PipelineSettings()

    def run(self, story_id: str) -> RunReport:
        state = PipelineRunState()
        report = RunReport(story_id=story_id)
        first_change = len(self.source.changes)
        try:
            report.story_detail = self.resolve_story_detail(story_id)
            report.completed_steps.append("story_detail")

            self._checkpoint()
            self.synthesize_models(report.story_detail, state)
            report.completed_steps.append("models")

            self._checkpoint()
            report.target = self.resolve_endpoint(report.story_detail, state)
            report.completed_steps.append("endpoint_resolution")
            if not report.target.found:
                logger.warning("No target controller resolved for story %s, stopping", story_id)
                return report

            self._checkpoint()
            self.synthesize_endpoint(report.target, report.story_detail, state)
            report.completed_steps.append("endpoint")

            self._checkpoint()
            report.service_name = self.synthesize_service_and_repository(state)
            report.completed_steps.append("service_and_repository")
            return report
        finally:
            report.changes = list(self.source.changes[first_change:])

    # Step 1
    def resolve_story_detail(self, story_id: str) -> str:
        story = self.kanban.get_story(story_id)
        story_detail = story.description
        if not self.kanban.is_valid_story(story_detail):
            if self.kanban.is_valid_story(story.detail):
                logger.info("Story %s reuses its stored detail", story.id)
                story_detail = story.detail
            else:
                logger.warning("Story %s detail is not valid, generating one", story.id)
                project = self.kanban.get_project_info()
                prompt = self.prompts.story_detail(project, story.description)
                story_detail = self.runner.execute(prompt)
                self.kanban.update_story_detail(story.id, story_detail)

        logger.info("User story detail: %s", story_detail)
        return story_detail

    # Step 2
    def synthesize_models(self, story_detail: str, state: PipelineRunState) -> None:
        models = self.source.list_models(InventoryKind.MODEL)
        prompt = self.prompts.create_dto_and_entity(story_detail, models)
        result = self.runner.execute(prompt)

        units = split_classes(result)
        if not units:
            logger.warning("Model synthesis returned no classes")
        router = ArtifactRouter(self.source, state)
        for unit in units:
            router.route(unit)

    # Step 3
    def resolve_endpoint(self, story_detail: str, state: PipelineRunState) -> TargetEndpoint:
        controllers = self.source.list_models(InventoryKind.CONTROLLER)
        resolver = EndpointResolver(self.runner, self.prompts)
        target = resolver.resolve(story_detail, controllers)
        state.mark_new_controller(target.needs_creation)
        return target

    # Step 4
    def synthesize_endpoint(
        self, target: TargetEndpoint, story_detail: str, state: PipelineRunState
    ) -> None:
        state.selected_controller_name = target.controller.name
        retry_call(
            self._update_endpoint,
            target,
            story_detail,
            state,
            max_attempts=self.settings.endpoint_attempts,
            label="endpoint synthesis",
        )

    # Step 5
    def synthesize_service_and_repository(self, state: PipelineRunState) -> str:
        if not state.selected_controller_name:
            logger.warning("No controller selected, skipping service generation")
            return ""
        service_name = service_name_for(state.selected_controller_name)
        reconciler = ServiceReconciler(
            self.runner, self.prompts, self.source, ArtifactRouter(self.source, state)
        )
        reconciler.reconcile(service_name, state)
        return service_name

    def _update_endpoint(
        self, target: TargetEndpoint, story_detail: str, state: PipelineRunState
    ) -> None:
        prompt = self._endpoint_prompt(target, story_detail, state.is_new_controller)
        units = split_classes(self.runner.execute(prompt))
        if not units:
            logger.warning("Endpoint code is empty, skipping")
            return

        router = ArtifactRouter(self.source, state)
        for unit in units:
            router.route(
                unit,
                controller_name=target.controller.name,
                force_create=target.needs_creation,
                controller_hint=class_name(unit) == target.endpoint,
            )

    def _endpoint_prompt(
        self, target: TargetEndpoint, story_detail: str, is_new_controller: bool
    ) -> str:
        all_models = self.source.list_models(InventoryKind.MODEL)
        relevant_name = target.endpoint.replace("Controller", "")

        models: List[ModelDescriptor] = [
            model
            for model in all_models
            if relevant_name in model.name and model.name.endswith(("Request", "Response"))
        ]
        relevant = next((model for model in all_models if model.name.startswith(relevant_name)), None)
        if relevant is not None and relevant not in models:
            models.append(relevant)

        services = self.source.list_models(InventoryKind.SERVICE)
        return self.prompts.update_controller_method(
            target.controller, story_detail, models, services, is_new_controller
        )

    def _checkpoint(self) -> None:
        self.runner.token.raise_if_cancelled()
