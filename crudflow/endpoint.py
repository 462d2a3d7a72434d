from __future__ import annotations

import logging
import re
from typing import List, Optional

from crudflow.executor import PromptRunner
from crudflow.models import EMPTY_DESCRIPTOR, ModelDescriptor, TargetEndpoint
from crudflow.prompts import PromptTemplate

logger = logging.getLogger(__name__)

_CONTROLLER_RE = re.compile(r"(\w+Controller)")


def match_controller_name(text: str) -> Optional[str]:
    """First ``<word>Controller`` token in ``text``; later matches are ignored."""
    match = _CONTROLLER_RE.search(text)
    return match.group(1) if match else None


def resolve_target(text: str, controllers: List[ModelDescriptor]) -> TargetEndpoint:
    controller = match_controller_name(text)
    if controller is None:
        logger.warning("No controller name found in model answer")
        return TargetEndpoint("", EMPTY_DESCRIPTOR, needs_creation=False)

    target = next((item for item in controllers if item.name == controller), None)
    if target is None:
        logger.info("Controller %s does not exist yet, it will be created", controller)
        return TargetEndpoint(controller, ModelDescriptor(name=controller), needs_creation=True)

    logger.info("Target endpoint controller: %s", controller)
    return TargetEndpoint(controller, target, needs_creation=False)


class EndpointResolver:
    def __init__(self, runner: PromptRunner, prompts: PromptTemplate) -> None:
        self.runner = runner
        self.prompts = prompts

    def resolve(self, story_detail: str, controllers: List[ModelDescriptor]) -> TargetEndpoint:
        prompt = self.prompts.suggest_endpoint(story_detail, controllers)
        answer = self.runner.execute(prompt)
        return resolve_target(answer, controllers)
