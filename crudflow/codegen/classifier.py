from __future__ import annotations

import re
from typing import Callable, List, Tuple

from crudflow.codegen.java_source import class_header, class_name, mask_java
from crudflow.models import ArtifactKind

_MAPPING_RE = re.compile(r"@(?:Rest)?Controller\b|@(?:Request|Get|Post|Put|Delete|Patch)Mapping\b")
_SERVICE_RE = re.compile(r"@Service\b")
_ENTITY_RE = re.compile(r"@(?:Entity|Table|Document|Embeddable|MappedSuperclass)\b")
_REPOSITORY_RE = re.compile(
    r"@Repository\b"
    r"|\bextends\s+(?:[\w.]*\.)?(?:Jpa|Crud|PagingAndSorting|ListCrud|Mongo|Reactive\w*)?Repository\s*<"
)
_DTO_SUFFIXES = ("Request", "Response", "Dto", "DTO")

Rule = Tuple[ArtifactKind, Callable[[str, str, bool], bool]]


def _is_controller(header: str, name: str, controller_hint: bool) -> bool:
    return controller_hint or bool(_MAPPING_RE.search(header)) or name.endswith("Controller")


def _is_service(header: str, name: str, controller_hint: bool) -> bool:
    return bool(_SERVICE_RE.search(header)) or name.endswith(("Service", "ServiceImpl"))


def _is_entity(header: str, name: str, controller_hint: bool) -> bool:
    return bool(_ENTITY_RE.search(header))


def _is_dto(header: str, name: str, controller_hint: bool) -> bool:
    return name.endswith(_DTO_SUFFIXES)


def _is_repository(header: str, name: str, controller_hint: bool) -> bool:
    return bool(_REPOSITORY_RE.search(header)) or name.endswith("Repository")


# First match wins; the order is part of the contract.
RULES: List[Rule] = [
    (ArtifactKind.CONTROLLER, _is_controller),
    (ArtifactKind.SERVICE, _is_service),
    (ArtifactKind.ENTITY, _is_entity),
    (ArtifactKind.DTO, _is_dto),
    (ArtifactKind.REPOSITORY, _is_repository),
]


def classify(unit: str, controller_hint: bool = False) -> ArtifactKind:
    """Return the artifact kind of one generated class unit.

    Only the class header (annotations, name, supertypes) is inspected, so a
    service that merely calls a repository is not taken for one.
    """
    header = mask_java(class_header(unit) or unit)
    name = class_name(unit)
    for kind, predicate in RULES:
        if predicate(header, name, controller_hint):
            return kind
    return ArtifactKind.GENERIC
