from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from crudflow.codegen import java_source
from crudflow.codegen.classifier import classify
from crudflow.errors import SourceTreeError
from crudflow.models import ArtifactKind, InventoryKind, ModelDescriptor, SourceChange
from crudflow.utils.io import read_text, write_text

logger = logging.getLogger(__name__)

EXCLUDE_DIRS = {".git", ".idea", ".vscode", "target", "build", "out", ".gradle", "node_modules"}

SPRING_BOOT_APP_RE = re.compile(r"@SpringBootApplication\b")
JAVA_PACKAGE_RE = re.compile(r"^\s*package\s+([a-zA-Z0-9_.]+)\s*;", re.M)

LAYER_PACKAGES: Dict[ArtifactKind, str] = {
    ArtifactKind.CONTROLLER: "controller",
    ArtifactKind.SERVICE: "service",
    ArtifactKind.ENTITY: "entity",
    ArtifactKind.DTO: "dto",
    ArtifactKind.REPOSITORY: "repository",
}

INVENTORY_KINDS: Dict[InventoryKind, tuple] = {
    InventoryKind.MODEL: (ArtifactKind.ENTITY, ArtifactKind.DTO),
    InventoryKind.CONTROLLER: (ArtifactKind.CONTROLLER,),
    InventoryKind.SERVICE: (ArtifactKind.SERVICE,),
}


class SpringSourceTree:
    """Source inventory and mutation operations over a Spring Boot source root.

    Files are never overwritten: creating a class whose file already exists is
    skipped, and updates only add methods and imports that are missing.
    """

    def __init__(self, root: Path, base_package: Optional[str] = None) -> None:
        self.root = self._source_root(root)
        self.base_package = base_package or self._detect_base_package()
        self.changes: List[SourceChange] = []

    # ---------------- inventory ----------------

    def java_files(self) -> List[Path]:
        return sorted(
            path
            for path in self.root.rglob("*.java")
            if not any(part in EXCLUDE_DIRS for part in path.relative_to(self.root).parts)
        )

    def list_files(self, kind: InventoryKind) -> List[Path]:
        wanted = INVENTORY_KINDS[kind]
        return [path for path in self.java_files() if classify(read_text(path)) in wanted]

    def list_models(self, kind: InventoryKind) -> List[ModelDescriptor]:
        return [java_source.describe(read_text(path), path.stem) for path in self.list_files(kind)]

    def find_file(self, kind: InventoryKind, name: str) -> Optional[Path]:
        if not name:
            return None
        for path in self.list_files(kind):
            if path.stem == name:
                return path
        return None

    # ---------------- mutation ----------------

    def create_controller_or_update_method(self, name: str, code: str, force_create: bool) -> None:
        existing = self.find_file(InventoryKind.CONTROLLER, name)
        if existing is None:
            self._create(code, ArtifactKind.CONTROLLER)
            return
        if force_create:
            logger.warning("Controller %s already exists, merging methods instead", name)
        self._merge_methods(existing, code, ArtifactKind.CONTROLLER)

    def create_service(self, code: str) -> None:
        self._create(code, ArtifactKind.SERVICE)

    def create_entity(self, code: str) -> None:
        self._create(code, ArtifactKind.ENTITY)

    def create_dto(self, code: str) -> None:
        self._create(code, ArtifactKind.DTO)

    def create_repository(self, code: str) -> None:
        self._create(code, ArtifactKind.REPOSITORY)

    def create_class(self, code: str, package: Optional[str] = None) -> None:
        self._create(code, ArtifactKind.GENERIC, package)

    def update_method(self, file: Path, service_name: str, code: str) -> None:
        logger.info("Updating %s with generated methods", service_name)
        self._merge_methods(file, code, ArtifactKind.SERVICE)

    # ---------------- helpers ----------------

    def package_for(self, kind: ArtifactKind) -> str:
        layer = LAYER_PACKAGES.get(kind)
        return f"{self.base_package}.{layer}" if layer else self.base_package

    def _create(self, code: str, kind: ArtifactKind, package: Optional[str] = None) -> Optional[Path]:
        name = java_source.class_name(code)
        if not name:
            logger.warning("Generated %s code has no class declaration, skipped", kind.value)
            return None
        package = package or self.package_for(kind)
        target = self.root.joinpath(*package.split(".")) / f"{name}.java"
        if target.exists():
            logger.warning("%s already exists, not overwriting", target)
            return None
        write_text(target, java_source.set_package(code, package).rstrip() + "\n")
        self.changes.append(SourceChange(action="created", kind=kind, path=target))
        logger.info("Created %s %s", kind.value, target)
        return target

    def _merge_methods(self, file: Path, code: str, kind: ArtifactKind) -> None:
        current = read_text(file)
        existing = set(java_source.method_names(current))
        added = []
        for method in java_source.extract_methods(code):
            if method.name in existing:
                continue
            existing.add(method.name)
            added.append(method.text)
        if not added:
            logger.info("%s already defines every generated method", file.name)
            return
        _, imports = java_source.header_statements(code)
        updated = java_source.insert_members(current, added)
        updated = java_source.merge_imports(updated, imports)
        write_text(file, updated)
        self.changes.append(SourceChange(action="updated", kind=kind, path=file))
        logger.info("Added %d method(s) to %s", len(added), file)

    def _source_root(self, root: Path) -> Path:
        if not root.is_dir():
            raise SourceTreeError(f"Source root does not exist: {root}")
        for candidate in (root / "src" / "main" / "java", root / "main" / "java"):
            if candidate.is_dir():
                return candidate
        return root

    def _detect_base_package(self) -> str:
        files = self.java_files()
        for path in files:
            text = read_text(path)
            if SPRING_BOOT_APP_RE.search(text):
                match = JAVA_PACKAGE_RE.search(text)
                if match:
                    return match.group(1)
        freq: Dict[str, int] = {}
        for path in files:
            match = JAVA_PACKAGE_RE.search(read_text(path))
            if match:
                freq[match.group(1)] = freq.get(match.group(1), 0) + 1
        if not freq:
            return "com.example"
        return sorted(freq.items(), key=lambda item: item[1], reverse=True)[0][0]
