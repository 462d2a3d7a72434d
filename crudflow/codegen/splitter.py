from __future__ import annotations

import logging
import re
from typing import List

from crudflow.codegen.java_source import find_type_declarations, header_statements, mask_java
from crudflow.codegen.parsers import parse_code_blocks

logger = logging.getLogger(__name__)

_PACKAGE_RE = re.compile(r"\bpackage\s+[\w$.]+\s*;")


def split_classes(response: str) -> List[str]:
    """Split a model response into independent class units.

    Each unit carries the ``package`` and ``import`` statements of the
    compilation unit it came from, followed by one top-level declaration.
    Prose, code fences and anything that is not a class body are dropped.
    """
    units: List[str] = []
    for block in parse_code_blocks(response):
        for segment in _compilation_units(block):
            units.extend(_split_segment(segment))
    if not units:
        logger.debug("No class body found in response (%d chars)", len(response))
    return units


def _compilation_units(block: str) -> List[str]:
    # A block can hold several files, each opened by its own package statement.
    masked = mask_java(block)
    starts = [match.start() for match in _PACKAGE_RE.finditer(masked)]
    if len(starts) <= 1:
        return [block]
    starts[0] = 0
    starts.append(len(block))
    return [block[start:end] for start, end in zip(starts, starts[1:])]


def _split_segment(code: str) -> List[str]:
    masked = mask_java(code)
    declarations = find_type_declarations(code, masked)
    if not declarations:
        return []
    package, imports = header_statements(code, masked)
    preamble: List[str] = []
    if package:
        preamble.append(package)
    if imports:
        preamble.append("\n".join(imports))
    units: List[str] = []
    for decl in declarations:
        body = code[decl.start:decl.end].strip()
        units.append("\n\n".join(preamble + [body]))
    return units
