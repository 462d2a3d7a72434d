from __future__ import annotations

import re
from typing import List

_FENCE_RE = re.compile(r"```[ \t]*([\w+#-]*)[^\n]*\n(.*?)(?:```|\Z)", flags=re.DOTALL)

_CODE_LANGUAGES = {"", "java", "kotlin", "groovy"}


def parse_code_blocks(text: str) -> List[str]:
    """Return the code blocks of a markdown response.

    Blocks tagged with a non-JVM language (json, bash, ...) are ignored. When
    the response carries no fence at all, the whole text is one block.
    """
    blocks: List[str] = []
    fenced = False
    for match in _FENCE_RE.finditer(text):
        fenced = True
        language = match.group(1).strip().lower()
        if language not in _CODE_LANGUAGES:
            continue
        code = match.group(2).strip()
        if code:
            blocks.append(code)
    if fenced:
        return blocks
    stripped = text.strip()
    return [stripped] if stripped else []
