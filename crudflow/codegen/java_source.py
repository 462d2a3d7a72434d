"""Lexical helpers for Java source produced by the model.

Generated code is often incomplete or wrapped in prose, so positions are
found with a tolerant scanner over a *masked* copy of the source (comments and
literals blanked out, offsets preserved). ``javalang`` is used where a full
parse is needed and the source is well formed.
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass
from typing import List, Optional, Tuple

import javalang

from crudflow.models import ModelDescriptor

_LITERAL_RE = re.compile(
    r'""".*?"""'
    r'|"(?:\\.|[^"\\\n])*"'
    r"|'(?:\\.|[^'\\\n])'"
    r"|//[^\n]*"
    r"|/\*.*?\*/",
    re.DOTALL,
)
_TYPE_KEYWORD_RE = re.compile(r"\b(class|interface|enum|record)\s+([A-Za-z_$][\w$]*)")
_HEADER_RE = re.compile(r"\b(package|import)\s+(?:static\s+)?[\w$.]+(?:\s*\.\s*\*)?\s*;")
_ANNOTATION_RE = re.compile(r"@[\w$.]+(?:\s*\((?:[^()]|\([^()]*\))*\))?")
_IDENTIFIER = r"[A-Za-z_$][\w$]*"

MODIFIERS = {
    "public",
    "protected",
    "private",
    "abstract",
    "final",
    "static",
    "sealed",
    "strictfp",
}

# javalang also leaks StopIteration/AttributeError on truncated input.
_PARSE_ERRORS = (
    javalang.parser.JavaParserBaseException,
    javalang.tokenizer.LexerError,
    StopIteration,
    AttributeError,
    TypeError,
    IndexError,
)


@dataclass
class TypeDeclaration:
    keyword: str
    name: str
    start: int
    body_start: int
    end: int


@dataclass
class Member:
    kind: str
    name: str
    text: str


def mask_java(code: str) -> str:
    """Blank out comments and literals, keeping offsets and newlines."""
    return _LITERAL_RE.sub(lambda m: re.sub(r"[^\n]", " ", m.group(0)), code)


def find_type_declarations(code: str, masked: Optional[str] = None) -> List[TypeDeclaration]:
    """Top-level class/interface/enum/record declarations, in source order."""
    masked = mask_java(code) if masked is None else masked
    declarations: List[TypeDeclaration] = []
    last_end = 0
    for match in _TYPE_KEYWORD_RE.finditer(masked):
        keyword_start = match.start()
        if keyword_start < last_end:
            continue
        between = masked[last_end:keyword_start]
        if between.count("{") != between.count("}"):
            continue
        if not _follows_declaration_prefix(masked, keyword_start, last_end):
            continue
        body_start = _find_body_start(masked, match.end())
        if body_start < 0:
            continue
        end = _matching_brace(masked, body_start)
        start = _declaration_start(code, masked, keyword_start, last_end)
        declarations.append(
            TypeDeclaration(
                keyword=match.group(1),
                name=match.group(2),
                start=start,
                body_start=body_start,
                end=end,
            )
        )
        last_end = end
    return declarations


def header_statements(code: str, masked: Optional[str] = None) -> Tuple[Optional[str], List[str]]:
    """Return the ``package`` statement and ``import`` statements outside type bodies."""
    masked = mask_java(code) if masked is None else masked
    spans = [(decl.body_start, decl.end) for decl in find_type_declarations(code, masked)]
    package: Optional[str] = None
    imports: List[str] = []
    for match in _HEADER_RE.finditer(masked):
        if any(start <= match.start() < end for start, end in spans):
            continue
        statement = " ".join(code[match.start():match.end()].split())
        if match.group(1) == "package":
            if package is None:
                package = statement
        elif statement not in imports:
            imports.append(statement)
    return package, imports


def class_name(code: str) -> str:
    declarations = find_type_declarations(code)
    return declarations[0].name if declarations else ""


def class_header(code: str) -> str:
    """Annotations and signature of the first declaration, without its body."""
    declarations = find_type_declarations(code)
    if not declarations:
        return ""
    decl = declarations[0]
    return code[decl.start:decl.body_start]


def iter_members(code: str) -> List[Member]:
    """Members of the first top-level type, each with its leading comments and annotations."""
    masked = mask_java(code)
    declarations = find_type_declarations(code, masked)
    if not declarations:
        return []
    decl = declarations[0]
    body_end = decl.end - 1 if masked[decl.end - 1:decl.end] == "}" else decl.end
    return _split_members(code, masked, decl.body_start + 1, body_end, decl.name)


def extract_methods(code: str) -> List[Member]:
    """Methods of a class body, or of a bare fragment holding only methods."""
    if find_type_declarations(code):
        return [member for member in iter_members(code) if member.kind == "method"]
    wrapped = "class __Fragment {\n" + code + "\n}"
    return [member for member in iter_members(wrapped) if member.kind == "method"]


def method_names(code: str) -> List[str]:
    tree = _parse(code)
    if tree is not None:
        names: List[str] = []
        for type_decl in tree.types:
            for member in _body(type_decl):
                if isinstance(member, javalang.tree.MethodDeclaration) and member.name not in names:
                    names.append(member.name)
        return names
    names = []
    for member in extract_methods(code):
        if member.name not in names:
            names.append(member.name)
    return names


def describe(code: str, fallback_name: str = "") -> ModelDescriptor:
    """Name-level summary of a class: field names and ``method()`` names."""
    tree = _parse(code)
    if tree is not None and tree.types:
        type_decl = tree.types[0]
        members: List[str] = []
        for member in _body(type_decl):
            if isinstance(member, javalang.tree.FieldDeclaration):
                members.extend(declarator.name for declarator in member.declarators)
            elif isinstance(member, javalang.tree.MethodDeclaration):
                members.append(f"{member.name}()")
        return ModelDescriptor(name=type_decl.name, members=tuple(members))
    name = class_name(code) or fallback_name
    members = []
    for member in iter_members(code):
        if member.kind == "field":
            members.append(member.name)
        elif member.kind == "method":
            members.append(f"{member.name}()")
    return ModelDescriptor(name=name, members=tuple(members))


def lower_camel(name: str) -> str:
    return name[:1].lower() + name[1:]


def _service_call_re(code: str, service_name: str) -> re.Pattern:
    masked = mask_java(code)
    variables = {service_name, lower_camel(service_name)}
    declared = re.findall(
        rf"\b{re.escape(service_name)}\s+({_IDENTIFIER})\s*[;,)=]", masked
    )
    variables.update(declared)
    alternatives = "|".join(re.escape(name) for name in sorted(variables))
    return re.compile(rf"(?<![\w$.])(?:this\s*\.\s*)?(?:{alternatives})\s*\.\s*({_IDENTIFIER})\s*\(")


def find_service_usages(code: str, service_name: str) -> List[str]:
    """Names of the methods ``code`` calls on ``service_name`` instances, in call order."""
    pattern = _service_call_re(code, service_name)
    used: List[str] = []
    for match in pattern.finditer(mask_java(code)):
        if match.group(1) not in used:
            used.append(match.group(1))
    return used


def find_usage_lines(code: str, service_name: str) -> List[str]:
    pattern = _service_call_re(code, service_name)
    masked_lines = mask_java(code).splitlines()
    lines: List[str] = []
    for masked_line, line in zip(masked_lines, code.splitlines()):
        if pattern.search(masked_line) and line.strip() not in lines:
            lines.append(line.strip())
    return lines


def set_package(code: str, package_name: str) -> str:
    statement = f"package {package_name};"
    masked = mask_java(code)
    for match in _HEADER_RE.finditer(masked):
        if match.group(1) == "package":
            return code[:match.start()] + statement + code[match.end():]
    return f"{statement}\n\n{code.lstrip()}"


def merge_imports(code: str, imports: List[str]) -> str:
    _, existing = header_statements(code)
    missing = [statement for statement in imports if statement not in existing]
    if not missing:
        return code
    masked = mask_java(code)
    anchor = 0
    prefix = ""
    for match in _HEADER_RE.finditer(masked):
        if match.start() >= _first_body_start(code, masked):
            break
        anchor = match.end()
        prefix = "\n" if match.group(1) == "import" else "\n\n"
    block = "\n".join(missing)
    if anchor == 0:
        return f"{block}\n\n{code}"
    return code[:anchor] + prefix + block + code[anchor:]


def insert_members(code: str, members: List[str]) -> str:
    """Append member source texts before the closing brace of the first type."""
    if not members:
        return code
    masked = mask_java(code)
    declarations = find_type_declarations(code, masked)
    if not declarations:
        raise ValueError("No type declaration to insert members into")
    decl = declarations[0]
    closing = decl.end - 1
    if masked[closing:decl.end] != "}":
        raise ValueError(f"Type {decl.name} has no closing brace")
    rendered = "\n\n".join(textwrap.indent(textwrap.dedent(text).strip(), "    ") for text in members)
    head = code[:closing].rstrip()
    return f"{head}\n\n{rendered}\n{code[closing:]}"


def _parse(code: str):
    try:
        return javalang.parse.parse(code)
    except _PARSE_ERRORS:
        return None


def _body(type_decl) -> list:
    body = type_decl.body or []
    if isinstance(body, list):
        return body
    # enum declarations wrap their members in an EnumBody
    return list(getattr(body, "declarations", None) or [])


def _first_body_start(code: str, masked: str) -> int:
    declarations = find_type_declarations(code, masked)
    return declarations[0].start if declarations else len(code)


def _follows_declaration_prefix(masked: str, keyword_start: int, lower: int) -> bool:
    if keyword_start > 0 and masked[keyword_start - 1] == "@":
        keyword_start -= 1
    j = keyword_start
    while j > lower and masked[j - 1] in " \t\r":
        j -= 1
    if j <= lower or masked[j - 1] == "\n":
        return True
    previous = masked[j - 1]
    if previous in ";}{)":
        return True
    word_start = j
    while word_start > lower and (masked[word_start - 1].isalnum() or masked[word_start - 1] in "_$."):
        word_start -= 1
    word = masked[word_start:j]
    if word in MODIFIERS:
        return True
    return word_start > lower and masked[word_start - 1] == "@"


def _find_body_start(masked: str, position: int) -> int:
    brace = masked.find("{", position)
    if brace < 0:
        return -1
    signature = masked[position:brace]
    if ";" in signature or ":" in signature or _TYPE_KEYWORD_RE.search(signature):
        return -1
    return brace


def _matching_brace(masked: str, open_index: int) -> int:
    depth = 0
    for index in range(open_index, len(masked)):
        char = masked[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return len(masked)


def _matching_paren_backward(masked: str, close_index: int, lower: int) -> int:
    depth = 0
    for index in range(close_index, lower - 1, -1):
        char = masked[index]
        if char == ")":
            depth += 1
        elif char == "(":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _declaration_start(code: str, masked: str, keyword_start: int, lower: int) -> int:
    position = keyword_start
    if position > lower and masked[position - 1] == "@":
        position -= 1
    while True:
        j = position
        while j > lower and masked[j - 1].isspace():
            j -= 1
        if j <= lower:
            break
        if masked[j - 1] == ")":
            open_index = _matching_paren_backward(masked, j - 1, lower)
            if open_index < 0:
                break
            j = open_index
            while j > lower and masked[j - 1].isspace():
                j -= 1
        word_start = j
        while word_start > lower and (masked[word_start - 1].isalnum() or masked[word_start - 1] in "_$."):
            word_start -= 1
        word = masked[word_start:j]
        if not word:
            break
        if word_start > lower and masked[word_start - 1] == "@":
            position = word_start - 1
            continue
        if word in MODIFIERS:
            position = word_start
            continue
        break
    # Leading javadoc or line comments belong to the declaration.
    j = position
    while j > lower and masked[j - 1].isspace():
        j -= 1
    leading = code[j:position].lstrip()
    if leading.startswith(("/*", "//")):
        return position - len(leading)
    return position


def _split_members(code: str, masked: str, start: int, end: int, owner: str) -> List[Member]:
    members: List[Member] = []
    member_start = start
    index = start
    parens = 0
    while index < end:
        char = masked[index]
        if char == "(":
            parens += 1
        elif char == ")":
            parens -= 1
        elif parens == 0 and char == ";":
            members.append(_member(code, masked, member_start, index + 1, owner))
            member_start = index + 1
        elif parens == 0 and char == "{":
            close = _matching_brace(masked, index)
            if "=" in _strip_annotations(masked[member_start:index]):
                index = close
                continue
            members.append(_member(code, masked, member_start, close, owner))
            member_start = close
            index = close
            continue
        index += 1
    return [member for member in members if member.text]


def _strip_annotations(text: str) -> str:
    return _ANNOTATION_RE.sub(" ", text)


def _member(code: str, masked: str, start: int, end: int, owner: str) -> Member:
    text = textwrap.dedent(code[start:end].lstrip("\r\n")).strip()
    header = _strip_annotations(masked[start:end])
    brace = header.find("{")
    signature = header[:brace] if brace >= 0 else header
    signature = signature.strip().rstrip(";").strip()
    keyword = _TYPE_KEYWORD_RE.search(signature)
    if keyword:
        return Member(kind="type", name=keyword.group(2), text=text)
    if not signature or signature == "static":
        kind = "initializer" if brace >= 0 else "other"
        return Member(kind=kind, name="", text=text)
    paren = signature.find("(")
    equals = signature.find("=")
    if paren >= 0 and (equals < 0 or paren < equals):
        names = re.findall(_IDENTIFIER, signature[:paren])
        name = names[-1] if names else ""
        kind = "constructor" if name == owner else "method"
        return Member(kind=kind, name=name, text=text)
    declaration = signature[:equals] if equals >= 0 else signature
    names = re.findall(_IDENTIFIER, declaration)
    return Member(kind="field", name=names[-1] if names else "", text=text)
