"""Prisma schema merging.

The base schema's ``generator``/``datasource`` preamble is kept verbatim and
appears exactly once.  Model-like blocks (``model``, ``type``, ``view``) and
``enum`` blocks from the base and from every feature fragment are appended
after it; a name already declared is never redefined (first declaration
wins), so the merged schema holds no duplicate model or enum names.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from starterkit.errors import BaseTemplateError
from starterkit.models import MergedSchema

logger = logging.getLogger(__name__)


PREAMBLE_KINDS = frozenset({"generator", "datasource"})
MODEL_KINDS = frozenset({"model", "type", "view"})

_BLOCK_HEADER = re.compile(r"^(model|enum|type|view|generator|datasource)\s+(\w+)\s*\{")
_STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"')


class SchemaSyntaxError(ValueError):
    """Schema text whose blocks cannot be delimited."""


@dataclass(frozen=True)
class SchemaBlock:
    """One top-level Prisma block, including any doc comment right above it."""

    kind: str
    name: str
    text: str


@dataclass(frozen=True)
class SchemaFragment:
    """A parsed feature fragment awaiting merge."""

    feature: str
    expected_model: str
    blocks: list[SchemaBlock]


def _brace_delta(line: str) -> int:
    code = _STRING_LITERAL.sub("", line).split("//", 1)[0]
    return code.count("{") - code.count("}")


def parse_blocks(text: str) -> list[SchemaBlock]:
    """Split schema *text* into top-level blocks.

    Raises:
        SchemaSyntaxError: If a block is never closed.
    """
    blocks: list[SchemaBlock] = []
    pending_comments: list[str] = []
    current: list[str] = []
    kind = name = ""
    depth = 0

    for line in text.splitlines():
        stripped = line.strip()
        if depth == 0:
            match = _BLOCK_HEADER.match(stripped)
            if match is None:
                # Comments directly above a block belong to it.
                pending_comments = pending_comments + [line] if stripped.startswith("//") else []
                continue
            kind, name = match.group(1), match.group(2)
            current = pending_comments + [line]
            pending_comments = []
            depth = _brace_delta(stripped)
        else:
            current.append(line)
            depth += _brace_delta(stripped)

        if depth <= 0:
            blocks.append(SchemaBlock(kind=kind, name=name, text="\n".join(current).strip("\n")))
            current = []
            depth = 0

    if depth > 0:
        raise SchemaSyntaxError(f"unterminated {kind} block '{name}'")
    return blocks


def read_base_schema(path: Path) -> list[SchemaBlock]:
    """Read and parse the base template's schema.

    Raises:
        BaseTemplateError: If the file is unreadable, malformed, or declares
            no ``datasource`` block.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BaseTemplateError(path, f"could not read base schema ({exc})") from exc
    try:
        blocks = parse_blocks(text)
    except SchemaSyntaxError as exc:
        raise BaseTemplateError(path, str(exc)) from exc
    if not any(block.kind == "datasource" for block in blocks):
        raise BaseTemplateError(path, "schema declares no datasource block")
    return blocks


def merge_schema(
    base_blocks: list[SchemaBlock],
    fragments: Iterable[SchemaFragment],
    brand: str = "Xitolaunch",
) -> MergedSchema:
    """Merge feature *fragments* onto the parsed base schema."""
    preamble: list[SchemaBlock] = []
    models: list[SchemaBlock] = []
    enums: list[SchemaBlock] = []
    declared: set[str] = set()

    def _add(block: SchemaBlock, origin: str) -> None:
        if block.kind in PREAMBLE_KINDS:
            if origin == "base":
                preamble.append(block)
            else:
                logger.debug("Ignoring %s block '%s' from %s", block.kind, block.name, origin)
            return
        if block.name in declared:
            logger.info("Schema block '%s' from %s already declared; keeping first", block.name, origin)
            return
        declared.add(block.name)
        (enums if block.kind == "enum" else models).append(block)

    for block in base_blocks:
        _add(block, "base")

    for fragment in fragments:
        names = {block.name for block in fragment.blocks}
        if fragment.expected_model and fragment.expected_model not in names:
            logger.warning(
                "Schema fragment for '%s' does not declare expected model '%s'",
                fragment.feature,
                fragment.expected_model,
            )
        for block in fragment.blocks:
            _add(block, fragment.feature)

    sections = [f"// Prisma schema generated by {brand}"]
    sections.extend(block.text for block in preamble)
    if models:
        sections.append(_section_header("MODELS"))
        sections.extend(block.text for block in models)
    if enums:
        sections.append(_section_header("ENUMS"))
        sections.extend(block.text for block in enums)

    return MergedSchema(
        text="\n\n".join(sections) + "\n",
        models=[block.name for block in models],
        enums=[block.name for block in enums],
    )


def _section_header(title: str) -> str:
    rule = "// " + "=" * 22
    return f"{rule}\n// {title}\n{rule}"
