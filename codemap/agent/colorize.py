"""Diagram post-processing: deterministic rotating fills for subgraphs.

The model is never asked for colors. After generation we strip any ``fill``
it emitted anyway and append one ``style <subgraphId> fill:<placeholder>``
line per subgraph, in first-seen order. Presentation layers remap the
placeholder hex values to theme colors.
"""

from __future__ import annotations

import re

# Order matters: the n-th distinct subgraph gets entry n mod 8.
SUBGRAPH_FILL_PLACEHOLDER_CYCLE: tuple[str, ...] = (
    "#a5d8ff",
    "#ffd8a8",
    "#d0bfff",
    "#b2f2bb",
    "#fcc2d7",
    "#ffec99",
    "#99e9f2",
    "#eebefa",
)

# Supported forms: `subgraph id`, `subgraph id [Label]`, `subgraph id["Label"]`.
# Only the first token after `subgraph` is the id.
_SUBGRAPH_RE = re.compile(
    r'^\s*subgraph\s+([^\s\[]+)\s*(?:\[[^\]]*\]|\["[^"]*"\])?\s*$',
    re.IGNORECASE,
)
_DIRECTIVE_RE = re.compile(r"^\s*(style|classDef)\s+(\S+)\s+(.+?)\s*$", re.IGNORECASE)
_FILL_ATTR_RE = re.compile(r"^(fill|fill-opacity)\s*:", re.IGNORECASE)


def _normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def extract_subgraph_ids(diagram: str) -> list[str]:
    """Return subgraph ids in first-seen order, without duplicates."""
    ids: list[str] = []
    seen: set[str] = set()

    for line in _normalize_line_endings(diagram).split("\n"):
        match = _SUBGRAPH_RE.match(line)
        if not match:
            continue
        raw = match.group(1).strip()
        if len(raw) > 2 and raw.startswith('"') and raw.endswith('"'):
            raw = raw[1:-1].strip()
        if not raw or raw in seen:
            continue
        seen.add(raw)
        ids.append(raw)

    return ids


def strip_fill_from_line(line: str) -> str | None:
    """Remove fill attributes from a style/classDef line.

    Returns the line unchanged when it is not a style/classDef directive,
    the rewritten directive when attributes remain, or None when nothing
    but fills was set (the caller drops the line).
    """
    match = _DIRECTIVE_RE.match(line)
    if not match:
        return line

    keyword, name, attrs = match.groups()
    parts = [part.strip() for part in attrs.split(",")]
    kept = [part for part in parts if part and not _FILL_ATTR_RE.match(part)]
    if not kept:
        return None
    # Preserve the author's keyword casing (`classDef` is case sensitive
    # for some renderers).
    return f"{keyword} {name} {','.join(kept)}"


def colorize_diagram(diagram: str) -> str:
    """Apply rotating fills to every subgraph and return the new diagram text.

    - Removes ``fill:`` / ``fill-opacity:`` from ``style`` and ``classDef``
      lines, dropping lines left with no attributes.
    - Appends ``style <subgraphId> fill:<placeholder>`` for each distinct
      subgraph id in appearance order, after a blank line.
    - With no subgraphs, returns the sanitized text only.
    """
    normalized = _normalize_line_endings(diagram).strip()
    if not normalized:
        return normalized

    subgraph_ids = extract_subgraph_ids(normalized)

    sanitized_lines: list[str] = []
    for line in normalized.split("\n"):
        processed = strip_fill_from_line(line)
        if processed is None:
            continue
        sanitized_lines.append(processed)

    sanitized = "\n".join(sanitized_lines).strip()
    if not subgraph_ids:
        return sanitized

    cycle = SUBGRAPH_FILL_PLACEHOLDER_CYCLE
    style_lines = [
        f"style {subgraph_id} fill:{cycle[idx % len(cycle)]}"
        for idx, subgraph_id in enumerate(subgraph_ids)
    ]

    return f"{sanitized}\n\n" + "\n".join(style_lines)
