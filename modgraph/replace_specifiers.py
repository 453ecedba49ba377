"""Logic for rewriting import/export specifiers in place."""

from collections.abc import Iterable, Mapping

from modgraph.dependency_extractor import (
    DependencyEdge,
    line_starts,
    position_to_offset,
)


def replace_specifiers(
    text: str, edges: Iterable[DependencyEdge], replacements: Mapping[str, str]
) -> str:
    """Replace each edge's quoted specifier with its entry in 'replacements'.

    Edges whose specifier has no replacement (or maps to itself) are left
    untouched. The original quote character is kept.
    """
    starts = line_starts(text)
    edits: list[tuple[int, int, str]] = []
    for edge in edges:
        new = replacements.get(edge.specifier)
        if new is None or new == edge.specifier:
            continue
        span = edge.span
        start = position_to_offset(starts, span.start_line, span.start_column)
        end = position_to_offset(starts, span.end_line, span.end_column)
        quote = text[start]
        edits.append((start, end, f"{quote}{new}{quote}"))

    if not edits:
        return text

    # Apply back to front so earlier offsets stay valid
    out = text
    for start, end, literal in sorted(edits, reverse=True):
        out = out[:start] + literal + out[end:]
    return out
