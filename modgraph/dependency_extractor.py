"""Logic for finding import/export specifiers and their exact source spans."""

import bisect
import re
from dataclasses import dataclass
from enum import Enum

from modgraph.mask_source import mask_source

# Matched against masked source: literal bodies are STRING_MASK runs.
_LITERAL = r"(?P<lit>(?P<q>['\"])\x01*(?P=q))"
STATIC_RE = re.compile(
    r"(?<![\w$.])(?P<kw>import|export)(?P<type>\s+type(?=[\s{*]))?\s*"
    r"(?:[\w$*{},\s]+?\s*\bfrom\s*)?" + _LITERAL
)
DYNAMIC_RE = re.compile(r"(?<![\w$.])import\s*\(\s*" + _LITERAL + r"\s*[,)]")
QUICK_MODULE_RE = re.compile(r"\b(?:import|export)\b(?:\s*\(|[\w$*{},\s]*['\"])")
MIN_LITERAL_LEN = 3  # two quotes and a non-empty body


class DependencyRole(Enum):
    """Whether an edge is needed at runtime or only for type checking."""

    VALUE = "value"
    TYPE_ONLY = "type-only"


@dataclass(frozen=True)
class Span:
    """Zero-based line/column range of a quoted specifier, end exclusive."""

    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass(frozen=True)
class DependencyEdge:
    """A specifier as written in a module, with its location and role."""

    specifier: str
    span: Span
    role: DependencyRole = DependencyRole.VALUE


def line_starts(text: str) -> list[int]:
    """Return the offset at which every line of 'text' begins."""
    starts = [0]
    starts.extend(m.end() for m in re.finditer("\n", text))
    return starts


def offset_to_position(starts: list[int], offset: int) -> tuple[int, int]:
    """Convert an absolute offset to a (line, column) pair."""
    line = bisect.bisect_right(starts, offset) - 1
    return line, offset - starts[line]


def position_to_offset(starts: list[int], line: int, column: int) -> int:
    """Convert a (line, column) pair back to an absolute offset."""
    return starts[line] + column


def has_module_syntax(text: str) -> bool:
    """Quick check for anything that looks like an import or export with a specifier.

    Comments are blanked first, so comments inside an import clause cannot hide
    it. May report false positives (e.g. inside strings), never false negatives.
    """
    masked = mask_source(text, mask_strings=False)
    return QUICK_MODULE_RE.search(masked) is not None


def extract_dependencies(location: str, text: str) -> list[DependencyEdge]:
    """Return every static, re-export and dynamic import specifier in 'text'.

    'location' is accepted for interface parity with other extractors; the
    regex scanner does not need it.
    """
    del location
    masked = mask_source(text)
    starts = line_starts(text)
    found: dict[int, DependencyEdge] = {}

    def add(match: re.Match, role: DependencyRole) -> None:
        start, end = match.span("lit")
        if start in found or end - start < MIN_LITERAL_LEN:
            return
        start_line, start_col = offset_to_position(starts, start)
        end_line, end_col = offset_to_position(starts, end)
        found[start] = DependencyEdge(
            specifier=text[start + 1 : end - 1],
            span=Span(start_line, start_col, end_line, end_col),
            role=role,
        )

    for m in STATIC_RE.finditer(masked):
        add(m, DependencyRole.TYPE_ONLY if m.group("type") else DependencyRole.VALUE)
    for m in DYNAMIC_RE.finditer(masked):
        add(m, DependencyRole.VALUE)

    return [found[k] for k in sorted(found)]
