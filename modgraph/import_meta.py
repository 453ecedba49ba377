"""Logic for pinning ``import.meta`` self-references to a module's original location."""

import json
import re

from modgraph.locations import is_file_location, location_to_path
from modgraph.mask_source import mask_source

IMPORT_META_RE = re.compile(
    r"(?<![\w$.])import\s*\.\s*meta\s*\.\s*"
    r"(?:(?P<prop>url|filename|dirname)\b|(?P<resolve>resolve\s*\())"
)
ORIGIN_HEADER_PREFIX = "// modgraph: transformed from "


def has_import_meta(text: str) -> bool:
    """Check for ``import.meta`` properties that depend on the module location."""
    return IMPORT_META_RE.search(text) is not None


def origin_header(location: str) -> str:
    """Return the traceability comment prepended to transformed modules."""
    return f"{ORIGIN_HEADER_PREFIX}{location}\n"


def _replacement(match: re.Match, location: str) -> str:
    literal = json.dumps(location)
    if match.group("resolve"):
        return f"((specifier) => new URL(specifier, {literal}).href)("

    prop = match.group("prop")
    if prop == "url":
        return literal
    if not is_file_location(location):
        return "undefined"
    path = location_to_path(location)
    if prop == "filename":
        return json.dumps(str(path))
    return json.dumps(str(path.parent))


def replace_import_meta(text: str, location: str) -> str:
    """Rewrite ``import.meta.url``/``filename``/``dirname``/``resolve(`` in 'text'.

    Cached copies live elsewhere on disk, so each construct is replaced by an
    expression that evaluates against 'location' instead of the cache path.
    Occurrences inside comments and string literals are left alone.
    """
    masked = mask_source(text)
    matches = list(IMPORT_META_RE.finditer(masked))
    if not matches:
        return text

    out: list[str] = []
    last = 0
    for m in matches:
        out.append(text[last : m.start()])
        out.append(_replacement(m, location))
        last = m.end()
    out.append(text[last:])
    return "".join(out)
