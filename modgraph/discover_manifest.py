"""Logic for finding and loading import maps declared in project manifests."""

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from modgraph.errors import InvalidResolutionTable
from modgraph.mask_source import mask_source
from modgraph.resolution_table import ResolutionTable

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAMES = ["deno.json", "deno.jsonc", "import_map.json"]


def load_jsonc(path: Path) -> dict[str, Any]:
    """Load a JSON file that may contain comments and trailing commas."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read {path}: {exc}"
        raise InvalidResolutionTable(msg) from exc
    cleaned = mask_source(raw, mask_strings=False)
    cleaned = _strip_trailing_commas(cleaned)
    try:
        data = json.loads(cleaned) if cleaned.strip() else {}
    except json.JSONDecodeError as exc:
        msg = f"Cannot parse {path}: {exc}"
        raise InvalidResolutionTable(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path} must contain a JSON object"
        raise InvalidResolutionTable(msg)
    return data


def _strip_trailing_commas(text: str) -> str:
    # Only commas outside strings that are followed by a closing bracket
    masked = mask_source(text)
    out = list(text)
    for i, ch in enumerate(masked):
        if ch != ",":
            continue
        j = i + 1
        while j < len(masked) and masked[j].isspace():
            j += 1
        if j < len(masked) and masked[j] in "}]":
            out[i] = " "
    return "".join(out)


def find_manifest(
    start_dir: Path, names: Sequence[str] = DEFAULT_MANIFEST_NAMES
) -> Path | None:
    """Walk from 'start_dir' up to the filesystem root looking for a manifest."""
    current = start_dir.resolve()
    for directory in (current, *current.parents):
        for name in names:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def load_manifest_table(path: Path) -> ResolutionTable:
    """Load the import map declared by a manifest or import-map file.

    A manifest may inline 'imports'/'scopes' or point at a separate file via
    'importMap'. Relative targets and scopes resolve against the file that
    declares them.
    """
    data = load_jsonc(path)
    import_map_ref = data.get("importMap")
    if isinstance(import_map_ref, str) and "imports" not in data:
        referenced = (path.parent / import_map_ref).resolve()
        logger.debug("Manifest %s points at import map %s", path, referenced)
        return load_manifest_table(referenced)

    base = path.parent.resolve().as_uri() + "/"
    return ResolutionTable.from_mapping(
        {"imports": data.get("imports") or {}, "scopes": data.get("scopes") or {}},
        base=base,
    )


def discover_table(
    module_path: Path, names: Sequence[str] = DEFAULT_MANIFEST_NAMES
) -> ResolutionTable | None:
    """Return the import map from the nearest manifest above a local module, if any."""
    manifest = find_manifest(module_path.parent, names)
    if manifest is None:
        return None
    logger.info("Using import map from %s", manifest)
    return load_manifest_table(manifest)
