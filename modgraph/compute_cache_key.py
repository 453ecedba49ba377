"""Logic for computing content-addressed cache keys."""

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from modgraph.resolution_table import ResolutionTable


def canonical_hash(payload: dict[str, Any]) -> str:
    """Compute a stable SHA-256 hex digest of a JSON-serializable payload.

    Uses canonical JSON serialization (sorted keys).
    """
    payload_json = json.dumps(payload, sort_keys=True, ensure_ascii=True)
    return hashlib.sha256(payload_json.encode("utf-8")).hexdigest()


def compute_cache_key(text: str, table: "ResolutionTable") -> str:
    """Derive the cache key for a module's text under a resolution table.

    The module's specifier is deliberately not part of the key: identical
    text under an identical table always lands in the same cache entry.
    """
    return canonical_hash({"text": text, "resolution_table": table.to_dict()})
