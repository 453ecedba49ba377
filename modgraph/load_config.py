"""Logic for loading and merging configuration files."""

from pathlib import Path
from typing import Any

import yaml

from modgraph.deep_merge import deep_merge
from modgraph.discover_manifest import DEFAULT_MANIFEST_NAMES

DEFAULT_CONFIG: dict[str, Any] = {
    "cache_dir": None,
    "cache": {
        "suffix": ".js",
    },
    "transpile": {
        "mode": None,
        "command": ["esbuild"],
        "compiler_options": {},
    },
    "resolution": {
        "import_map": {"imports": {}, "scopes": {}},
        "auto_discover": True,
        "manifest_names": list(DEFAULT_MANIFEST_NAMES),
        "follow_remote": False,
    },
    "fetch": {
        "timeout": 30.0,
    },
}


def load_config(path: str | None = None) -> dict[str, Any]:
    """Load configuration from a YAML file and merge it with defaults."""
    config = DEFAULT_CONFIG.copy()
    if path:
        p = Path(path)
        if p.exists():
            user_config = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            config = deep_merge(config, user_config)
    return config
