"""Content-addressed storage for transformed modules."""

import asyncio
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".js"
SHARD_RE = re.compile(r"[0-9a-f]{2}")


def default_cache_dir() -> Path:
    """Return the process-wide default cache root.

    $MODGRAPH_CACHE_DIR wins, then $XDG_CACHE_HOME/modgraph, then ~/.cache/modgraph.
    """
    explicit = os.environ.get("MODGRAPH_CACHE_DIR")
    if explicit:
        return Path(explicit).resolve()
    xdg = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return (base / "modgraph").resolve()


class DiskCache:
    """Stores transformed text under a path fully determined by its cache key."""

    def __init__(self, root: str | Path, suffix: str = DEFAULT_SUFFIX) -> None:
        """Initialize the cache; relative roots are resolved against the CWD."""
        self.root = Path(root).resolve()
        self.suffix = suffix

    def location_for(self, key: str) -> Path:
        """Return the file path for a cache key."""
        return self.root / key[:2] / f"{key}{self.suffix}"

    def url_for(self, key: str) -> str:
        """Return the cache entry location as a ``file://`` URL."""
        return self.location_for(key).as_uri()

    async def write(self, key: str, text: str) -> Path:
        """Persist text under the key without blocking the event loop."""
        return await asyncio.to_thread(self.write_sync, key, text)

    def write_sync(self, key: str, text: str) -> Path:
        """Persist text under the key.

        The entry appears atomically, so concurrent writers of the same key
        (even from other processes) never expose a partial file.
        """
        target = self.location_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=".tmp-", suffix=".partial"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Wrote cache entry %s", target)
        return target

    def clear(self) -> int:
        """Remove every cached entry and return how many files were removed."""
        if not self.root.is_dir():
            return 0
        removed = 0
        # Only the key-prefix shards are ours; anything else under root is left alone
        for shard in self.root.iterdir():
            if shard.is_dir() and SHARD_RE.fullmatch(shard.name):
                removed += sum(1 for p in shard.glob(f"*{self.suffix}") if p.is_file())
                shutil.rmtree(shard)
        logger.info("Cleared %d cache entries from %s", removed, self.root)
        return removed
