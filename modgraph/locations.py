"""Helpers for converting between filesystem paths and module locations.

A module location is always an absolute URL string: ``file://`` for local
modules, ``http(s)://`` for remote ones.
"""

from pathlib import Path
from urllib.parse import urljoin, urlsplit
from urllib.request import url2pathname

from modgraph.classify_specifier import SpecifierKind, classify_specifier


def to_location(specifier: str | Path, base: str | None = None) -> str:
    """Turn a path, relative specifier or URL into an absolute location."""
    if isinstance(specifier, Path):
        return specifier.resolve().as_uri()

    kind = classify_specifier(specifier)
    if kind is SpecifierKind.REMOTE_HTTP or specifier.startswith("file:"):
        return specifier
    if base is not None and kind is SpecifierKind.LOCAL_RELATIVE:
        return urljoin(base, specifier)
    return Path(specifier).resolve().as_uri()


def join_location(base: str, specifier: str) -> str:
    """Resolve a relative or root-relative specifier against a location."""
    return urljoin(base, specifier)


def is_file_location(location: str) -> bool:
    """Check whether the location uses the file scheme."""
    return location.startswith("file:")


def location_to_path(location: str) -> Path:
    """Convert a ``file://`` location into a filesystem path."""
    parts = urlsplit(location)
    if parts.scheme != "file":
        msg = f"Not a file location: {location}"
        raise ValueError(msg)
    return Path(url2pathname(parts.path))
