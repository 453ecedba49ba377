"""Logic for categorizing module specifiers."""

from enum import Enum


class SpecifierKind(Enum):
    """Coarse category of a module specifier."""

    LOCAL_RELATIVE = "local-relative"
    LOCAL_ABSOLUTE_FILE = "local-absolute-file"
    REMOTE_HTTP = "remote-http"
    REGISTRY = "registry"  # bare names and non-file schemes (npm:, jsr:, node:, data:)


def classify_specifier(specifier: str) -> SpecifierKind:
    """Classify a specifier. Total: unknown shapes fall back to REGISTRY."""
    if specifier.startswith("."):
        return SpecifierKind.LOCAL_RELATIVE
    if specifier.startswith("/") or specifier.startswith("file:"):
        return SpecifierKind.LOCAL_ABSOLUTE_FILE
    lowered = specifier[:8].lower()
    if lowered.startswith("http://") or lowered.startswith("https://"):
        return SpecifierKind.REMOTE_HTTP
    return SpecifierKind.REGISTRY


def is_remote(specifier: str) -> bool:
    """Check whether the specifier is an http(s) URL."""
    return classify_specifier(specifier) is SpecifierKind.REMOTE_HTTP
