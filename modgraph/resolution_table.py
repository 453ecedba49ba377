"""Immutable import-map snapshot with scoped, longest-prefix lookup."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from modgraph.classify_specifier import SpecifierKind, classify_specifier
from modgraph.compute_cache_key import canonical_hash
from modgraph.deep_merge import deep_merge
from modgraph.errors import InvalidResolutionTable
from modgraph.locations import join_location, to_location

Entries = tuple[tuple[str, str], ...]


def _sorted_entries(mapping: Mapping[str, str]) -> Entries:
    # Longest key first, then lexical, so lookups never depend on insertion order
    return tuple(sorted(mapping.items(), key=lambda kv: (-len(kv[0]), kv[0])))


def _match(entries: Entries, specifier: str) -> str | None:
    for key, target in entries:
        if (
            specifier == key
            or (key.endswith("/") and specifier.startswith(key))
            or specifier.startswith(key + "/")
        ):
            return target + specifier[len(key) :]
    return None


def _check_imports(value: Any, where: str) -> dict[str, str]:
    if not isinstance(value, Mapping):
        msg = f"{where} must be a mapping of specifier to target"
        raise InvalidResolutionTable(msg)
    for key, target in value.items():
        if not isinstance(key, str) or not isinstance(target, str):
            msg = f"{where} entry {key!r} must map a string to a string"
            raise InvalidResolutionTable(msg)
    return dict(value)


def _is_local_path(value: str) -> bool:
    return classify_specifier(value) in {
        SpecifierKind.LOCAL_RELATIVE,
        SpecifierKind.LOCAL_ABSOLUTE_FILE,
    } and not value.startswith("file:")


def _rebase(value: str, base: str | None) -> str:
    if base is not None and _is_local_path(value):
        return join_location(base, value)
    return value


def _scope_location(scope: str, base: str | None) -> str:
    # Requesting modules are always URLs, so path-form scopes become URLs too
    if base is not None or not _is_local_path(scope):
        return _rebase(scope, base)
    location = to_location(scope)
    if scope.endswith("/") and not location.endswith("/"):
        location += "/"
    return location


@dataclass(frozen=True)
class ResolutionTable:
    """Direct and scoped specifier mappings.

    Scopes are kept longest-prefix-first; when several scopes apply to a
    requesting module the most specific one is consulted first, and the
    direct table last.
    """

    imports: Entries = ()
    scopes: tuple[tuple[str, Entries], ...] = ()
    fingerprint: str = field(init=False, compare=False)

    def __post_init__(self) -> None:
        """Compute the table identity used for memoization."""
        object.__setattr__(self, "fingerprint", canonical_hash(self.to_dict()))

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any] | None, base: str | None = None
    ) -> "ResolutionTable":
        """Build a table from an import-map shaped mapping.

        When 'base' is given, relative targets and scope prefixes are resolved
        against it (used for tables loaded from files). Otherwise relative
        targets are kept as written and later resolved against the importing
        module, while path-form scope prefixes are resolved against the CWD.
        """
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            msg = "Import map must be a mapping"
            raise InvalidResolutionTable(msg)

        imports = _check_imports(data.get("imports") or {}, "imports")
        raw_scopes = data.get("scopes") or {}
        if not isinstance(raw_scopes, Mapping):
            msg = "scopes must be a mapping of scope prefix to imports"
            raise InvalidResolutionTable(msg)

        scopes: dict[str, Entries] = {}
        for scope, scoped in raw_scopes.items():
            if not isinstance(scope, str):
                msg = f"scope key {scope!r} must be a string"
                raise InvalidResolutionTable(msg)
            entries = _check_imports(scoped, f"scopes[{scope!r}]")
            scopes[_scope_location(scope, base)] = _sorted_entries(
                {k: _rebase(v, base) for k, v in entries.items()}
            )

        return cls(
            imports=_sorted_entries({k: _rebase(v, base) for k, v in imports.items()}),
            scopes=tuple(sorted(scopes.items(), key=lambda kv: (-len(kv[0]), kv[0]))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the import-map JSON shape."""
        return {
            "imports": dict(self.imports),
            "scopes": {scope: dict(entries) for scope, entries in self.scopes},
        }

    def is_empty(self) -> bool:
        """Check whether the table has no mappings at all."""
        return not self.imports and not self.scopes

    def merged_over(self, fallback: "ResolutionTable") -> "ResolutionTable":
        """Merge this table over a lower-priority one; this table wins on conflicts."""
        if fallback.is_empty():
            return self
        merged = deep_merge(fallback.to_dict(), self.to_dict())
        return ResolutionTable.from_mapping(merged)

    def resolve(self, requesting_location: str, specifier: str) -> str:
        """Map a written specifier for a module at 'requesting_location'.

        Returns the specifier unchanged when nothing matches.
        """
        for scope, entries in self.scopes:
            if requesting_location.startswith(scope):
                hit = _match(entries, specifier)
                if hit is not None:
                    return hit

        hit = _match(self.imports, specifier)
        return specifier if hit is None else hit
