"""Recursive module graph transformation with content-addressed caching.

The engine reads a module, strips its type annotations, rewrites every
import/export specifier through a resolution table, transforms each local
dependency concurrently, points the module at its dependencies' cache
entries and persists the result. Every module is transformed once per
resolution table; circular imports terminate because a module's cache
location is registered before its dependencies are visited.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from modgraph.annotation_stripper import DEFAULT_COMMAND, AnnotationStripper
from modgraph.classify_specifier import SpecifierKind, classify_specifier, is_remote
from modgraph.compute_cache_key import compute_cache_key
from modgraph.dependency_extractor import (
    DependencyEdge,
    extract_dependencies,
    has_module_syntax,
)
from modgraph.discover_manifest import DEFAULT_MANIFEST_NAMES, discover_table
from modgraph.disk_cache import DiskCache, default_cache_dir
from modgraph.errors import (
    CacheWriteFailed,
    DependencyTransformFailed,
    InvalidSource,
    ModGraphError,
)
from modgraph.import_meta import has_import_meta, origin_header, replace_import_meta
from modgraph.locations import (
    is_file_location,
    join_location,
    location_to_path,
    to_location,
)
from modgraph.replace_specifiers import replace_specifiers
from modgraph.resolution_table import ResolutionTable
from modgraph.source_reader import SourceReader
from modgraph.transform_report import ModuleOutcome, TransformReport

logger = logging.getLogger(__name__)

Extractor = Callable[[str, str], list[DependencyEdge]]
Loader = Callable[[str], Any]
RecordKey = tuple[str, str]  # (module location, resolution table fingerprint)


@dataclass
class EngineState:
    """Bookkeeping owned by exactly one engine instance."""

    modules: dict[str, Any] = field(default_factory=dict)  # specifier -> loaded value
    records: dict[RecordKey, str] = field(default_factory=dict)  # -> cache location
    in_flight: dict[RecordKey, "asyncio.Task[str]"] = field(default_factory=dict)


class TransformEngine:
    """Transforms module graphs into a disk cache."""

    def __init__(
        self,
        cache: DiskCache,
        stripper: AnnotationStripper | None = None,
        *,
        reader: SourceReader | None = None,
        extractor: Extractor = extract_dependencies,
        resolution_table: ResolutionTable | None = None,
        auto_discover: bool = True,
        manifest_names: Sequence[str] = DEFAULT_MANIFEST_NAMES,
        follow_remote: bool = False,
        report: TransformReport | None = None,
    ) -> None:
        """Initialize the engine with its collaborators and resolution settings."""
        self.cache = cache
        self.stripper = stripper or AnnotationStripper()
        self.reader = reader or SourceReader()
        self.extractor = extractor
        self.resolution_table = resolution_table or ResolutionTable()
        self.auto_discover = auto_discover
        self.manifest_names = list(manifest_names)
        self.follow_remote = follow_remote
        self.report = report
        self.state = EngineState()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "TransformEngine":
        """Build an engine from a merged configuration dictionary."""
        transpile = config["transpile"]
        resolution = config["resolution"]
        cache = DiskCache(
            config.get("cache_dir") or default_cache_dir(), config["cache"]["suffix"]
        )
        stripper = AnnotationStripper(
            transpile.get("mode"),
            transpile.get("compiler_options"),
            transpile.get("command") or DEFAULT_COMMAND,
        )
        return cls(
            cache,
            stripper,
            reader=SourceReader(timeout=config["fetch"]["timeout"]),
            resolution_table=ResolutionTable.from_mapping(resolution.get("import_map")),
            auto_discover=resolution.get("auto_discover", True),
            manifest_names=resolution.get("manifest_names") or DEFAULT_MANIFEST_NAMES,
            follow_remote=resolution.get("follow_remote", False),
        )

    async def __aenter__(self) -> "TransformEngine":
        """Enter an async context; the reader is closed on exit."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Release network resources."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the source reader's HTTP client."""
        await self.reader.aclose()

    # -----------------------------
    # Top-level entry points
    # -----------------------------

    async def import_module(
        self,
        specifier: str,
        resolution_table: ResolutionTable | None = None,
        loader: Loader | None = None,
    ) -> Any:
        """Transform a module graph and hand the entry's cache location to 'loader'.

        Results are memoized per specifier. Without a loader the cache
        location itself is returned.
        """
        if specifier in self.state.modules:
            return self.state.modules[specifier]

        location = to_location(specifier)
        table = await self.effective_table(location, resolution_table)
        cache_location = await self.transform(location, table)

        value: Any = cache_location if loader is None else loader(cache_location)
        if inspect.isawaitable(value):
            value = await value
        self.state.modules[specifier] = value
        return value

    async def effective_table(
        self, location: str, resolution_table: ResolutionTable | None = None
    ) -> ResolutionTable:
        """Return the table for a top-level request.

        An explicit table is used as-is. Otherwise the engine's table is merged
        over one discovered from the nearest manifest of a local module.
        """
        if resolution_table is not None:
            return resolution_table

        table = self.resolution_table
        if self.auto_discover and is_file_location(location):
            discovered = await asyncio.to_thread(
                discover_table, location_to_path(location), self.manifest_names
            )
            if discovered is not None:
                table = table.merged_over(discovered)
        return table

    async def transform(
        self, location: str, table: ResolutionTable | None = None
    ) -> str:
        """Transform the module at 'location' and everything it imports.

        Returns the cache location of the transformed module once its entry
        has been written.
        """
        table = self.resolution_table if table is None else table
        key = (location, table.fingerprint)

        # A registered record may still be unwritten while its task runs
        pending = self.state.in_flight.get(key)
        if pending is not None:
            logger.debug("Waiting for in-flight transformation of %s", location)
            return await pending
        return await self._visit(location, table, key)

    # -----------------------------
    # Transformation steps
    # -----------------------------

    async def _visit(
        self, location: str, table: ResolutionTable, key: RecordKey
    ) -> str:
        """Return the record for 'key', joining or starting its transformation.

        Dependency edges come through here so that a cycle back to a module
        still being transformed gets its early record instead of waiting.
        """
        record = self.state.records.get(key)
        if record is not None:
            logger.debug("Already transformed %s", location)
            return record

        pending = self.state.in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(
                self._transform_module(location, table, key)
            )
            self.state.in_flight[key] = pending
        else:
            logger.debug("Joining in-flight transformation of %s", location)
        return await pending

    async def _transform_module(
        self, location: str, table: ResolutionTable, key: RecordKey
    ) -> str:
        try:
            raw = await self.reader.read(location)
            try:
                stripped = await self.stripper.strip(raw)
            except InvalidSource as exc:
                raise exc.at(location) from exc

            if not has_module_syntax(stripped) and not has_import_meta(stripped):
                return await self._cache_leaf(location, stripped, table, key)
            return await self._cache_graph(location, stripped, table, key)
        finally:
            self.state.in_flight.pop(key, None)

    async def _cache_leaf(
        self, location: str, text: str, table: ResolutionTable, key: RecordKey
    ) -> str:
        cache_key = compute_cache_key(text, table)
        cache_location = self.cache.url_for(cache_key)
        await self._write(location, cache_key, text)
        self.state.records[key] = cache_location

        logger.info("Cached %s -> %s", location, cache_location)
        self._add_outcome(ModuleOutcome(location, cache_location, fast_path=True))
        return cache_location

    async def _cache_graph(
        self, location: str, text: str, table: ResolutionTable, key: RecordKey
    ) -> str:
        edges = self._extract(location, text)

        # First pass: resolution table, plus absolute locations for local imports
        resolved = {
            e.specifier: self._resolve(location, table, e.specifier) for e in edges
        }
        first_pass = replace_specifiers(text, edges, resolved)
        first_pass = replace_import_meta(first_pass, location)

        cache_key = compute_cache_key(first_pass, table)
        cache_location = self.cache.url_for(cache_key)
        # Registered before recursing so cyclic imports of this module land here
        self.state.records[key] = cache_location

        try:
            dependencies = sorted(
                {r for r in resolved.values() if self._should_follow(r)}
            )
            results = await asyncio.gather(
                *(
                    self._transform_dependency(dep, location, table)
                    for dep in dependencies
                )
            )
            cached = {dep: loc for dep, loc in results if loc is not None}

            # Second pass: point at the dependencies' cache entries
            final = first_pass
            if cached:
                final = replace_specifiers(
                    first_pass, self._extract(location, first_pass), cached
                )
            await self._write(location, cache_key, origin_header(location) + final)
        except BaseException:
            self.state.records.pop(key, None)
            raise

        logger.info(
            "Cached %s -> %s (%d dependencies)",
            location,
            cache_location,
            len(dependencies),
        )
        self._add_outcome(
            ModuleOutcome(
                location,
                cache_location,
                fast_path=False,
                dependencies=len(dependencies),
                failed_dependencies=[dep for dep, loc in results if loc is None],
            )
        )
        return cache_location

    async def _transform_dependency(
        self, dependency: str, parent: str, table: ResolutionTable
    ) -> tuple[str, str | None]:
        """Transform one edge; a failure leaves the edge at its resolved specifier."""
        try:
            key = (dependency, table.fingerprint)
            return dependency, await self._visit(dependency, table, key)
        except ModGraphError as exc:
            logger.warning("%s", DependencyTransformFailed(dependency, parent, exc))
            return dependency, None

    def _extract(self, location: str, text: str) -> list[DependencyEdge]:
        try:
            return self.extractor(location, text)
        except ValueError as exc:
            raise InvalidSource(str(exc), location) from exc

    def _resolve(self, location: str, table: ResolutionTable, specifier: str) -> str:
        target = table.resolve(location, specifier)
        kind = classify_specifier(target)
        if kind is SpecifierKind.LOCAL_RELATIVE or (
            kind is SpecifierKind.LOCAL_ABSOLUTE_FILE and not target.startswith("file:")
        ):
            return join_location(location, target)
        return target

    def _should_follow(self, specifier: str) -> bool:
        if is_file_location(specifier):
            return True
        return self.follow_remote and is_remote(specifier)

    async def _write(self, location: str, cache_key: str, text: str) -> None:
        try:
            await self.cache.write(cache_key, text)
        except OSError as exc:
            raise CacheWriteFailed(location, str(exc)) from exc

    def _add_outcome(self, outcome: ModuleOutcome) -> None:
        if self.report is not None:
            self.report.add_outcome(outcome)
