"""Exception taxonomy for module transformation."""


class ModGraphError(Exception):
    """Base class for every error raised by modgraph."""


class SourceUnavailable(ModGraphError):
    """The source of a module could not be read or fetched."""

    def __init__(self, location: str, reason: str) -> None:
        """Record the offending location and the underlying cause."""
        super().__init__(f"Cannot load source for {location}: {reason}")
        self.location = location
        self.reason = reason


class InvalidSource(ModGraphError):
    """The annotation stripper or dependency extractor rejected a module."""

    def __init__(self, diagnostic: str, location: str | None = None) -> None:
        """Record the diagnostic and, when known, the module location."""
        where = location or "<source>"
        super().__init__(f"Invalid source in {where}: {diagnostic}")
        self.location = location
        self.diagnostic = diagnostic

    def at(self, location: str) -> "InvalidSource":
        """Return a copy of this error bound to a module location."""
        return InvalidSource(self.diagnostic, location)


class DependencyTransformFailed(ModGraphError):
    """A single dependency edge could not be transformed.

    Recoverable: the parent module keeps the resolved, uncached specifier.
    """

    def __init__(self, specifier: str, parent: str, cause: Exception) -> None:
        """Record the failing dependency, the importing module and the cause."""
        super().__init__(
            f"Failed to transform {specifier} (imported by {parent}): {cause}"
        )
        self.specifier = specifier
        self.parent = parent
        self.cause = cause


class InvalidResolutionTable(ModGraphError, ValueError):
    """An import map did not have the expected shape."""


class StripperUnavailable(ModGraphError):
    """The configured stripping toolchain could not be located."""


class CacheWriteFailed(ModGraphError):
    """A transformed module could not be persisted to the disk cache."""

    def __init__(self, location: str, reason: str) -> None:
        """Record the module whose cache entry could not be written."""
        super().__init__(f"Cannot write cache entry for {location}: {reason}")
        self.location = location
        self.reason = reason
