"""Logic for summarizing a transformation run."""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class ModuleOutcome:
    """What happened to one module during a run."""

    location: str
    cache_location: str
    fast_path: bool
    dependencies: int = 0
    failed_dependencies: list[str] = field(default_factory=list)


class TransformReport:
    """Collects per-module outcomes and recoverable failures for one engine."""

    def __init__(self, table_fingerprint: str, transpile_mode: str) -> None:
        """Initialize the report with run metadata."""
        self.table_fingerprint = table_fingerprint
        self.transpile_mode = transpile_mode
        self.outcomes: list[ModuleOutcome] = []
        self.start_time = time.time()

    def add_outcome(self, outcome: ModuleOutcome) -> None:
        """Add the outcome of a single module transformation."""
        self.outcomes.append(outcome)

    def generate_report(self, path: str) -> None:
        """Write the summary report to a JSON file."""
        report = {
            "meta": {
                "timestamp": time.time(),
                "duration": time.time() - self.start_time,
                "resolution_table": self.table_fingerprint,
                "transpile_mode": self.transpile_mode,
                "total_modules": len(self.outcomes),
            },
            "modules": [
                {
                    "location": o.location,
                    "cache_location": o.cache_location,
                    "fast_path": o.fast_path,
                    "dependencies": o.dependencies,
                    "failed_dependencies": o.failed_dependencies,
                }
                for o in self.outcomes
            ],
            "stats": self._compute_stats(),
        }

        Path(path).write_text(json.dumps(report, indent=2), encoding="utf-8")

    def _compute_stats(self) -> dict[str, Any]:
        total = len(self.outcomes)
        fast = sum(1 for o in self.outcomes if o.fast_path)
        failed = sorted({dep for o in self.outcomes for dep in o.failed_dependencies})
        return {
            "fast_path_modules": fast,
            "fast_path_share": (fast / total) if total > 0 else 0,
            "remote_modules": sum(
                1 for o in self.outcomes if not o.location.startswith("file:")
            ),
            "failed_dependencies": failed,
            "max_fan_out": max((o.dependencies for o in self.outcomes), default=0),
        }
