"""Convert annotated TypeScript source into plain, directly executable JavaScript.

Stripping is delegated to an external toolchain (esbuild by default) that
reads the source on stdin and writes the result to stdout. The toolchain is
located once per process; every caller awaits the same lookup.
"""

import asyncio
import json
import logging
import os
import shutil
from collections.abc import Sequence
from enum import Enum
from typing import Any

from modgraph.deep_merge import deep_merge
from modgraph.errors import InvalidSource, StripperUnavailable

logger = logging.getLogger(__name__)

MODE_ENV_VAR = "MODGRAPH_TRANSPILE_MODE"
DEFAULT_COMMAND = ("esbuild",)

# Deno-flavoured defaults; toolchains ignore the options they do not understand.
DEFAULT_COMPILER_OPTIONS: dict[str, Any] = {
    "allowUnreachableCode": False,
    "allowUnusedLabels": False,
    "checkJs": False,
    "jsx": "react",
    "jsxFactory": "React.createElement",
    "jsxFragmentFactory": "React.Fragment",
    "target": "ESNext",
    "module": "ESNext",
    "moduleResolution": "NodeNext",
    "noImplicitAny": True,
    "noImplicitOverride": True,
    "noImplicitThis": True,
    "strict": True,
    "strictNullChecks": True,
    "useDefineForClassFields": True,
    "useUnknownInCatchVariables": True,
}


class TranspileMode(str, Enum):
    """How much work the stripper does."""

    STRIP = "strip"
    FULL_COMPILE = "full-compile"
    PASSTHROUGH = "passthrough"


# executable name -> resolved path; futures guard the first lookup
_resolved: dict[str, str] = {}
_pending: dict[str, "asyncio.Future[str]"] = {}


async def _locate(executable: str) -> str:
    path = await asyncio.to_thread(shutil.which, executable)
    if path is None:
        msg = f"Cannot find '{executable}' on PATH; install it or use passthrough mode"
        raise StripperUnavailable(msg)
    logger.debug("Using %s for annotation stripping", path)
    return path


async def ensure_toolchain(executable: str) -> str:
    """Return the resolved path of 'executable', locating it at most once.

    Concurrent first callers all await the same in-progress lookup.
    """
    if executable in _resolved:
        return _resolved[executable]

    pending = _pending.get(executable)
    if pending is None:
        pending = asyncio.ensure_future(_locate(executable))
        _pending[executable] = pending
    try:
        path = await pending
    except StripperUnavailable:
        _pending.pop(executable, None)
        raise
    _resolved[executable] = path
    _pending.pop(executable, None)
    return path


def resolve_mode(mode: "str | TranspileMode | None") -> TranspileMode:
    """Pick the mode: explicit argument, then $MODGRAPH_TRANSPILE_MODE, then strip."""
    value = mode or os.environ.get(MODE_ENV_VAR) or TranspileMode.STRIP
    return TranspileMode(value)


class AnnotationStripper:
    """Runs the configured toolchain over module text."""

    def __init__(
        self,
        mode: "str | TranspileMode | None" = None,
        compiler_options: dict[str, Any] | None = None,
        command: Sequence[str] = DEFAULT_COMMAND,
    ) -> None:
        """Initialize with a default mode, compiler overrides and the command."""
        self.mode = resolve_mode(mode)
        self.compiler_options = compiler_options or {}
        self.command = tuple(command)
        if not self.command:
            msg = "Stripper command must name an executable"
            raise StripperUnavailable(msg)

    def build_arguments(
        self, mode: TranspileMode, compiler_options: dict[str, Any] | None = None
    ) -> list[str]:
        """Return the toolchain arguments (after the executable) for a mode."""
        args = list(self.command[1:])
        if not os.path.basename(self.command[0]).startswith(DEFAULT_COMMAND[0]):
            # Custom commands get the text on stdin and nothing else
            return args
        if mode is TranspileMode.STRIP:
            return [*args, "--loader=ts", "--log-level=error"]

        options = deep_merge(
            deep_merge(DEFAULT_COMPILER_OPTIONS, self.compiler_options),
            compiler_options or {},
        )
        tsconfig = json.dumps({"compilerOptions": options}, sort_keys=True)
        return [
            *args,
            "--loader=tsx",
            "--target=esnext",
            f"--tsconfig-raw={tsconfig}",
            "--log-level=error",
        ]

    async def strip(
        self,
        text: str,
        mode: "str | TranspileMode | None" = None,
        compiler_options: dict[str, Any] | None = None,
    ) -> str:
        """Return plain source for 'text'.

        Raises InvalidSource with the toolchain's diagnostic when it rejects
        the text. Has no effect on the filesystem.
        """
        effective = TranspileMode(mode) if mode else self.mode
        if effective is TranspileMode.PASSTHROUGH:
            return text

        executable = await ensure_toolchain(self.command[0])
        args = self.build_arguments(effective, compiler_options)
        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            msg = f"Cannot start {executable}: {exc}"
            raise StripperUnavailable(msg) from exc

        stdout, stderr = await proc.communicate(text.encode("utf-8"))
        if proc.returncode != 0:
            diagnostic = stderr.decode("utf-8", errors="replace").strip()
            diagnostic = diagnostic or f"{executable} exited with {proc.returncode}"
            raise InvalidSource(diagnostic)
        return stdout.decode("utf-8")
