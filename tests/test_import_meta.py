"""Tests for import.meta rewriting and the origin header."""

import json

from modgraph.import_meta import (
    ORIGIN_HEADER_PREFIX,
    has_import_meta,
    origin_header,
    replace_import_meta,
)

LOCAL = "file:///project/src/main.ts"
REMOTE = "https://x.dev/pkg/mod.ts"


def test_url_is_pinned() -> None:
    """Verify import.meta.url becomes the original location."""
    out = replace_import_meta("const here = import.meta.url;\n", LOCAL)
    assert out == f"const here = {json.dumps(LOCAL)};\n"


def test_filename_and_dirname() -> None:
    """Verify path properties use the original path, or undefined when remote."""
    text = "log(import.meta.filename, import.meta.dirname);"
    assert replace_import_meta(text, LOCAL) == (
        'log("/project/src/main.ts", "/project/src");'
    )
    assert replace_import_meta(text, REMOTE) == "log(undefined, undefined);"


def test_resolve_is_relative_to_original() -> None:
    """Verify import.meta.resolve resolves against the original location."""
    out = replace_import_meta("import.meta.resolve('./x.ts')", REMOTE)
    assert out == (
        f"((specifier) => new URL(specifier, {json.dumps(REMOTE)}).href)('./x.ts')"
    )


def test_comments_strings_and_other_properties_untouched() -> None:
    """Verify only live, location-dependent properties are rewritten."""
    text = (
        "// import.meta.url\n"
        "const s = 'import.meta.url';\n"
        "const m = import.meta.main;\n"
    )
    assert replace_import_meta(text, LOCAL) == text
    assert not has_import_meta("const m = import.meta.main;")
    assert has_import_meta("new URL('.', import.meta.url)")


def test_origin_header() -> None:
    """Verify the header is a single comment line naming the location."""
    header = origin_header(LOCAL)
    assert header == f"{ORIGIN_HEADER_PREFIX}{LOCAL}\n"
    assert header.startswith("//")
    assert header.count("\n") == 1
