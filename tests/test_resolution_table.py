"""Tests for resolution table construction and lookup."""

from pathlib import Path

import pytest

from modgraph.errors import InvalidResolutionTable
from modgraph.resolution_table import ResolutionTable

REQUESTER = "file:///project/src/main.ts"


def test_direct_exact_match() -> None:
    """Verify an exact key maps to its target."""
    table = ResolutionTable.from_mapping({"imports": {"@x": "A"}})
    assert table.resolve(REQUESTER, "@x") == "A"


def test_prefix_match_appends_suffix() -> None:
    """Verify a key followed by '/' consumes the key and keeps the suffix."""
    table = ResolutionTable.from_mapping({"imports": {"@x": "A"}})
    assert table.resolve(REQUESTER, "@x/sub/mod.ts") == "A/sub/mod.ts"


def test_trailing_slash_key() -> None:
    """Verify the import-map trailing-slash form: '@x/' maps '@x/sub' to 'A/sub'."""
    table = ResolutionTable.from_mapping({"imports": {"@x/": "A/"}})
    assert table.resolve(REQUESTER, "@x/sub") == "A/sub"


def test_no_partial_word_match() -> None:
    """Verify '@x' does not match '@xy'."""
    table = ResolutionTable.from_mapping({"imports": {"@x": "A"}})
    assert table.resolve(REQUESTER, "@xy") == "@xy"


def test_unmatched_passes_through() -> None:
    """Verify specifiers absent from the table are returned unchanged."""
    table = ResolutionTable.from_mapping({"imports": {"@x": "A"}})
    assert table.resolve(REQUESTER, "https://x.dev/a.ts") == "https://x.dev/a.ts"
    assert table.resolve(REQUESTER, "lodash") == "lodash"


def test_scope_beats_direct() -> None:
    """Verify an applicable scoped mapping wins over the direct one."""
    table = ResolutionTable.from_mapping(
        {
            "imports": {"@x": "A"},
            "scopes": {"file:///project/": {"@x": "B"}},
        }
    )
    assert table.resolve(REQUESTER, "@x") == "B"
    assert table.resolve("file:///elsewhere/main.ts", "@x") == "A"


def test_most_specific_scope_first() -> None:
    """Verify the longest matching scope prefix is consulted first."""
    table = ResolutionTable.from_mapping(
        {
            "scopes": {
                "file:///project/": {"@x": "outer"},
                "file:///project/src/": {"@x": "inner"},
            }
        }
    )
    assert table.resolve(REQUESTER, "@x") == "inner"
    assert table.resolve("file:///project/test/a.ts", "@x") == "outer"


def test_scope_falls_back_to_direct() -> None:
    """Verify a scope without the key does not block the direct table."""
    table = ResolutionTable.from_mapping(
        {"imports": {"@y": "Y"}, "scopes": {"file:///project/": {"@x": "B"}}}
    )
    assert table.resolve(REQUESTER, "@y") == "Y"


def test_longest_key_wins() -> None:
    """Verify the most specific key wins regardless of insertion order."""
    table = ResolutionTable.from_mapping(
        {"imports": {"@lib/": "./generic/", "@lib/special/": "./special/"}}
    )
    assert table.resolve(REQUESTER, "@lib/special/a.ts") == "./special/a.ts"
    assert table.resolve(REQUESTER, "@lib/other.ts") == "./generic/other.ts"


def test_base_rebases_relative_entries() -> None:
    """Verify tables loaded from files resolve relative targets and scopes."""
    table = ResolutionTable.from_mapping(
        {
            "imports": {"@lib/": "./lib/", "react": "npm:react"},
            "scopes": {"./vendor/": {"@x": "./x.ts"}},
        },
        base="file:///project/",
    )
    assert table.resolve(REQUESTER, "@lib/a.ts") == "file:///project/lib/a.ts"
    assert table.resolve(REQUESTER, "react") == "npm:react"
    vendored = "file:///project/vendor/m.ts"
    assert table.resolve(vendored, "@x") == "file:///project/x.ts"


def test_fingerprint_stable_and_distinct() -> None:
    """Verify the identity ignores key order but reflects content."""
    t1 = ResolutionTable.from_mapping({"imports": {"a": "1", "b": "2"}})
    t2 = ResolutionTable.from_mapping({"imports": {"b": "2", "a": "1"}})
    t3 = ResolutionTable.from_mapping({"imports": {"a": "1", "b": "3"}})
    assert t1.fingerprint == t2.fingerprint
    assert t1 == t2
    assert t1.fingerprint != t3.fingerprint
    empty = ResolutionTable.from_mapping(None)
    assert ResolutionTable().fingerprint == empty.fingerprint


def test_merged_over_caller_wins() -> None:
    """Verify the explicit table wins over a discovered one on conflicts."""
    explicit = ResolutionTable.from_mapping(
        {"imports": {"@x": "explicit"}, "scopes": {"file:///p/": {"@s": "E"}}}
    )
    discovered = ResolutionTable.from_mapping(
        {
            "imports": {"@x": "discovered", "@y": "Y"},
            "scopes": {"file:///p/": {"@s": "D", "@t": "T"}},
        }
    )
    merged = explicit.merged_over(discovered)
    assert merged.resolve("file:///p/m.ts", "@x") == "explicit"
    assert merged.resolve("file:///p/m.ts", "@y") == "Y"
    assert merged.resolve("file:///p/m.ts", "@s") == "E"
    assert merged.resolve("file:///p/m.ts", "@t") == "T"


def test_to_dict_round_trip_shape() -> None:
    """Verify serialization uses the import-map shape."""
    data = {"imports": {"a": "1"}, "scopes": {"s/": {"b": "2"}}}
    assert ResolutionTable.from_mapping(data).to_dict() == data


@pytest.mark.parametrize(
    "data",
    [
        {"imports": ["a"]},
        {"imports": {"a": 1}},
        {"scopes": {"s/": "x"}},
        {"scopes": ["x"]},
        ["not", "a", "map"],
    ],
)
def test_invalid_tables_rejected(data: object) -> None:
    """Verify malformed import maps raise InvalidResolutionTable."""
    with pytest.raises(InvalidResolutionTable):
        ResolutionTable.from_mapping(data)  # type: ignore[arg-type]


def test_path_form_scopes_match_file_locations(tmp_path: Path) -> None:
    """Verify absolute and relative path scopes apply to file:// requesters."""
    vendor = tmp_path.resolve() / "vendor"
    requester = (vendor / "m.js").as_uri()
    table = ResolutionTable.from_mapping(
        {"imports": {"@x": "A"}, "scopes": {f"{vendor}/": {"@x": "B"}}}
    )
    assert table.resolve(requester, "@x") == "B"
    assert table.resolve((tmp_path.resolve() / "m.js").as_uri(), "@x") == "A"


def test_relative_scope_resolves_against_cwd(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verify './vendor/' scopes name the vendor directory under the CWD."""
    monkeypatch.chdir(tmp_path)
    table = ResolutionTable.from_mapping({"scopes": {"./vendor/": {"@x": "B"}}})
    requester = (tmp_path.resolve() / "vendor" / "m.js").as_uri()
    assert table.resolve(requester, "@x") == "B"
    assert table.resolve("file:///elsewhere/vendor/m.js", "@x") == "@x"
