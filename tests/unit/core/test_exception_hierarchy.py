"""Tests for the typed exception hierarchy and analysis warnings."""

from __future__ import annotations

import pytest

from mscd.core.exceptions import (
    AnalysisWarning,
    ConfigError,
    IndexFrozenError,
    MSCDError,
    NotFoundError,
    ParsingError,
    RetrievalError,
    WarningKind,
)

# ---------------------------------------------------------------------------
# Hierarchy tests
# ---------------------------------------------------------------------------


class TestExceptionHierarchy:
    """Verify the class hierarchy defined in core/exceptions.py."""

    def test_mscd_error_is_base_exception(self):
        err = MSCDError("base")
        assert isinstance(err, Exception)
        assert str(err) == "base"
        assert err.context == {}

    @pytest.mark.parametrize(
        "error_class",
        [NotFoundError, RetrievalError, ParsingError, ConfigError, IndexFrozenError],
    )
    def test_subclasses_inherit_from_mscd_error(self, error_class):
        err = error_class("boom", {"path": "x"})
        assert isinstance(err, MSCDError)
        assert err.context == {"path": "x"}

    def test_exported_from_package_root(self):
        import mscd

        assert mscd.MSCDError is MSCDError

    def test_exported_from_core(self):
        from mscd.core import NotFoundError as Exported

        assert Exported is NotFoundError


class TestAnalysisWarning:
    """Recoverable warnings carry a kind and render with it."""

    def test_str_includes_kind(self):
        warning = AnalysisWarning(WarningKind.ALIAS_CYCLE, "cycle through a::B", "a::B")
        assert str(warning) == "[alias_cycle] cycle through a::B"

    def test_warnings_are_hashable_values(self):
        first = AnalysisWarning(WarningKind.PARSE_ERROR, "bad file", "x.rs")
        second = AnalysisWarning(WarningKind.PARSE_ERROR, "bad file", "x.rs")
        assert first == second
        assert len({first, second}) == 1

    def test_warning_kinds(self):
        assert {kind.value for kind in WarningKind} == {
            "parse_error",
            "duplicate_declaration",
            "ambiguous_resolution",
            "alias_cycle",
        }
