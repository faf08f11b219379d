"""Typed exception hierarchy and recoverable warnings for mscd.

Hierarchy
---------
MSCDError (base)
├── NotFoundError          – corpus root missing or not a directory (fatal)
├── RetrievalError         – repository fetch or subdirectory failure (fatal)
├── ParsingError           – a single file failed to parse (recoverable, file skipped)
├── ConfigError            – configuration / validation errors
└── IndexFrozenError       – write attempted on a frozen module index

Recoverable conditions that must not abort a run are not raised. They are
recorded as ``AnalysisWarning`` values and surfaced next to the report.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class MSCDError(Exception):
    """Base exception for mscd."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


# ── Corpus layer ────────────────────────────────────────────────────────


class NotFoundError(MSCDError):
    """Corpus root does not exist or is not a directory."""

    pass


class RetrievalError(MSCDError):
    """Repository could not be fetched, or the requested subdirectory is absent."""

    pass


# ── Extraction layer ────────────────────────────────────────────────────


class ParsingError(MSCDError):
    """Source file contains a syntax error."""

    pass


# ── Configuration layer ─────────────────────────────────────────────────


class ConfigError(MSCDError):
    """Configuration / validation errors."""

    pass


# ── Index layer ─────────────────────────────────────────────────────────


class IndexFrozenError(MSCDError):
    """Declarations were added to a module index after it was frozen."""

    pass


# ── Recoverable warnings ────────────────────────────────────────────────


class WarningKind(StrEnum):
    PARSE_ERROR = "parse_error"
    DUPLICATE_DECLARATION = "duplicate_declaration"
    AMBIGUOUS_RESOLUTION = "ambiguous_resolution"
    ALIAS_CYCLE = "alias_cycle"


@dataclass(frozen=True)
class AnalysisWarning:
    """A recoverable problem found during analysis.

    Attributes:
        kind: Category of the warning
        message: Human readable description
        subject: File path or qualified name the warning is about
    """

    kind: WarningKind
    message: str
    subject: str = ""

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"
