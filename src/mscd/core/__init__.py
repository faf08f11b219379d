"""Core functionality for MSCD: errors, corpus access and retrieval."""

from .exceptions import (
    AnalysisWarning,
    ConfigError,
    IndexFrozenError,
    MSCDError,
    NotFoundError,
    ParsingError,
    RetrievalError,
    WarningKind,
)

__all__ = [
    "AnalysisWarning",
    "ConfigError",
    "IndexFrozenError",
    "MSCDError",
    "NotFoundError",
    "ParsingError",
    "RetrievalError",
    "WarningKind",
]
