"""Analysis configuration loaded from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from ..core.exceptions import ConfigError
from .defaults import (
    DEFAULT_CLONE_TIMEOUT,
    DEFAULT_IGNORE_DIRS,
    DEFAULT_MAX_WORKERS,
    PRIMITIVE_TYPES,
    RUST_FILE_EXTENSION,
)


@dataclass
class AnalysisConfig:
    """Complete analysis configuration.

    Attributes:
        max_workers: Thread pool size for file parsing (None = executor default)
        clone_timeout: Seconds allowed for a repository clone
        ignore_dirs: Directory names skipped during the corpus walk
        extra_primitives: Additional type names treated as built-in scalars
        file_extension: Suffix of source files to analyze
    """

    max_workers: int | None = DEFAULT_MAX_WORKERS
    clone_timeout: float = DEFAULT_CLONE_TIMEOUT
    ignore_dirs: set[str] = field(default_factory=lambda: set(DEFAULT_IGNORE_DIRS))
    extra_primitives: set[str] = field(default_factory=set)
    file_extension: str = RUST_FILE_EXTENSION

    def __post_init__(self) -> None:
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigError(
                f"max_workers must be at least 1, got {self.max_workers}",
                {"max_workers": self.max_workers},
            )
        if self.clone_timeout <= 0:
            raise ConfigError(
                f"clone_timeout must be positive, got {self.clone_timeout}",
                {"clone_timeout": self.clone_timeout},
            )
        if not self.file_extension.startswith("."):
            self.file_extension = f".{self.file_extension}"

    @property
    def primitives(self) -> frozenset[str]:
        """Built-in type names plus any configured extras."""
        return PRIMITIVE_TYPES | frozenset(self.extra_primitives)

    @classmethod
    def load(cls, path: Path) -> AnalysisConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            AnalysisConfig instance (defaults if the file does not exist)

        Raises:
            ConfigError: If the file is not valid YAML or has unknown keys
        """
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", {"path": str(path)}) from e

        if not isinstance(data, dict):
            raise ConfigError(
                f"Configuration in {path} must be a mapping", {"path": str(path)}
            )

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisConfig:
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            AnalysisConfig instance
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                {"unknown": unknown},
            )

        return cls(
            max_workers=data.get("max_workers", DEFAULT_MAX_WORKERS),
            clone_timeout=float(data.get("clone_timeout", DEFAULT_CLONE_TIMEOUT)),
            ignore_dirs=set(data.get("ignore_dirs", DEFAULT_IGNORE_DIRS)),
            extra_primitives=set(data.get("extra_primitives", ())),
            file_extension=data.get("file_extension", RUST_FILE_EXTENSION),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "max_workers": self.max_workers,
            "clone_timeout": self.clone_timeout,
            "ignore_dirs": sorted(self.ignore_dirs),
            "extra_primitives": sorted(self.extra_primitives),
            "file_extension": self.file_extension,
        }

    def save(self, path: Path) -> None:
        """Save configuration to YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
