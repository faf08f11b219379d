"""Base parser interface for declaration extraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

from loguru import logger

from ..analysis.models import Declaration, FileDeclarations
from ..config.defaults import MODULE_ROOT_STEMS
from ..core.exceptions import AnalysisWarning, ParsingError, WarningKind


def module_path_for(relative_path: str) -> tuple[str, ...]:
    """Derive the module path a file occupies from its place in the corpus.

    Examples:
        >>> module_path_for("net/http/client.rs")
        ('net', 'http', 'client')

        >>> module_path_for("net/mod.rs")
        ('net',)

        >>> module_path_for("lib.rs")
        ()
    """
    parts = PurePosixPath(relative_path).with_suffix("").parts
    if parts and parts[-1] in MODULE_ROOT_STEMS:
        parts = parts[:-1]
    return tuple(parts)


def is_crate_root(relative_path: str) -> bool:
    """Check whether a file is a crate root (``lib.rs`` or ``main.rs``)."""
    return PurePosixPath(relative_path).stem in ("lib", "main")


class DeclarationParser(ABC):
    """Turns source text into module-scoped declarations.

    Implementations provide ``parse``; ``extract_file`` adds file reading,
    module placement and the skip-on-syntax-error policy.
    """

    def __init__(self, language: str) -> None:
        self.language = language

    @abstractmethod
    def parse(self, text: str) -> list[tuple[tuple[str, ...], Declaration]]:
        """Parse source text into (module path, declaration) pairs.

        Module paths are relative to the file's own module.

        Raises:
            ParsingError: If the text contains a syntax error
        """
        ...

    @abstractmethod
    def get_supported_extensions(self) -> list[str]:
        """Get supported file extensions."""
        ...

    def extract_file(self, file_path: Path, relative_path: str) -> FileDeclarations:
        """Extract all declarations of one file.

        A file that cannot be read or parsed is skipped: it yields no
        declarations and carries a ``parse_error`` warning instead.
        """
        try:
            text = file_path.read_text(encoding="utf-8")
            items = self.parse(text)
        except (ParsingError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping {relative_path}: {e}")
            return FileDeclarations(
                path=relative_path,
                parsed=False,
                warning=AnalysisWarning(
                    WarningKind.PARSE_ERROR,
                    f"Failed to parse {relative_path}: {e}",
                    relative_path,
                ),
            )

        base = module_path_for(relative_path)
        declarations = FileDeclarations(
            path=relative_path,
            module_path=base,
            items=[(base + module, decl) for module, decl in items],
            crate_root=is_crate_root(relative_path),
        )
        logger.debug(
            f"Found {declarations.record_count} structs in {relative_path} "
            f"({len(declarations.items)} declarations)"
        )
        return declarations
