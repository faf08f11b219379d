"""Corpus provider: yields the source files to analyze."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from loguru import logger

from ..config.settings import AnalysisConfig
from .exceptions import NotFoundError, RetrievalError
from .git import GitFetcher, is_remote_reference


class Fetcher(Protocol):
    """Retrieval client contract."""

    def fetch(self, reference: str, destination: Path) -> Path: ...


class CorpusProvider:
    """Walks a corpus root and yields source files of the subject language.

    The root is either a local directory or a subdirectory of a repository.
    Use ``local()`` or ``repository()`` to obtain one; both are context
    managers so that temporary checkouts are always cleaned up.
    """

    def __init__(
        self,
        root: Path,
        config: AnalysisConfig | None = None,
        recursive: bool = True,
    ) -> None:
        self.root = root
        self.config = config or AnalysisConfig()
        self.recursive = recursive

    @classmethod
    @contextmanager
    def local(
        cls,
        path: Path,
        config: AnalysisConfig | None = None,
        recursive: bool = True,
    ) -> Iterator[CorpusProvider]:
        """Provide a local directory as corpus.

        Raises:
            NotFoundError: If the path is missing or not a directory
        """
        if not path.exists():
            raise NotFoundError(f"Directory '{path}' does not exist", {"path": str(path)})
        if not path.is_dir():
            raise NotFoundError(f"'{path}' is not a directory", {"path": str(path)})
        yield cls(path, config, recursive)

    @classmethod
    @contextmanager
    def repository(
        cls,
        reference: str,
        subdirectory: str,
        config: AnalysisConfig | None = None,
        recursive: bool = True,
        fetcher: Fetcher | None = None,
    ) -> Iterator[CorpusProvider]:
        """Provide a subdirectory of a repository as corpus.

        Remote references are cloned into a temporary directory that is removed
        when the context exits, whatever the outcome. Local repository paths
        are used in place.

        Raises:
            RetrievalError: If the fetch fails or the subdirectory is absent
            NotFoundError: If a local repository path does not exist
        """
        config = config or AnalysisConfig()

        if not is_remote_reference(reference):
            repo_path = Path(reference)
            if not repo_path.is_dir():
                raise NotFoundError(
                    f"Repository path '{repo_path}' does not exist or is not a directory",
                    {"reference": reference},
                )
            yield cls(_checked_subdirectory(repo_path, subdirectory, reference), config, recursive)
            return

        fetcher = fetcher or GitFetcher(timeout=config.clone_timeout)
        with tempfile.TemporaryDirectory(prefix="mscd-") as tmp:
            checkout = fetcher.fetch(reference, Path(tmp) / "checkout")
            logger.info(f"Analyzing: {subdirectory}")
            yield cls(_checked_subdirectory(checkout, subdirectory, reference), config, recursive)

    def iter_files(self) -> Iterator[Path]:
        """Lazily yield source files under the root.

        Order carries no meaning; callers that need determinism sort.
        """
        suffix = self.config.file_extension
        ignored = self.config.ignore_dirs

        if not self.recursive:
            with os.scandir(self.root) as entries:
                for entry in entries:
                    if entry.is_file() and entry.name.endswith(suffix):
                        yield Path(entry.path)
            return

        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [d for d in dirnames if d not in ignored]
            for name in filenames:
                if name.endswith(suffix):
                    yield Path(dirpath) / name

    def relative(self, path: Path) -> str:
        """Return ``path`` relative to the corpus root, with forward slashes."""
        return path.relative_to(self.root).as_posix()


def _checked_subdirectory(base: Path, subdirectory: str, reference: str) -> Path:
    target = (base / subdirectory).resolve() if subdirectory else base.resolve()
    if not target.is_dir():
        raise RetrievalError(
            f"Path '{subdirectory}' does not exist in repository '{reference}'",
            {"reference": reference, "subdirectory": subdirectory},
        )
    return target
