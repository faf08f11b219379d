"""Git retrieval client for analyzing remote repositories.

This module provides the GitFetcher class, which materializes a remote
repository as a local directory so it can be walked like any other corpus.

Design Decisions:
    - Uses subprocess to call git commands (standard approach, no dependencies)
    - Shallow clone (``--depth 1``); only the working tree is analyzed
    - The clone is treated as atomic: success yields a path, anything else
      raises RetrievalError

Error Handling:
    - RetrievalError: git binary missing, clone failure, or timeout
"""

import subprocess
from pathlib import Path
from urllib.parse import urlparse

from loguru import logger

from .exceptions import RetrievalError


def is_remote_reference(reference: str) -> bool:
    """Check whether a repository reference must be fetched.

    Args:
        reference: URL, scp-style address, or local path

    Returns:
        True for URLs and ``git@host:path`` addresses, False for local paths

    Examples:
        >>> is_remote_reference("https://github.com/user/repo.git")
        True

        >>> is_remote_reference("git@github.com:user/repo.git")
        True

        >>> is_remote_reference("/local/path/to/repo")
        False
    """
    if reference.startswith("git@"):
        return True
    parsed = urlparse(reference)
    # Single-letter schemes are Windows drive letters, not URLs
    return bool(parsed.scheme) and len(parsed.scheme) > 1 and bool(parsed.netloc or parsed.path)


class GitFetcher:
    """Clone repositories with the system git binary.

    Any object exposing ``fetch(reference, destination) -> Path`` can be used
    in its place by the corpus provider.

    Example:
        >>> fetcher = GitFetcher(timeout=120)
        >>> checkout = fetcher.fetch("https://github.com/user/repo.git", tmp_dir)
    """

    def __init__(self, timeout: float = 300.0):
        """Initialize git fetcher.

        Args:
            timeout: Seconds allowed for the clone before it is abandoned
        """
        self.timeout = timeout

    def is_git_available(self) -> bool:
        """Check if git command is available in PATH."""
        try:
            subprocess.run(  # nosec B607 - git is intentionally called via PATH
                ["git", "--version"],
                capture_output=True,
                check=True,
                timeout=5,
            )
            return True
        except (
            subprocess.CalledProcessError,
            FileNotFoundError,
            subprocess.TimeoutExpired,
        ):
            return False

    def fetch(self, reference: str, destination: Path) -> Path:
        """Clone ``reference`` into ``destination``.

        Args:
            reference: Repository URL or scp-style address
            destination: Empty or non-existent directory to clone into

        Returns:
            Path of the checkout

        Raises:
            RetrievalError: If git is unavailable or the clone fails
        """
        if not self.is_git_available():
            raise RetrievalError(
                "Git binary not found. Install git to analyze remote repositories",
                {"reference": reference},
            )

        logger.info(f"Cloning repository: {reference}")
        try:
            subprocess.run(  # nosec B607 - git is intentionally called via PATH
                ["git", "clone", "--depth", "1", "--quiet", reference, str(destination)],
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RetrievalError(
                f"Git clone of {reference} timed out after {self.timeout:.0f}s",
                {"reference": reference},
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise RetrievalError(
                f"Git clone of {reference} failed: {stderr or e}",
                {"reference": reference, "returncode": e.returncode},
            ) from e

        logger.debug(f"Repository cloned to {destination}")
        return destination
