"""MSCD - Maximum struct composition depth analysis for Rust codebases."""

__version__ = "0.3.0"

from .core.exceptions import MSCDError

__all__ = ["MSCDError", "__version__"]
