"""Shared fixtures: small Rust corpora written into tmp_path."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from textwrap import dedent

import pytest

from mscd.analysis.models import AnalysisReport
from mscd.analysis.module_index import ModuleIndex, ModuleIndexBuilder
from mscd.analysis.pipeline import DepthAnalyzer
from mscd.config.settings import AnalysisConfig
from mscd.core.corpus import CorpusProvider
from mscd.parsers.rust import RustParser


@pytest.fixture
def write_corpus(tmp_path: Path) -> Callable[..., Path]:
    """Write {relative path: source} into a fresh corpus directory."""

    def _write(files: dict[str, str], name: str = "corpus") -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for relative, source in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dedent(source), encoding="utf-8")
        return root

    return _write


@pytest.fixture
def analyze(write_corpus: Callable[..., Path]) -> Callable[..., AnalysisReport]:
    """Write a corpus and run the full analysis over it."""

    def _analyze(files: dict[str, str], **config: object) -> AnalysisReport:
        root = write_corpus(files)
        analysis_config = AnalysisConfig(max_workers=2, **config)
        with CorpusProvider.local(root, analysis_config) as provider:
            return DepthAnalyzer(analysis_config).analyze(provider, label="corpus")

    return _analyze


@pytest.fixture
def build_index(write_corpus: Callable[..., Path]) -> Callable[[dict[str, str]], ModuleIndex]:
    """Write a corpus and return its frozen module index."""

    def _build(files: dict[str, str]) -> ModuleIndex:
        root = write_corpus(files)
        parser = RustParser()
        builder = ModuleIndexBuilder()
        for relative in sorted(files):
            builder.add(parser.extract_file(root / relative, relative))
        return builder.freeze()

    return _build
