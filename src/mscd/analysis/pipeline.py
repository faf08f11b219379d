"""Analysis pipeline: corpus -> declarations -> index -> resolution -> depth."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from loguru import logger

from ..config.settings import AnalysisConfig
from ..core.corpus import CorpusProvider
from ..core.exceptions import AnalysisWarning
from ..parsers.base import DeclarationParser
from ..parsers.rust import RustParser
from .depth import DepthEngine
from .graph import DependencyGraph
from .models import AnalysisReport, FieldResolution, FileDeclarations
from .module_index import ModuleIndex, ModuleIndexBuilder
from .resolver import TypeResolver


class DepthAnalyzer:
    """Runs the full composition depth analysis over one corpus.

    Parsing runs on a thread pool. Every file's declarations are merged
    into the module index before it is frozen, and resolution only starts
    after the freeze: any field may name a type from any module.
    """

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        parser: DeclarationParser | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.parser = parser or RustParser()

    def analyze(self, provider: CorpusProvider, label: str | None = None) -> AnalysisReport:
        """Analyze every source file the provider yields.

        Args:
            provider: Corpus to walk
            label: Root name shown in reports (defaults to the provider root)

        Returns:
            AnalysisReport with depths, entity listings and warnings
        """
        start = time.perf_counter()

        declarations = self.extract(provider)
        index = self.build_index(declarations)

        resolver = TypeResolver(index, self.config.primitives)
        resolutions = self.resolve(resolver, index)

        graph = DependencyGraph.build(resolutions)
        parsed_files = [d.path for d in declarations if d.parsed]
        depth = DepthEngine(graph).compute(index.records, parsed_files)

        warnings: list[AnalysisWarning] = [d.warning for d in declarations if d.warning is not None]
        warnings.extend(index.warnings)
        warnings.extend(resolver.warnings)

        logger.debug(
            f"Analyzed {len(declarations)} files, {depth.entity_count} structs "
            f"in {time.perf_counter() - start:.2f}s (max depth {depth.global_depth})"
        )

        return AnalysisReport(
            root=label if label is not None else str(provider.root),
            depth=depth,
            entities=dict(index.records),
            resolutions=resolutions,
            files=parsed_files,
            warnings=warnings,
        )

    def extract(self, provider: CorpusProvider) -> list[FileDeclarations]:
        """Parse every file, in sorted relative-path order."""
        paths: list[tuple[Path, str]] = sorted(
            ((path, provider.relative(path)) for path in provider.iter_files()),
            key=lambda item: item[1],
        )
        if not paths:
            logger.warning(f"No {self.config.file_extension} files found under {provider.root}")
            return []

        max_workers = self.config.max_workers
        if max_workers is not None:
            max_workers = min(max_workers, len(paths))

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(
                executor.map(lambda item: self.parser.extract_file(*item), paths)
            )

        logger.debug(
            f"Parsed {len(results)} files ({sum(1 for r in results if not r.parsed)} skipped)"
        )
        return results

    def build_index(self, declarations: list[FileDeclarations]) -> ModuleIndex:
        builder = ModuleIndexBuilder()
        for file_declarations in sorted(declarations, key=lambda d: d.path):
            builder.add(file_declarations)
        return builder.freeze()

    def resolve(
        self, resolver: TypeResolver, index: ModuleIndex
    ) -> dict[str, tuple[FieldResolution, ...]]:
        """Resolve the fields of every record, in sorted identity order."""
        return {
            identity: resolver.resolve_record(record)
            for identity, record in index.records.items()
        }
