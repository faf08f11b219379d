"""Structural composition depth analysis.

Key Components:
    - ModuleIndex: Frozen corpus-wide namespace forest
    - TypeResolver: Maps field types to declared structs or opaque leaves
    - DependencyGraph: "is composed of" edges between structs
    - DepthEngine: Cycle-safe depth computation and aggregation

Example:
    builder = ModuleIndexBuilder()
    for declarations in extracted_files:
        builder.add(declarations)
    index = builder.freeze()

    resolver = TypeResolver(index)
    resolutions = {
        identity: resolver.resolve_record(record)
        for identity, record in index.records.items()
    }
    graph = DependencyGraph.build(resolutions)
    parsed_files = [d.path for d in extracted_files if d.parsed]
    result = DepthEngine(graph).compute(index.records, parsed_files)
    print(result.global_depth)

``DepthAnalyzer`` in ``mscd.analysis.pipeline`` runs all of the above over a
corpus.
"""

from .depth import DepthEngine
from .graph import DependencyGraph
from .models import (
    AnalysisReport,
    DepthResult,
    FieldResolution,
    Granularity,
    OpaqueReason,
    RecordType,
    ResolvedTarget,
    TypeAlias,
)
from .module_index import ModuleIndex, ModuleIndexBuilder
from .resolver import TypeResolver

__all__ = [
    "AnalysisReport",
    "DependencyGraph",
    "DepthEngine",
    "DepthResult",
    "FieldResolution",
    "Granularity",
    "ModuleIndex",
    "ModuleIndexBuilder",
    "OpaqueReason",
    "RecordType",
    "ResolvedTarget",
    "TypeAlias",
    "TypeResolver",
]
