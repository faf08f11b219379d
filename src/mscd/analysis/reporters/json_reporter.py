"""JSON reporter for composition depth results."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

from ..models import Granularity
from .console import sorted_depths

if TYPE_CHECKING:
    from ..models import AnalysisReport


class JsonReporter:
    """Renders an AnalysisReport as JSON with sorted keys.

    Carries the same content as the console report. Lists keep the console
    ordering (structs by identity, depth tables by descending depth).
    """

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    def to_dict(
        self, report: AnalysisReport, granularity: Granularity = Granularity.SUMMARY
    ) -> dict[str, Any]:
        depth = report.depth
        data: dict[str, Any] = {
            "root": report.root,
            "summary": {
                "files_analyzed": len(report.files),
                "entity_count": depth.entity_count,
                "global_depth": depth.global_depth,
                "cyclic_entities": sorted(depth.cyclic_entities),
            },
            "entities": [self._entity(report, identity) for identity in report.entities],
            "warnings": [
                {"kind": str(w.kind), "message": w.message, "subject": w.subject}
                for w in report.warnings
            ],
        }

        if granularity in (Granularity.FILES, Granularity.TARGET):
            data["files"] = _table(depth.file_depths)
        elif granularity == Granularity.DIRECTORIES:
            data["directories"] = _table(depth.directory_depths)
        return data

    def _entity(self, report: AnalysisReport, identity: str) -> dict[str, Any]:
        record = report.entities[identity]
        resolutions = report.resolutions.get(identity, ())
        fields = []
        for position, field in enumerate(record.fields):
            entry: dict[str, Any] = {"name": field.name, "type": field.type_text}
            if self.verbose and position < len(resolutions):
                entry["targets"] = [str(t) for t in resolutions[position].targets]
            fields.append(entry)

        return {
            "name": identity,
            "file": record.file_path,
            "depth": report.depth.entity_depths.get(identity, 0),
            "fields": fields,
        }

    def render(
        self, report: AnalysisReport, granularity: Granularity = Granularity.SUMMARY
    ) -> str:
        return orjson.dumps(
            self.to_dict(report, granularity),
            option=orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2,
        ).decode()

    def write(
        self,
        report: AnalysisReport,
        destination: Path,
        granularity: Granularity = Granularity.SUMMARY,
    ) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(self.render(report, granularity) + "\n", encoding="utf-8")


def _table(depths: dict[str, int]) -> list[dict[str, Any]]:
    return [{"path": path, "depth": depth} for path, depth in sorted_depths(depths)]
