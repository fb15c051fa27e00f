"""
Serializable reports of scan and cleanup results.

These Pydantic models are snapshots for output (``--json`` / ``--yaml``);
they are built from a live ``ScanResult`` or ``CleanupReport`` and never
fed back into the pipeline.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from controller_cleaner.scan.cleanup import CleanupReport
from controller_cleaner.scan.result import ScanResult, ScanState

__all__ = ["ObsoleteEntry", "ScanReport", "CleanupSummary"]


class ObsoleteEntry(BaseModel):
    """One unreachable sub-asset."""

    file_id: int
    name: str
    kind: str


class ScanReport(BaseModel):
    """Snapshot of one controller's scan."""

    controller: str
    path: str | None = None
    state: ScanState
    candidates: int = 0
    obsolete_count: int = 0
    obsolete: list[ObsoleteEntry] = Field(default_factory=list)
    elapsed: float = Field(description="Seconds spent scanning and finalizing")
    error: str | None = None

    @classmethod
    def from_result(cls, result: ScanResult) -> ScanReport:
        obsolete = result.obsolete
        path = getattr(result.store, "path", None)
        return cls(
            controller=result.name,
            path=str(path) if path is not None else None,
            state=result.state,
            candidates=result.candidate_count,
            obsolete_count=len(obsolete),
            obsolete=[
                ObsoleteEntry(file_id=o.file_id, name=o.name, kind=o.kind.value)
                for o in sorted(obsolete, key=lambda o: o.file_id)
            ],
            elapsed=round(result.elapsed, 3),
            error=result.fail_message,
        )


class CleanupSummary(BaseModel):
    """Snapshot of one cleanup."""

    controller: str
    removed: list[str] = Field(default_factory=list)
    failures: list[str] = Field(default_factory=list)
    repaired: int = Field(0, description="Transition references dropped")

    @classmethod
    def from_report(cls, report: CleanupReport) -> CleanupSummary:
        return cls(
            controller=report.controller,
            removed=list(report.removed),
            failures=list(report.failures),
            repaired=report.repaired,
        )
