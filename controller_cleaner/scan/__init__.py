"""
Unused sub-asset scanning for animator controllers.

Pipeline (one ``ScanResult`` per controller):

    collect_candidates → ReachabilityMarker (concurrent) →
    finalize_cross_references → sweep → clean_up_controller → rescan
"""

from controller_cleaner.scan.cleanup import CleanupReport, clean_up_controller
from controller_cleaner.scan.collector import collect_candidates
from controller_cleaner.scan.finalizer import finalize_cross_references, sweep
from controller_cleaner.scan.marker import (
    CancellationToken,
    ReachabilityMarker,
    ReachableSet,
    TerminalCondition,
    run_mark_phase,
)
from controller_cleaner.scan.registry import ScanRegistry
from controller_cleaner.scan.result import ScanResult, ScanState

__all__ = [
    "CancellationToken",
    "CleanupReport",
    "ReachabilityMarker",
    "ReachableSet",
    "ScanRegistry",
    "ScanResult",
    "ScanState",
    "TerminalCondition",
    "clean_up_controller",
    "collect_candidates",
    "finalize_cross_references",
    "run_mark_phase",
    "sweep",
]
