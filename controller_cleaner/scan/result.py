"""
Per-controller scan orchestration.

A ``ScanResult`` owns the lifecycle of scanning one controller::

    idle → scanning → finalizing → completed | cancelled | failed
                                        │
               clean_up() ─── scanning ◄┘

- ``start_scan()`` collects candidates on the caller's thread, then runs the
  mark phase on a background thread with its own event loop.
- Finalizing is entered lazily: the first observation of ``state`` after
  the mark phase has joined runs the finalizer and the sweep.
- Re-issuing a scan cancels the previous run; its late results are ignored.
- A cancelled or failed scan never reaches the sweep, so partial marks are
  never consulted.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from controller_cleaner.graph.model import AssetObject, Controller
from controller_cleaner.scan.cleanup import CleanupReport, clean_up_controller
from controller_cleaner.scan.collector import collect_candidates
from controller_cleaner.scan.finalizer import finalize_cross_references, sweep
from controller_cleaner.scan.marker import (
    CancellationToken,
    ReachableSet,
    TerminalCondition,
    run_mark_phase,
)

if TYPE_CHECKING:
    from controller_cleaner.asset.store import AssetStore

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    """Lifecycle state of a scan."""

    idle = "idle"  # No scan issued yet
    scanning = "scanning"  # Mark phase in flight
    finalizing = "finalizing"  # Mark joined, finalize + sweep running
    completed = "completed"
    cancelled = "cancelled"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanState.completed, ScanState.cancelled, ScanState.failed)


@dataclass
class Stopwatch:
    """Accumulating wall-clock timer."""

    _elapsed: float = 0.0
    _started_at: float | None = None

    def restart(self) -> None:
        self._elapsed = 0.0
        self._started_at = time.perf_counter()

    def start(self) -> None:
        if self._started_at is None:
            self._started_at = time.perf_counter()

    def stop(self) -> None:
        if self._started_at is not None:
            self._elapsed += time.perf_counter() - self._started_at
            self._started_at = None

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return self._elapsed
        return self._elapsed + time.perf_counter() - self._started_at


@dataclass
class _ScanRun:
    """State of one issued scan; replaced wholesale on rescan."""

    generation: int
    token: CancellationToken = field(default_factory=CancellationToken)
    reachable: ReachableSet = field(default_factory=ReachableSet)
    condition: TerminalCondition = field(default_factory=TerminalCondition)
    joined: threading.Event = field(default_factory=threading.Event)
    thread: threading.Thread | None = None


class ScanResult:
    """Scan state and results for a single controller.

    Args:
        store: Asset store holding the controller.
        autostart: Start scanning immediately (default True).

    Example:
        result = ScanResult(UnityYamlAssetStore("Player.controller"))
        if result.wait() is ScanState.completed and not result.is_clean:
            result.clean_up()
    """

    def __init__(self, store: AssetStore, *, autostart: bool = True) -> None:
        self.store = store
        self.controller: Controller | None = None
        self.fail_message: str | None = None
        self._state = ScanState.idle
        self._lock = threading.RLock()
        self._generation = 0
        self._run: _ScanRun | None = None
        self._candidates: list[AssetObject] = []
        self._obsolete: list[AssetObject] = []
        self._stopwatch = Stopwatch()
        if autostart:
            self.start_scan()

    def __repr__(self) -> str:
        return (
            f"ScanResult({self.name!r}, state={self._state.value}, "
            f"obsolete={len(self._obsolete)})"
        )

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        if self.controller is not None:
            return self.controller.name
        return self.store.name

    @property
    def state(self) -> ScanState:
        self._refresh()
        return self._state

    @property
    def obsolete(self) -> list[AssetObject]:
        self._refresh()
        return list(self._obsolete)

    @property
    def obsolete_count(self) -> int:
        return len(self.obsolete)

    @property
    def candidate_count(self) -> int:
        return len(self._candidates)

    @property
    def is_clean(self) -> bool:
        return not self.obsolete

    @property
    def is_finished(self) -> bool:
        return self.state.is_terminal

    @property
    def can_clean(self) -> bool:
        return self.state is ScanState.completed and bool(self._obsolete)

    @property
    def elapsed(self) -> float:
        """Seconds spent scanning and finalizing."""
        return self._stopwatch.elapsed

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_scan(self, store: AssetStore | None = None) -> None:
        """(Re)start scanning, discarding any scan still in flight."""
        with self._lock:
            if store is not None:
                self.store = store
            if self._run is not None:
                self._run.token.cancel()
            self._generation += 1
            run = self._run = _ScanRun(generation=self._generation)
            self._candidates = []
            self._obsolete = []
            self.fail_message = None
            self._state = ScanState.scanning
            self._stopwatch.restart()

            try:
                self.controller = self.store.load_controller()
                self._candidates = collect_candidates(self.controller, self.store)
            except Exception as e:
                logger.exception(f"Collecting sub-assets of {self.name} failed")
                self._fail(f"{type(e).__name__}: {e}")
                run.joined.set()
                return

            layers = list(self.controller.layers)
            run.thread = threading.Thread(
                target=self._mark,
                args=(run, layers),
                name=f"scan-{self.name}-{run.generation}",
                daemon=True,
            )
            logger.debug(
                f"Scanning {self.name}: {len(self._candidates)} candidates, "
                f"{len(layers)} layers"
            )
            run.thread.start()

    def cancel_scan(self) -> None:
        """Request cancellation; takes effect once the mark phase joins."""
        with self._lock:
            if self._run is not None and self._state is ScanState.scanning:
                logger.debug(f"Cancelling scan of {self.name}")
                self._run.token.cancel()

    def wait(self, timeout: float | None = None) -> ScanState:
        """Block until the mark phase joins, then finalize.

        Returns the state observed afterwards; it is still ``scanning`` if
        the timeout expired.
        """
        run = self._run
        if run is not None:
            run.joined.wait(timeout)
        return self.state

    def clean_up(self, save: bool = True) -> CleanupReport | None:
        """Remove obsolete sub-assets, repair transitions and rescan.

        No-op (returns None) unless the scan completed with obsolete objects.
        """
        with self._lock:
            if self.state is not ScanState.completed or not self._obsolete:
                return None
            assert self.controller is not None
            try:
                report = clean_up_controller(
                    self.controller, self._obsolete, self.store
                )
                if save:
                    self.store.save()
            finally:
                self.start_scan()
            return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _mark(self, run: _ScanRun, layers) -> None:
        try:
            run_mark_phase(layers, run.reachable, run.token, run.condition)
        except Exception as e:
            logger.exception("Mark phase crashed")
            run.condition.record_failure(e)
        finally:
            run.joined.set()

    def _fail(self, message: str | None) -> None:
        self._stopwatch.stop()
        self._state = ScanState.failed
        self.fail_message = message

    def _refresh(self) -> None:
        with self._lock:
            run = self._run
            if (
                self._state is not ScanState.scanning
                or run is None
                or not run.joined.is_set()
            ):
                return
            self._stopwatch.stop()

            if run.condition.cancelled or run.token.is_cancelled:
                self._state = ScanState.cancelled
                logger.info(f"Scan of {self.name} cancelled")
                return
            if run.condition.failed:
                self._fail(run.condition.message)
                logger.warning(f"Scan of {self.name} failed: {self.fail_message}")
                return

            self._state = ScanState.finalizing
            self._stopwatch.start()
            try:
                assert self.controller is not None
                finalize_cross_references(self.controller.layers, run.reachable)
            except Exception as e:
                logger.exception(f"Finalizing scan of {self.name} failed")
                self._fail(f"{type(e).__name__}: {e}")
                return
            self._obsolete = sweep(self._candidates, run.reachable)
            self._stopwatch.stop()
            self._state = ScanState.completed
            logger.info(
                f"Scanned {self.name} in {self.elapsed:.1f}s: "
                f"{len(self._obsolete)} obsolete of {len(self._candidates)}"
            )
