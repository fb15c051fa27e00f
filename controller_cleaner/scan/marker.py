"""
Concurrent reachability marker.

Architecture:
- One asyncio task per state machine, starting at each layer's root
- Each task marks its own machine's local objects, then spawns one task per
  child machine and awaits all of them
- Tasks only block on their own children; sibling subtrees never wait on
  each other
- The only shared mutable structure is the ``ReachableSet``
- Cancellation is cooperative: the token is checked when a task starts on
  a machine. Marks made before that are not rolled back; callers discard
  the whole set of a cancelled scan.

The marker only follows ownership. Transitions a machine keeps for its
child machines live in a side table and are resolved afterwards by the
single-threaded finalizer.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from controller_cleaner.exceptions import ScanCancelled
from controller_cleaner.graph.model import (
    AssetObject,
    Behaviour,
    BlendTree,
    Layer,
    Motion,
    StateMachineNode,
    Transition,
    is_alive,
)

logger = logging.getLogger(__name__)

DEFAULT_STRIPES = 16


class ReachableSet:
    """Identity set that tolerates concurrent inserts.

    Objects are spread over ``stripes`` buckets, each guarded by its own
    lock. Insertion order is not kept; duplicates are ignored.
    """

    def __init__(self, stripes: int = DEFAULT_STRIPES) -> None:
        self._buckets: list[set[AssetObject]] = [set() for _ in range(stripes)]
        self._locks = [threading.Lock() for _ in range(stripes)]

    def _index(self, obj: AssetObject) -> int:
        return (id(obj) >> 4) % len(self._buckets)

    def add(self, obj: AssetObject | None) -> bool:
        """Add ``obj``; return True if it was not present before."""
        if obj is None:
            return False
        i = self._index(obj)
        with self._locks[i]:
            bucket = self._buckets[i]
            if obj in bucket:
                return False
            bucket.add(obj)
            return True

    def update(self, objects: Iterable[AssetObject | None]) -> None:
        for obj in objects:
            self.add(obj)

    def __contains__(self, obj: object) -> bool:
        if obj is None:
            return False
        return obj in self._buckets[self._index(obj)]  # type: ignore[arg-type]

    def __len__(self) -> int:
        return sum(len(b) for b in self._buckets)

    def __iter__(self) -> Iterator[AssetObject]:
        for bucket in self._buckets:
            yield from list(bucket)


class CancellationToken:
    """Shared cancellation flag, settable from any thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelled()


@dataclass
class TerminalCondition:
    """Terminal outcome recorded by mark tasks.

    Any task may record cancellation or failure. Cancellation takes
    priority over failure; the first failure message is kept.
    """

    cancelled: bool = False
    failed: bool = False
    message: str | None = None

    def record_cancelled(self) -> None:
        self.cancelled = True

    def record_failure(self, exc: BaseException) -> None:
        if not self.failed:
            self.failed = True
            self.message = f"{type(exc).__name__}: {exc}"

    @property
    def is_terminal(self) -> bool:
        return self.cancelled or self.failed


# ============================================================================
# Shared marking helpers (also used by the finalizer)
# ============================================================================


def mark_transitions(
    transitions: Iterable[Transition | None], reachable: ReachableSet
) -> None:
    """Mark transitions that lead somewhere; dead or missing ones are skipped."""
    for t in transitions:
        if is_alive(t) and t.leads_somewhere:
            reachable.add(t)


def mark_behaviours(
    behaviours: Iterable[Behaviour | None], reachable: ReachableSet
) -> None:
    for b in behaviours:
        if is_alive(b):
            reachable.add(b)


def mark_motion(motion: Motion | None, reachable: ReachableSet) -> None:
    """Mark a blend tree and every blend tree below it.

    Clips are not sub-assets the scanner tracks and are ignored.
    """
    pending = [motion]
    while pending:
        m = pending.pop()
        if not isinstance(m, BlendTree) or not m.alive:
            continue
        if reachable.add(m):
            pending.extend(m.children)


# ============================================================================
# Marker
# ============================================================================


class ReachabilityMarker:
    """Mark everything reachable from a controller's layers.

    Args:
        reachable: Accumulator shared by all tasks.
        token: Cancellation token checked at the start of each machine.
        condition: Where tasks record cancellation or failure.
    """

    def __init__(
        self,
        reachable: ReachableSet,
        token: CancellationToken,
        condition: TerminalCondition | None = None,
    ) -> None:
        self.reachable = reachable
        self.token = token
        self.condition = condition or TerminalCondition()
        self.machines_visited = 0

    async def mark(self, layers: Iterable[Layer]) -> TerminalCondition:
        """Mark all layers concurrently and wait for every task to finish."""
        tasks = [asyncio.create_task(self._mark_layer(layer)) for layer in layers]
        if tasks:
            await asyncio.gather(*tasks)
        logger.debug(
            f"Mark phase joined: {self.machines_visited} machines, "
            f"{len(self.reachable)} reachable objects"
        )
        return self.condition

    async def _mark_layer(self, layer: Layer) -> None:
        try:
            for state, motion in layer.motion_overrides:
                if is_alive(state):
                    mark_motion(motion, self.reachable)
            for state, behaviours in layer.behaviour_overrides:
                if is_alive(state):
                    mark_behaviours(behaviours, self.reachable)
        except Exception as e:
            logger.exception(f"Marking overrides of layer {layer.name!r} failed")
            self.condition.record_failure(e)
            return
        await self._mark_machine(layer.state_machine, is_root=True)

    async def _mark_machine(
        self, machine: StateMachineNode | None, is_root: bool
    ) -> None:
        try:
            self.token.raise_if_cancelled()
            if not is_alive(machine):
                return
            assert machine is not None
            # A machine already marked has its subtree covered by another task
            if not self.reachable.add(machine):
                return
            self.machines_visited += 1

            mark_behaviours(machine.behaviours, self.reachable)
            for state in machine.states:
                if not is_alive(state):
                    continue
                self.reachable.add(state)
                mark_motion(state.motion, self.reachable)
                mark_transitions(state.transitions, self.reachable)
                mark_behaviours(state.behaviours, self.reachable)

            mark_transitions(machine.entry_transitions, self.reachable)
            if is_root:
                mark_transitions(machine.any_state_transitions, self.reachable)

            children = [
                asyncio.create_task(self._mark_machine(child, is_root=False))
                for child in machine.state_machines
            ]
            if children:
                await asyncio.gather(*children)
        except ScanCancelled:
            self.condition.record_cancelled()
        except Exception as e:
            name = machine.name if machine is not None else None
            logger.exception(f"Marking state machine {name!r} failed")
            self.condition.record_failure(e)


def run_mark_phase(
    layers: Iterable[Layer],
    reachable: ReachableSet,
    token: CancellationToken,
    condition: TerminalCondition | None = None,
) -> TerminalCondition:
    """Run the mark phase to completion on a fresh event loop."""
    marker = ReachabilityMarker(reachable, token, condition)
    return asyncio.run(marker.mark(list(layers)))
