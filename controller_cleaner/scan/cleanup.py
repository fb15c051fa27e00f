"""
Cleanup and repair of a scanned controller.

Cleanup is best effort: each obsolete object is detached and destroyed on
its own, a failure is logged and recorded, and the remaining objects are
still attempted. Nothing is rolled back.

After the deletions every transition list in the controller is filtered so
it only refers to live transitions. Transitions that survived but whose
destination was just destroyed are dropped and destroyed as well, so no
transition is left pointing at a removed object.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from controller_cleaner.graph.model import (
    AssetObject,
    Controller,
    StateMachineNode,
    Transition,
    is_alive,
)

if TYPE_CHECKING:
    from controller_cleaner.asset.store import AssetStore

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    """What one cleanup did."""

    controller: str
    removed: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    repaired: int = 0

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def ok(self) -> bool:
        return not self.failures


def _destroy(obj: AssetObject, store: AssetStore, report: CleanupReport) -> None:
    description = obj.display_name
    try:
        store.destroy(obj)
    except Exception as e:
        logger.warning(f"Could not remove {description}: {e}")
        report.failures.append(f"{description}: {e}")
        return
    report.removed.append(description)


def remove_obsolete(
    obsolete: Iterable[AssetObject], store: AssetStore, report: CleanupReport
) -> None:
    """Detach and destroy every obsolete object that still exists."""
    for obj in obsolete:
        if not is_alive(obj):
            continue
        _destroy(obj, store, report)


class TransitionRepair:
    """Drop references to destroyed transitions from every transition list."""

    def __init__(self, store: AssetStore) -> None:
        self.store = store
        self.dropped_references = 0
        self.orphaned: list[Transition] = []
        self._visited: set[StateMachineNode] = set()

    def repair(self, controller: Controller) -> None:
        for layer in controller.layers:
            self._repair_machine(layer.state_machine, is_root=True)

    def _keep_valid(self, transitions: list[Transition | None]) -> list[Transition]:
        kept: list[Transition] = []
        for t in transitions:
            if not is_alive(t):
                continue
            assert t is not None
            if t.has_lost_destination:
                self.orphaned.append(t)
                continue
            kept.append(t)
        self.dropped_references += len(transitions) - len(kept)
        return kept

    def _repair_machine(self, machine: StateMachineNode | None, is_root: bool):
        if not is_alive(machine) or machine in self._visited:
            return
        assert machine is not None
        self._visited.add(machine)

        machine.entry_transitions = self._keep_valid(machine.entry_transitions)
        if is_root:
            machine.any_state_transitions = self._keep_valid(
                machine.any_state_transitions
            )
        for state in machine.states:
            if not is_alive(state):
                continue
            assert state is not None
            state.transitions = self._keep_valid(state.transitions)
            self.store.set_dirty(state)
        for child in machine.state_machines:
            if not is_alive(child):
                continue
            assert child is not None
            machine.set_state_machine_transitions(
                child, self._keep_valid(machine.get_state_machine_transitions(child))
            )
            self._repair_machine(child, is_root=False)
        self.store.set_dirty(machine)


def _destroyed(obj: AssetObject | None) -> bool:
    return obj is not None and not obj.alive


def prune_layer_overrides(controller: Controller) -> int:
    """Drop synced-layer overrides that refer to destroyed objects.

    Pairs whose state was destroyed are removed, a destroyed override motion
    is cleared, and destroyed behaviours are filtered out.

    Returns:
        Number of references dropped.
    """
    dropped = 0
    for layer in controller.layers:
        motions = []
        for state, motion in layer.motion_overrides:
            if _destroyed(state):
                dropped += 1
                continue
            if _destroyed(motion):
                dropped += 1
                motion = None
            motions.append((state, motion))
        layer.motion_overrides = motions

        behaviours = []
        for state, attached in layer.behaviour_overrides:
            if _destroyed(state):
                dropped += 1
                continue
            kept = [b for b in attached if not _destroyed(b)]
            dropped += len(attached) - len(kept)
            behaviours.append((state, kept))
        layer.behaviour_overrides = behaviours
    return dropped


def clean_up_controller(
    controller: Controller, obsolete: Iterable[AssetObject], store: AssetStore
) -> CleanupReport:
    """Remove obsolete sub-assets, then repair transition and override references.

    Persisting the edits (``store.save()``) is left to the caller.
    """
    report = CleanupReport(controller=controller.name)
    remove_obsolete(obsolete, store, report)
    removed_obsolete = report.removed_count

    repair = TransitionRepair(store)
    repair.repair(controller)
    for t in repair.orphaned:
        if is_alive(t):
            _destroy(t, store, report)
    overrides = prune_layer_overrides(controller)
    if overrides:
        store.set_dirty(controller)
    report.repaired = repair.dropped_references + overrides

    removed_list = "\n".join(report.removed)
    logger.info(
        f"Removed {removed_obsolete} unused sub-assets from {controller.name}!"
        f"\n\n{removed_list}"
    )
    if repair.orphaned:
        logger.info(
            f"Removed {len(repair.orphaned)} transitions whose destination "
            f"was removed from {controller.name}"
        )
    if report.failures:
        logger.warning(
            f"{len(report.failures)} sub-assets of {controller.name} could not "
            "be removed"
        )
    return report
