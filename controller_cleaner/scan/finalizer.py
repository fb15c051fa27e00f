"""
Cross-reference finalizer and sweep.

Both run on the caller's thread once the mark phase has fully joined.

The finalizer resolves the transitions a state machine keeps for each of
its child machines. Those are not owned as a plain child list but looked up
per child through ``get_state_machine_transitions``, so the ownership walk
of the marker never sees them. Reading that table is kept single-threaded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from controller_cleaner.exceptions import GraphReadFailure
from controller_cleaner.graph.model import (
    AssetObject,
    Layer,
    StateMachineNode,
    is_alive,
)
from controller_cleaner.scan.marker import ReachableSet, mark_transitions

logger = logging.getLogger(__name__)


def finalize_cross_references(layers: Iterable[Layer], reachable: ReachableSet) -> int:
    """Mark state-machine transitions of every machine, depth first.

    Returns:
        Number of machines visited.

    Raises:
        GraphReadFailure: If reading a machine's transition table fails.
    """
    visited: set[StateMachineNode] = set()
    for layer in layers:
        _finalize_machine(layer.state_machine, reachable, visited)
    return len(visited)


def _finalize_machine(
    machine: StateMachineNode | None,
    reachable: ReachableSet,
    visited: set[StateMachineNode],
) -> None:
    if not is_alive(machine) or machine in visited:
        return
    assert machine is not None
    visited.add(machine)
    for child in machine.state_machines:
        if not is_alive(child):
            continue
        assert child is not None
        try:
            transitions = machine.get_state_machine_transitions(child)
        except Exception as e:
            raise GraphReadFailure(
                f"Reading transitions of {machine.name!r} for sub-machine "
                f"{child.name!r} failed: {e}"
            ) from e
        mark_transitions(transitions, reachable)
        _finalize_machine(child, reachable, visited)


def sweep(
    candidates: Iterable[AssetObject], reachable: ReachableSet
) -> list[AssetObject]:
    """Obsolete objects: candidates that were never marked reachable."""
    obsolete = [obj for obj in candidates if obj not in reachable]
    logger.debug(f"Sweep: {len(obsolete)} obsolete objects")
    return obsolete
