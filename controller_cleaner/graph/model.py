"""
In-memory object graph of an animator controller.

Every sub-asset stored in a controller file becomes an ``AssetObject``.
Objects compare and hash by identity, so they can be collected into sets
regardless of their contents.

Two relations are modelled separately:

- Ownership (tree): controller → layers → root state machine → states,
  child state machines, behaviours, blend trees.
- Cross references (graph): the per-child transition lists a state machine
  keeps in a keyed side table (``get_state_machine_transitions``).

Liveness follows the host editor: a destroyed object stays in memory with
``alive = False`` and every reference to it stops resolving.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar, TypeVar

T = TypeVar("T", bound="AssetObject")


class ObjectKind(str, Enum):
    """Serialized type names of controller sub-assets."""

    controller = "AnimatorController"
    state_machine = "AnimatorStateMachine"
    state = "AnimatorState"
    state_transition = "AnimatorStateTransition"
    transition = "AnimatorTransition"
    transition_base = "AnimatorTransitionBase"
    behaviour = "StateMachineBehaviour"
    blend_tree = "BlendTree"
    animation_clip = "AnimationClip"
    unknown = "Unknown"


# Sub-asset kinds considered by the scanner; everything else is ignored.
RECOGNIZED_KINDS = frozenset(
    {
        ObjectKind.state,
        ObjectKind.state_transition,
        ObjectKind.state_machine,
        ObjectKind.transition,
        ObjectKind.transition_base,
        ObjectKind.behaviour,
        ObjectKind.blend_tree,
    }
)


def is_alive(obj: AssetObject | None) -> bool:
    """True if ``obj`` is a reference that still resolves."""
    return obj is not None and obj.alive


def live(objects: Iterable[T | None]) -> list[T]:
    """Return the objects that still resolve, preserving order."""
    return [o for o in objects if is_alive(o)]


@dataclass(eq=False)
class AssetObject:
    """A sub-asset stored inside a controller file."""

    file_id: int
    name: str = ""
    alive: bool = field(default=True, repr=False)

    kind: ClassVar[ObjectKind] = ObjectKind.unknown

    def destroy(self) -> None:
        self.alive = False

    @property
    def display_name(self) -> str:
        return f"{self.name or '<unnamed>'} ({self.kind.value})"


@dataclass(eq=False)
class Motion(AssetObject):
    """Anything a state can play."""


@dataclass(eq=False)
class AnimationClip(Motion):
    kind: ClassVar[ObjectKind] = ObjectKind.animation_clip


@dataclass(eq=False)
class BlendTree(Motion):
    """Blends child motions; children may themselves be blend trees."""

    children: list[Motion | None] = field(default_factory=list)

    kind: ClassVar[ObjectKind] = ObjectKind.blend_tree


@dataclass(eq=False)
class Behaviour(AssetObject):
    """A StateMachineBehaviour attached to a state or state machine."""

    script_guid: str | None = None

    kind: ClassVar[ObjectKind] = ObjectKind.behaviour


@dataclass(eq=False)
class Transition(AssetObject):
    """Entry or state-machine transition.

    A transition leads somewhere when it has a live destination state, a live
    destination state machine, or is an exit transition. Otherwise it is dead.
    """

    dst_state: State | None = field(default=None, repr=False)
    dst_state_machine: StateMachineNode | None = field(default=None, repr=False)
    is_exit: bool = False

    kind: ClassVar[ObjectKind] = ObjectKind.transition

    @property
    def destination_state(self) -> State | None:
        return self.dst_state if is_alive(self.dst_state) else None

    @property
    def destination_state_machine(self) -> StateMachineNode | None:
        return self.dst_state_machine if is_alive(self.dst_state_machine) else None

    @property
    def leads_somewhere(self) -> bool:
        return (
            self.destination_state is not None
            or self.destination_state_machine is not None
            or self.is_exit
        )

    @property
    def has_lost_destination(self) -> bool:
        """True if a destination was assigned but has since been destroyed."""
        return (self.dst_state is not None and not self.dst_state.alive) or (
            self.dst_state_machine is not None and not self.dst_state_machine.alive
        )


@dataclass(eq=False)
class StateTransition(Transition):
    """Transition leaving a state or AnyState."""

    kind: ClassVar[ObjectKind] = ObjectKind.state_transition


@dataclass(eq=False)
class State(AssetObject):
    transitions: list[Transition | None] = field(default_factory=list)
    behaviours: list[Behaviour | None] = field(default_factory=list)
    motion: Motion | None = None

    kind: ClassVar[ObjectKind] = ObjectKind.state


@dataclass(eq=False)
class StateMachineNode(AssetObject):
    """A (possibly nested) state machine."""

    states: list[State | None] = field(default_factory=list)
    state_machines: list[StateMachineNode | None] = field(default_factory=list)
    entry_transitions: list[Transition | None] = field(default_factory=list)
    any_state_transitions: list[Transition | None] = field(default_factory=list)
    behaviours: list[Behaviour | None] = field(default_factory=list)
    _machine_transitions: dict[StateMachineNode, list[Transition | None]] = field(
        default_factory=dict, repr=False
    )

    kind: ClassVar[ObjectKind] = ObjectKind.state_machine

    def get_state_machine_transitions(
        self, child: StateMachineNode
    ) -> list[Transition | None]:
        """Transitions this machine owns that leave ``child``."""
        return list(self._machine_transitions.get(child, ()))

    def set_state_machine_transitions(
        self, child: StateMachineNode, transitions: Iterable[Transition | None]
    ) -> None:
        transitions = list(transitions)
        if transitions:
            self._machine_transitions[child] = transitions
        else:
            self._machine_transitions.pop(child, None)

    @property
    def machine_transition_sources(self) -> list[StateMachineNode]:
        """Child machines that currently have an entry in the side table."""
        return list(self._machine_transitions)


@dataclass(eq=False)
class Layer:
    """One animation layer; owns a single root state machine.

    Synced layers reuse another layer's state machine and instead carry
    per-state motion and behaviour overrides.
    """

    name: str
    state_machine: StateMachineNode | None = None
    synced_layer_index: int = -1
    motion_overrides: list[tuple[State | None, Motion | None]] = field(
        default_factory=list
    )
    behaviour_overrides: list[tuple[State | None, list[Behaviour | None]]] = field(
        default_factory=list
    )

    @property
    def is_synced(self) -> bool:
        return self.synced_layer_index >= 0


@dataclass(eq=False)
class Controller(AssetObject):
    """The root animator controller asset."""

    path: Path | None = None
    layers: list[Layer] = field(default_factory=list)

    kind: ClassVar[ObjectKind] = ObjectKind.controller
