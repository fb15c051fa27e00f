"""Shared fixtures: an in-memory object graph builder and a sample controller file.

Fixtures:
- ``graph``: ``GraphFactory`` for building controllers in memory
- ``sample_controller``: path to a Unity YAML controller copied into tmp_path
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from controller_cleaner.graph.model import (
    AssetObject,
    Behaviour,
    BlendTree,
    Controller,
    Layer,
    Motion,
    State,
    StateMachineNode,
    StateTransition,
    Transition,
)
from controller_cleaner.settings import _load_pyproject_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep log files in tmp_path and drop cached settings and CLI handlers."""
    for var in (
        "CONTROLLER_CLEANER_GLOB",
        "CONTROLLER_CLEANER_EXCLUDE_DIRS",
        "CONTROLLER_CLEANER_RICH",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CONTROLLER_CLEANER_LOG_DIR", str(tmp_path / "logs"))
    _load_pyproject_settings.cache_clear()
    yield
    _load_pyproject_settings.cache_clear()
    package_logger = logging.getLogger("controller_cleaner")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)


# =============================================================================
# In-memory graph
# =============================================================================


class MemoryStore:
    """AssetStore over a list of objects, recording every call."""

    def __init__(self, controller: Controller, objects: list[AssetObject]) -> None:
        self.controller = controller
        self.objects = objects
        self.destroyed: list[AssetObject] = []
        self.dirty: list[AssetObject] = []
        self.fail_on: set[int] = set()
        self.saves = 0
        self.load_error: Exception | None = None

    @property
    def name(self) -> str:
        return self.controller.name

    def load_controller(self) -> Controller:
        return self.controller

    def load_all_sub_assets(self, controller: Controller) -> list[AssetObject]:
        if self.load_error is not None:
            raise self.load_error
        return [o for o in self.objects if o.alive]

    def destroy(self, obj: AssetObject) -> None:
        if obj.file_id in self.fail_on:
            raise RuntimeError(f"cannot destroy &{obj.file_id}")
        self.destroyed.append(obj)
        obj.destroy()

    def set_dirty(self, obj: AssetObject) -> None:
        self.dirty.append(obj)

    def save(self) -> None:
        self.saves += 1


class GraphFactory:
    """Create model objects with unique file IDs and track them for a store."""

    def __init__(self) -> None:
        self._next_id = 1000
        self.objects: list[AssetObject] = []

    def _add(self, obj):
        self.objects.append(obj)
        return obj

    def _id(self) -> int:
        self._next_id += 1
        return self._next_id

    def machine(self, name: str = "Machine", **kwargs) -> StateMachineNode:
        return self._add(StateMachineNode(file_id=self._id(), name=name, **kwargs))

    def state(self, name: str = "State", **kwargs) -> State:
        return self._add(State(file_id=self._id(), name=name, **kwargs))

    def transition(
        self,
        dst: State | StateMachineNode | None = None,
        *,
        exit: bool = False,
        kind: type[Transition] = StateTransition,
        name: str = "",
    ) -> Transition:
        t = kind(file_id=self._id(), name=name, is_exit=exit)
        if isinstance(dst, State):
            t.dst_state = dst
        elif isinstance(dst, StateMachineNode):
            t.dst_state_machine = dst
        return self._add(t)

    def behaviour(self, name: str = "Behaviour") -> Behaviour:
        return self._add(Behaviour(file_id=self._id(), name=name))

    def blend_tree(self, name: str = "Blend Tree", children=()) -> BlendTree:
        children: list[Motion | None] = list(children)
        return self._add(BlendTree(file_id=self._id(), name=name, children=children))

    def controller(self, *roots: StateMachineNode, name: str = "Test") -> Controller:
        return Controller(
            file_id=9100000,
            name=name,
            layers=[Layer(name=root.name, state_machine=root) for root in roots],
        )

    def store(self, controller: Controller) -> MemoryStore:
        return MemoryStore(controller, self.objects)


@pytest.fixture
def graph() -> GraphFactory:
    return GraphFactory()


# =============================================================================
# Sample Unity YAML controller
# =============================================================================

# Reachable: root machine, A, B, Sub, C, A->B, AnyState->A, Entry->A,
# Sub->exit, C->exit, both blend trees, root behaviour.
# Obsolete: B->nothing, Sub's AnyState->C, orphan state, orphan behaviour,
# orphan blend tree, orphan transition.
SAMPLE_CONTROLLER = """\
%YAML 1.1
%TAG !u! tag:unity3d.com,2011:
--- !u!91 &9100000
AnimatorController:
  m_ObjectHideFlags: 0
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: Player
  serializedVersion: 5
  m_AnimatorParameters: []
  m_AnimatorLayers:
  - serializedVersion: 5
    m_Name: Base Layer
    m_StateMachine: {fileID: 110700000}
    m_Mask: {fileID: 0}
    m_Motions: []
    m_Behaviours: []
    m_BlendingMode: 0
    m_SyncedLayerIndex: -1
    m_DefaultWeight: 0
    m_IKPass: 0
    m_SyncedLayerAffectsTiming: 0
    m_Controller: {fileID: 9100000}
--- !u!1107 &110700000
AnimatorStateMachine:
  serializedVersion: 6
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: Base Layer
  m_ChildStates:
  - serializedVersion: 1
    m_State: {fileID: 110200001}
    m_Position: {x: 250, y: 100, z: 0}
  - serializedVersion: 1
    m_State: {fileID: 110200002}
    m_Position: {x: 250, y: 200, z: 0}
  m_ChildStateMachines:
  - serializedVersion: 1
    m_StateMachine: {fileID: 110700002}
    m_Position: {x: 500, y: 100, z: 0}
  m_AnyStateTransitions:
  - {fileID: 110100010}
  m_EntryTransitions:
  - {fileID: 110900001}
  m_StateMachineTransitions:
  - first: {fileID: 110700002}
    second:
    - {fileID: 110900002}
  m_StateMachineBehaviours:
  - {fileID: 11400001}
  m_AnyStatePosition: {x: 50, y: 20, z: 0}
  m_EntryPosition: {x: 50, y: 120, z: 0}
  m_ExitPosition: {x: 800, y: 120, z: 0}
  m_ParentStateMachinePosition: {x: 800, y: 20, z: 0}
  m_DefaultState: {fileID: 110200001}
--- !u!1102 &110200001
AnimatorState:
  serializedVersion: 6
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: A
  m_Speed: 1
  m_CycleOffset: 0
  m_Transitions:
  - {fileID: 110100001}
  m_StateMachineBehaviours: []
  m_Position: {x: 50, y: 50, z: 0}
  m_IKOnFeet: 0
  m_WriteDefaultValues: 1
  m_Mirror: 0
  m_Motion: {fileID: 20600001}
  m_Tag:
--- !u!1102 &110200002
AnimatorState:
  serializedVersion: 6
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: B
  m_Speed: 1
  m_CycleOffset: 0
  m_Transitions:
  - {fileID: 110100002}
  m_StateMachineBehaviours: []
  m_Position: {x: 50, y: 50, z: 0}
  m_IKOnFeet: 0
  m_WriteDefaultValues: 1
  m_Mirror: 0
  m_Motion: {fileID: 7400000, guid: 5f2c1d3e4b6a79801234567890abcdef, type: 2}
  m_Tag:
--- !u!1107 &110700002
AnimatorStateMachine:
  serializedVersion: 6
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: Sub
  m_ChildStates:
  - serializedVersion: 1
    m_State: {fileID: 110200003}
    m_Position: {x: 250, y: 100, z: 0}
  m_ChildStateMachines: []
  m_AnyStateTransitions:
  - {fileID: 110100011}
  m_EntryTransitions: []
  m_StateMachineTransitions: []
  m_StateMachineBehaviours: []
  m_AnyStatePosition: {x: 50, y: 20, z: 0}
  m_EntryPosition: {x: 50, y: 120, z: 0}
  m_ExitPosition: {x: 800, y: 120, z: 0}
  m_ParentStateMachinePosition: {x: 800, y: 20, z: 0}
  m_DefaultState: {fileID: 110200003}
--- !u!1102 &110200003
AnimatorState:
  serializedVersion: 6
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: C
  m_Speed: 1
  m_CycleOffset: 0
  m_Transitions:
  - {fileID: 110100003}
  m_StateMachineBehaviours: []
  m_Position: {x: 50, y: 50, z: 0}
  m_IKOnFeet: 0
  m_WriteDefaultValues: 1
  m_Mirror: 0
  m_Motion: {fileID: 0}
  m_Tag:
--- !u!1101 &110100001
AnimatorStateTransition:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name:
  m_Conditions: []
  m_DstStateMachine: {fileID: 0}
  m_DstState: {fileID: 110200002}
  m_Solo: 0
  m_Mute: 0
  m_IsExit: 0
  serializedVersion: 3
  m_TransitionDuration: 0.25
  m_HasExitTime: 1
--- !u!1101 &110100002
AnimatorStateTransition:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name:
  m_Conditions: []
  m_DstStateMachine: {fileID: 0}
  m_DstState: {fileID: 0}
  m_Solo: 0
  m_Mute: 0
  m_IsExit: 0
  serializedVersion: 3
  m_TransitionDuration: 0.25
  m_HasExitTime: 1
--- !u!1101 &110100003
AnimatorStateTransition:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name:
  m_Conditions: []
  m_DstStateMachine: {fileID: 0}
  m_DstState: {fileID: 0}
  m_Solo: 0
  m_Mute: 0
  m_IsExit: 1
  serializedVersion: 3
  m_TransitionDuration: 0.25
  m_HasExitTime: 1
--- !u!1101 &110100010
AnimatorStateTransition:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name:
  m_Conditions: []
  m_DstStateMachine: {fileID: 0}
  m_DstState: {fileID: 110200001}
  m_Solo: 0
  m_Mute: 0
  m_IsExit: 0
  serializedVersion: 3
--- !u!1101 &110100011
AnimatorStateTransition:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name:
  m_Conditions: []
  m_DstStateMachine: {fileID: 0}
  m_DstState: {fileID: 110200003}
  m_Solo: 0
  m_Mute: 0
  m_IsExit: 0
  serializedVersion: 3
--- !u!1109 &110900001
AnimatorTransition:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name:
  m_Conditions: []
  m_DstStateMachine: {fileID: 0}
  m_DstState: {fileID: 110200001}
  m_Solo: 0
  m_Mute: 0
  m_IsExit: 0
  serializedVersion: 1
--- !u!1109 &110900002
AnimatorTransition:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name:
  m_Conditions: []
  m_DstStateMachine: {fileID: 0}
  m_DstState: {fileID: 0}
  m_Solo: 0
  m_Mute: 0
  m_IsExit: 1
  serializedVersion: 1
--- !u!206 &20600001
BlendTree:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: Locomotion
  m_Childs:
  - serializedVersion: 2
    m_Motion: {fileID: 20600002}
    m_Threshold: 0
    m_Position: {x: 0, y: 0}
    m_TimeScale: 1
  - serializedVersion: 2
    m_Motion: {fileID: 7400000, guid: 5f2c1d3e4b6a79801234567890abcdef, type: 2}
    m_Threshold: 1
    m_Position: {x: 0, y: 0}
    m_TimeScale: 1
  m_BlendParameter: Speed
  m_BlendType: 0
--- !u!206 &20600002
BlendTree:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: Strafe
  m_Childs: []
  m_BlendParameter: Direction
  m_BlendType: 0
--- !u!114 &11400001
MonoBehaviour:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_GameObject: {fileID: 0}
  m_Enabled: 1
  m_EditorHideFlags: 0
  m_Script: {fileID: 11500000, guid: 0123456789abcdef0123456789abcdef, type: 3}
  m_Name:
  m_EditorClassIdentifier:
--- !u!1102 &110200099
AnimatorState:
  serializedVersion: 6
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: Orphan
  m_Speed: 1
  m_CycleOffset: 0
  m_Transitions: []
  m_StateMachineBehaviours: []
  m_Position: {x: 50, y: 50, z: 0}
  m_IKOnFeet: 0
  m_WriteDefaultValues: 1
  m_Mirror: 0
  m_Motion: {fileID: 0}
  m_Tag:
--- !u!114 &11400099
MonoBehaviour:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_GameObject: {fileID: 0}
  m_Enabled: 1
  m_EditorHideFlags: 0
  m_Script: {fileID: 11500000, guid: 0123456789abcdef0123456789abcdef, type: 3}
  m_Name:
  m_EditorClassIdentifier:
--- !u!206 &20600099
BlendTree:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name: Unused Tree
  m_Childs: []
  m_BlendParameter: Speed
  m_BlendType: 0
--- !u!1101 &110100099
AnimatorStateTransition:
  m_ObjectHideFlags: 1
  m_CorrespondingSourceObject: {fileID: 0}
  m_PrefabInstance: {fileID: 0}
  m_PrefabAsset: {fileID: 0}
  m_Name:
  m_Conditions: []
  m_DstStateMachine: {fileID: 0}
  m_DstState: {fileID: 110200001}
  m_Solo: 0
  m_Mute: 0
  m_IsExit: 0
  serializedVersion: 3
"""

SAMPLE_OBSOLETE_IDS = {
    110100002,
    110100011,
    110200099,
    11400099,
    20600099,
    110100099,
}


@pytest.fixture
def sample_obsolete_ids() -> set[int]:
    return set(SAMPLE_OBSOLETE_IDS)


def write_controller(path: Path) -> Path:
    """Write the sample controller to ``path``, named after the file stem."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = SAMPLE_CONTROLLER.replace("m_Name: Player", f"m_Name: {path.stem}", 1)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def controller_writer():
    return write_controller


@pytest.fixture
def sample_controller(tmp_path: Path) -> Path:
    return write_controller(tmp_path / "Assets" / "Player.controller")


SYNCED_LAYER = """\
  - serializedVersion: 5
    m_Name: Overlay
    m_StateMachine: {fileID: 0}
    m_Mask: {fileID: 0}
    m_Motions:
    - m_State: {fileID: 110200099}
      m_Motion: {fileID: 0}
    - m_State: {fileID: 110200002}
      m_Motion: {fileID: 7400002, guid: 5f2c1d3e4b6a79801234567890abcdef, type: 2}
    m_Behaviours:
    - m_State: {fileID: 110200099}
      m_StateMachineBehaviours: []
    m_BlendingMode: 0
    m_SyncedLayerIndex: 0
    m_DefaultWeight: 1
    m_IKPass: 0
    m_SyncedLayerAffectsTiming: 0
    m_Controller: {fileID: 9100000}
"""


@pytest.fixture
def synced_controller(sample_controller: Path) -> Path:
    """The sample controller with a synced layer overriding the orphan state."""
    text = sample_controller.read_text(encoding="utf-8")
    anchor = "    m_Controller: {fileID: 9100000}\n"
    sample_controller.write_text(
        text.replace(anchor, anchor + SYNCED_LAYER, 1), encoding="utf-8"
    )
    return sample_controller
