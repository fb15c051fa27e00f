"""Graph builder: turns parsed Unity YAML documents into the object model."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from controller_cleaner.asset.unity_yaml import UnityDocument, ref_file_id
from controller_cleaner.exceptions import UnityYamlError
from controller_cleaner.graph.model import (
    AnimationClip,
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

logger = logging.getLogger(__name__)

_FACTORIES: dict[int, type[AssetObject]] = {
    74: AnimationClip,
    91: Controller,
    114: Behaviour,
    206: BlendTree,
    1101: StateTransition,
    1102: State,
    1107: StateMachineNode,
    1109: Transition,
}


class GraphBuilder:
    """Build the object graph for one controller file.

    Objects are created in a first pass, then references are wired in a
    second pass. References to file IDs that are not stored in the file
    resolve to None, the same as a missing object in the editor.
    """

    def __init__(self, documents: list[UnityDocument], path: Path | None = None):
        self.documents = documents
        self.path = path
        self.objects: dict[int, AssetObject] = {}

    def build(self) -> Controller:
        for doc in self.documents:
            factory = _FACTORIES.get(doc.class_id, AssetObject)
            obj = factory(file_id=doc.file_id, name=str(doc.get("m_Name") or ""))
            self.objects[doc.file_id] = obj

        controller: Controller | None = None
        for doc in self.documents:
            obj = self.objects[doc.file_id]
            if isinstance(obj, Controller):
                if controller is not None:
                    raise UnityYamlError("more than one AnimatorController in file")
                controller = obj
                self._wire_controller(obj, doc)
            elif isinstance(obj, StateMachineNode):
                self._wire_state_machine(obj, doc)
            elif isinstance(obj, State):
                self._wire_state(obj, doc)
            elif isinstance(obj, Transition):
                self._wire_transition(obj, doc)
            elif isinstance(obj, BlendTree):
                obj.children = [
                    self._resolve(child.get("m_Motion"), Motion)
                    for child in self._seq(doc.get("m_Childs"))
                ]
            elif isinstance(obj, Behaviour):
                script = doc.get("m_Script")
                if isinstance(script, dict):
                    obj.script_guid = script.get("guid")

        if controller is None:
            raise UnityYamlError("no AnimatorController document in file")
        controller.path = self.path
        logger.debug(
            f"Built graph for {controller.name}: {len(self.objects)} objects, "
            f"{len(controller.layers)} layers"
        )
        return controller

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _wire_controller(self, controller: Controller, doc: UnityDocument) -> None:
        for entry in self._seq(doc.get("m_AnimatorLayers")):
            layer = Layer(
                name=str(entry.get("m_Name") or ""),
                state_machine=self._resolve(
                    entry.get("m_StateMachine"), StateMachineNode
                ),
                synced_layer_index=int(entry.get("m_SyncedLayerIndex", -1)),
            )
            for pair in self._seq(entry.get("m_Motions")):
                layer.motion_overrides.append(
                    (
                        self._resolve(pair.get("m_State"), State),
                        self._resolve(pair.get("m_Motion"), Motion),
                    )
                )
            for pair in self._seq(entry.get("m_Behaviours")):
                layer.behaviour_overrides.append(
                    (
                        self._resolve(pair.get("m_State"), State),
                        self._resolve_list(
                            pair.get("m_StateMachineBehaviours"), Behaviour
                        ),
                    )
                )
            controller.layers.append(layer)

    def _wire_state_machine(self, machine: StateMachineNode, doc: UnityDocument):
        machine.states = [
            self._resolve(child.get("m_State"), State)
            for child in self._seq(doc.get("m_ChildStates"))
        ]
        machine.state_machines = [
            self._resolve(child.get("m_StateMachine"), StateMachineNode)
            for child in self._seq(doc.get("m_ChildStateMachines"))
        ]
        machine.entry_transitions = self._resolve_list(
            doc.get("m_EntryTransitions"), Transition
        )
        machine.any_state_transitions = self._resolve_list(
            doc.get("m_AnyStateTransitions"), Transition
        )
        machine.behaviours = self._resolve_list(
            doc.get("m_StateMachineBehaviours"), Behaviour
        )
        for pair in self._seq(doc.get("m_StateMachineTransitions")):
            source = self._resolve(pair.get("first"), StateMachineNode)
            if source is None:
                continue
            machine.set_state_machine_transitions(
                source, self._resolve_list(pair.get("second"), Transition)
            )

    def _wire_state(self, state: State, doc: UnityDocument) -> None:
        state.transitions = self._resolve_list(doc.get("m_Transitions"), Transition)
        state.behaviours = self._resolve_list(
            doc.get("m_StateMachineBehaviours"), Behaviour
        )
        state.motion = self._resolve(doc.get("m_Motion"), Motion)

    def _wire_transition(self, transition: Transition, doc: UnityDocument) -> None:
        transition.dst_state = self._resolve(doc.get("m_DstState"), State)
        transition.dst_state_machine = self._resolve(
            doc.get("m_DstStateMachine"), StateMachineNode
        )
        transition.is_exit = bool(int(doc.get("m_IsExit") or 0))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _seq(value: Any) -> list[dict]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def _resolve(self, ref: Any, expected: type) -> Any:
        file_id = ref_file_id(ref)
        if file_id is None:
            return None
        obj = self.objects.get(file_id)
        if obj is None:
            logger.debug(f"Dangling reference to &{file_id}")
            return None
        if not isinstance(obj, expected):
            logger.debug(
                f"Reference to &{file_id} is {type(obj).__name__}, "
                f"expected {expected.__name__}"
            )
            return None
        return obj

    def _resolve_list(self, refs: Any, expected: type) -> list:
        if not isinstance(refs, list):
            return []
        return [self._resolve(ref, expected) for ref in refs]


def build_controller(
    documents: list[UnityDocument], path: Path | None = None
) -> tuple[Controller, dict[int, AssetObject]]:
    """Build the controller graph from parsed documents.

    Returns:
        The controller and a map of file ID to every object in the file.
    """
    builder = GraphBuilder(documents, path)
    controller = builder.build()
    return controller, builder.objects
