"""Object graph of an animator controller."""

from controller_cleaner.graph.model import (
    RECOGNIZED_KINDS,
    AnimationClip,
    AssetObject,
    Behaviour,
    BlendTree,
    Controller,
    Layer,
    Motion,
    ObjectKind,
    State,
    StateMachineNode,
    StateTransition,
    Transition,
    is_alive,
    live,
)

__all__ = [
    "RECOGNIZED_KINDS",
    "AnimationClip",
    "AssetObject",
    "Behaviour",
    "BlendTree",
    "Controller",
    "Layer",
    "Motion",
    "ObjectKind",
    "State",
    "StateMachineNode",
    "StateTransition",
    "Transition",
    "is_alive",
    "live",
]
