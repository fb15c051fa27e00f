"""
Asset store: the host-side storage the scanner reads from and cleans up.

The scan pipeline only talks to the ``AssetStore`` protocol:

- ``load_controller()`` / ``load_all_sub_assets(controller)`` for reading
- ``destroy(obj)`` to detach and destroy one sub-asset
- ``set_dirty(obj)`` to flag an object whose references were rewritten
- ``save()`` to persist deletions and dirty objects

``UnityYamlAssetStore`` implements it over a ``.controller`` file.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from ruamel.yaml.comments import CommentedMap, CommentedSeq

from controller_cleaner.asset.unity_yaml import (
    UnityDocument,
    dump_documents,
    make_ref,
    make_ref_list,
    parse_documents,
    ref_file_id,
)
from controller_cleaner.exceptions import AssetStoreError
from controller_cleaner.graph.builder import build_controller
from controller_cleaner.graph.model import (
    AssetObject,
    Controller,
    State,
    StateMachineNode,
    is_alive,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class AssetStore(Protocol):
    """Storage operations required by the scan and cleanup pipeline."""

    @property
    def name(self) -> str: ...

    def load_controller(self) -> Controller: ...

    def load_all_sub_assets(self, controller: Controller) -> list[AssetObject]: ...

    def destroy(self, obj: AssetObject) -> None: ...

    def set_dirty(self, obj: AssetObject) -> None: ...

    def save(self) -> None: ...


class UnityYamlAssetStore:
    """Asset store backed by a Unity YAML ``.controller`` file.

    The file is parsed lazily on first access and kept in memory; repeated
    scans reuse the same object graph, so objects destroyed by a cleanup stay
    gone for the rescan. ``reload()`` discards in-memory edits.

    Args:
        path: Path to the ``.controller`` file.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self._preamble = ""
        self._documents: dict[int, UnityDocument] = {}
        self._objects: dict[int, AssetObject] = {}
        self._controller: Controller | None = None
        self._dirty: set[int] = set()
        self._detached: set[int] = set()

    def __repr__(self) -> str:
        return f"UnityYamlAssetStore({str(self.path)!r})"

    @property
    def name(self) -> str:
        if self._controller is not None and self._controller.name:
            return self._controller.name
        return self.path.stem

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._dirty or self._detached)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def load_controller(self) -> Controller:
        with self._lock:
            if self._controller is None:
                self._load()
            assert self._controller is not None
            return self._controller

    def reload(self) -> Controller:
        with self._lock:
            self._controller = None
            return self.load_controller()

    def load_all_sub_assets(self, controller: Controller) -> list[AssetObject]:
        """Every live object stored in the controller's file."""
        with self._lock:
            if controller is not self._controller:
                raise AssetStoreError(
                    f"{controller.name!r} is not stored in {self.path}"
                )
            return [obj for obj in self._objects.values() if obj.alive]

    def _load(self) -> None:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise AssetStoreError(f"Cannot read {self.path}: {e}") from e

        preamble, documents = parse_documents(text)
        controller, objects = build_controller(documents, self.path)

        self._preamble = preamble
        self._documents = {doc.file_id: doc for doc in documents}
        self._objects = objects
        self._controller = controller
        self._dirty.clear()
        self._detached.clear()
        logger.debug(f"Loaded {self.path}: {len(documents)} documents")

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def destroy(self, obj: AssetObject) -> None:
        """Detach ``obj`` from the file and destroy it in one step."""
        with self._lock:
            if self._objects.get(obj.file_id) is not obj:
                raise AssetStoreError(
                    f"{obj.display_name} is not stored in {self.path}"
                )
            if not obj.alive:
                raise AssetStoreError(f"{obj.display_name} was already destroyed")
            if obj is self._controller:
                raise AssetStoreError("Refusing to destroy the controller itself")
            self._detached.add(obj.file_id)
            self._dirty.discard(obj.file_id)
            obj.destroy()

    def set_dirty(self, obj: AssetObject) -> None:
        with self._lock:
            if is_alive(obj) and obj.file_id in self._documents:
                self._dirty.add(obj.file_id)

    def save(self) -> None:
        """Write deletions and dirty objects back to the file.

        Untouched documents are written byte-for-byte; the file is replaced
        atomically.
        """
        with self._lock:
            if not self.has_unsaved_changes:
                return
            for file_id in self._dirty:
                self._write_back(self._objects[file_id], self._documents[file_id])
            documents = [
                doc
                for file_id, doc in self._documents.items()
                if file_id not in self._detached
            ]
            text = dump_documents(self._preamble, documents)
            self._replace_file(text)

            for file_id in self._detached:
                del self._documents[file_id]
            for doc in documents:
                if doc.modified:
                    doc.text = doc.render()
                    doc.modified = False
            logger.info(
                f"Saved {self.path}: {len(self._detached)} removed, "
                f"{len(self._dirty)} updated"
            )
            self._dirty.clear()
            self._detached.clear()

    def _replace_file(self, text: str) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise AssetStoreError(f"Cannot write {self.path}: {e}") from e

    @staticmethod
    def _ids(objects) -> list[int]:
        return [o.file_id for o in objects if is_alive(o)]

    def _write_back(self, obj: AssetObject, doc: UnityDocument) -> None:
        """Serialize the reference lists that cleanup can rewrite."""
        if isinstance(obj, State):
            doc.set("m_Transitions", make_ref_list(self._ids(obj.transitions)))
        elif isinstance(obj, StateMachineNode):
            doc.set(
                "m_EntryTransitions", make_ref_list(self._ids(obj.entry_transitions))
            )
            doc.set(
                "m_AnyStateTransitions",
                make_ref_list(self._ids(obj.any_state_transitions)),
            )
            pairs = CommentedSeq()
            for source in obj.machine_transition_sources:
                if not is_alive(source):
                    continue
                transitions = self._ids(obj.get_state_machine_transitions(source))
                pair = CommentedMap()
                pair["first"] = make_ref(source.file_id)
                pair["second"] = make_ref_list(transitions)
                pairs.append(pair)
            doc.set("m_StateMachineTransitions", pairs)
        elif isinstance(obj, Controller):
            layers = self._prune_overrides(doc.get("m_AnimatorLayers"))
            doc.set("m_AnimatorLayers", layers)

    def _is_dead_ref(self, ref) -> bool:
        """True for a local reference whose object is gone or was destroyed."""
        file_id = ref_file_id(ref)
        if file_id is None:
            return False
        obj = self._objects.get(file_id)
        if obj is None:
            return file_id not in self._documents
        return not obj.alive

    def _prune_overrides(self, layers):
        """Drop synced-layer override entries that point at destroyed objects."""
        if not isinstance(layers, list):
            return layers
        for entry in layers:
            motions = entry.get("m_Motions")
            if isinstance(motions, list):
                kept = CommentedSeq()
                for pair in motions:
                    if self._is_dead_ref(pair.get("m_State")):
                        continue
                    if self._is_dead_ref(pair.get("m_Motion")):
                        pair["m_Motion"] = make_ref(0)
                    kept.append(pair)
                entry["m_Motions"] = kept if kept else make_ref_list([])
            behaviours = entry.get("m_Behaviours")
            if isinstance(behaviours, list):
                kept = CommentedSeq()
                for pair in behaviours:
                    if self._is_dead_ref(pair.get("m_State")):
                        continue
                    attached = pair.get("m_StateMachineBehaviours") or []
                    live_refs = [r for r in attached if not self._is_dead_ref(r)]
                    if len(live_refs) != len(attached):
                        refs = CommentedSeq(live_refs)
                        if not live_refs:
                            refs.fa.set_flow_style()
                        pair["m_StateMachineBehaviours"] = refs
                    kept.append(pair)
                entry["m_Behaviours"] = kept if kept else make_ref_list([])
        return layers
