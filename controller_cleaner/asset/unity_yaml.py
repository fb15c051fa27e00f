"""
Unity YAML codec.

Unity serializes assets as a multi-document YAML stream with a custom tag
header per document::

    %YAML 1.1
    %TAG !u! tag:unity3d.com,2011:
    --- !u!1102 &110200000
    AnimatorState:
      m_Name: Idle
      m_Transitions:
      - {fileID: 110100000}

The header carries the class ID and the file-local object ID. The stock YAML
loaders reject the ``!u!`` tags, so the stream is split on document headers
and each body is loaded on its own with ruamel.yaml in round-trip mode. That
keeps untouched documents byte-identical on write and preserves flow style
(``{fileID: 0}``) on the documents that are re-serialized.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import YAMLError

from controller_cleaner.exceptions import UnityYamlError

logger = logging.getLogger(__name__)

HEADER_RE = re.compile(
    r"^--- !u!(?P<class_id>-?\d+) &(?P<file_id>-?\d+)(?P<extra>[^\n]*)$",
    re.MULTILINE,
)

# Unity class IDs relevant to animator controllers
CLASS_IDS: dict[int, str] = {
    74: "AnimationClip",
    91: "AnimatorController",
    114: "MonoBehaviour",
    206: "BlendTree",
    1101: "AnimatorStateTransition",
    1102: "AnimatorState",
    1107: "AnimatorStateMachine",
    1109: "AnimatorTransition",
}

# Configure ruamel.yaml for format-preserving round-trips
_yaml = YAML()
_yaml.preserve_quotes = True
_yaml.width = 4096
_yaml.indent(mapping=2, sequence=2, offset=0)


@dataclass
class UnityDocument:
    """One ``--- !u!<class> &<id>`` document of a Unity YAML stream."""

    class_id: int
    file_id: int
    header: str
    type_name: str
    body: CommentedMap
    text: str = field(repr=False)
    modified: bool = False

    def get(self, key: str, default: Any = None) -> Any:
        return self.body.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.body[key] = value
        self.modified = True

    def render(self) -> str:
        """Return the document text, re-serializing the body if modified."""
        if not self.modified:
            return self.text
        buffer = io.StringIO()
        try:
            _yaml.dump({self.type_name: self.body}, buffer)
        except YAMLError as e:
            raise UnityYamlError(str(e), file_id=self.file_id) from e
        return f"{self.header}\n{buffer.getvalue()}"


def parse_documents(text: str) -> tuple[str, list[UnityDocument]]:
    """Split a Unity YAML stream into its preamble and documents.

    Args:
        text: Full file contents.

    Returns:
        ``(preamble, documents)`` where the preamble holds the ``%YAML`` and
        ``%TAG`` directives verbatim.

    Raises:
        UnityYamlError: If the stream has no documents or a body is invalid.
    """
    matches = list(HEADER_RE.finditer(text))
    if not matches:
        raise UnityYamlError("no Unity YAML documents found")

    preamble = text[: matches[0].start()]
    documents: list[UnityDocument] = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        chunk = text[match.start() : end]
        body_text = text[match.end() : end]
        class_id = int(match["class_id"])
        file_id = int(match["file_id"])
        try:
            loaded = _yaml.load(body_text)
        except YAMLError as e:
            raise UnityYamlError(str(e), file_id=file_id) from e
        if not isinstance(loaded, dict) or len(loaded) != 1:
            raise UnityYamlError(
                "expected a single top-level type mapping", file_id=file_id
            )
        type_name, body = next(iter(loaded.items()))
        if body is None:
            body = CommentedMap()
        documents.append(
            UnityDocument(
                class_id=class_id,
                file_id=file_id,
                header=match.group(0),
                type_name=str(type_name),
                body=body,
                text=chunk,
            )
        )

    logger.debug(f"Parsed {len(documents)} Unity YAML documents")
    return preamble, documents


def dump_documents(preamble: str, documents: list[UnityDocument]) -> str:
    """Reassemble a Unity YAML stream."""
    parts = [preamble]
    for doc in documents:
        rendered = doc.render()
        if not rendered.endswith("\n"):
            rendered += "\n"
        parts.append(rendered)
    return "".join(parts)


# ============================================================================
# Reference helpers
# ============================================================================


def ref_file_id(value: Any) -> int | None:
    """Return the local file ID of a ``{fileID: ...}`` reference.

    External references (carrying a ``guid``) and null references
    (``fileID: 0``) return None.
    """
    if not isinstance(value, dict):
        return None
    if value.get("guid"):
        return None
    file_id = value.get("fileID")
    if not file_id:
        return None
    return int(file_id)


def make_ref(file_id: int) -> CommentedMap:
    """Build a flow-style ``{fileID: <id>}`` reference."""
    ref = CommentedMap()
    ref["fileID"] = file_id
    ref.fa.set_flow_style()
    return ref


def make_ref_list(file_ids: list[int]) -> CommentedSeq:
    seq = CommentedSeq(make_ref(i) for i in file_ids)
    if not file_ids:
        seq.fa.set_flow_style()
    return seq
