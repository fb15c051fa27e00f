"""Host asset storage: Unity YAML codec and the controller file store."""

from controller_cleaner.asset.store import AssetStore, UnityYamlAssetStore
from controller_cleaner.asset.unity_yaml import (
    UnityDocument,
    dump_documents,
    parse_documents,
)

__all__ = [
    "AssetStore",
    "UnityDocument",
    "UnityYamlAssetStore",
    "dump_documents",
    "parse_documents",
]
