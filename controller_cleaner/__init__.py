"""Controller Cleaner - find and remove unused sub-assets in Unity animator controllers.

Simple API:

    from controller_cleaner import ScanResult, UnityYamlAssetStore

    result = ScanResult(UnityYamlAssetStore("Assets/Player.controller"))
    result.wait()
    print(f"{result.obsolete_count} obsolete sub-assets")
    result.clean_up()
"""

from importlib.metadata import PackageNotFoundError, version

from controller_cleaner.asset.store import UnityYamlAssetStore
from controller_cleaner.scan.registry import ScanRegistry
from controller_cleaner.scan.result import ScanResult, ScanState

try:
    __version__ = version("controller-cleaner")
except PackageNotFoundError:
    # Development checkout without installed metadata
    __version__ = "unknown"

__all__ = [
    "ScanRegistry",
    "ScanResult",
    "ScanState",
    "UnityYamlAssetStore",
    "__version__",
]
