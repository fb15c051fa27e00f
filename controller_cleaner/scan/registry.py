"""Registry of scan results keyed by controller path."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from controller_cleaner.asset.store import AssetStore, UnityYamlAssetStore
from controller_cleaner.discovery import find_controllers
from controller_cleaner.scan.cleanup import CleanupReport
from controller_cleaner.scan.result import ScanResult

logger = logging.getLogger(__name__)

StoreFactory = Callable[[Path], AssetStore]


class ScanRegistry:
    """Ordered collection of scan results, one per controller.

    Results are keyed by the resolved controller path. Scanning a controller
    that is already registered replaces its entry and moves it to the front.

    Args:
        store_factory: Builds the asset store for a controller path.
    """

    def __init__(self, store_factory: StoreFactory = UnityYamlAssetStore) -> None:
        self._store_factory = store_factory
        self._results: dict[Path, ScanResult] = {}

    @staticmethod
    def _key(path: str | os.PathLike[str]) -> Path:
        return Path(path).resolve()

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[ScanResult]:
        return iter(list(self._results.values()))

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return self._key(path) in self._results

    def get(self, path: str | os.PathLike[str]) -> ScanResult | None:
        return self._results.get(self._key(path))

    def items(self) -> list[tuple[Path, ScanResult]]:
        return list(self._results.items())

    def scan_one(self, path: str | os.PathLike[str]) -> ScanResult:
        """Scan one controller, replacing any previous result for it."""
        key = self._key(path)
        self.remove(key)
        result = ScanResult(self._store_factory(key))
        self._results = {key: result, **self._results}
        return result

    def scan_many(self, paths: Iterable[str | os.PathLike[str]]) -> list[ScanResult]:
        results = []
        for path in paths:
            key = self._key(path)
            self.remove(key)
            result = self._results[key] = ScanResult(self._store_factory(key))
            results.append(result)
        return results

    def scan_all(
        self,
        root: str | os.PathLike[str],
        pattern: str | None = None,
        exclude_dirs: Iterable[str] | None = None,
    ) -> list[ScanResult]:
        """Discard all results, then scan every controller under ``root``."""
        self.clear()
        return self.scan_many(find_controllers(root, pattern, exclude_dirs))

    def remove(self, path: str | os.PathLike[str]) -> ScanResult | None:
        result = self._results.pop(self._key(path), None)
        if result is not None:
            result.cancel_scan()
        return result

    def clear(self) -> None:
        for result in self._results.values():
            result.cancel_scan()
        self._results.clear()

    def wait_all(self, timeout: float | None = None) -> None:
        for result in self:
            result.wait(timeout)

    def clean_all(self) -> list[CleanupReport]:
        """Clean every completed result with obsolete sub-assets."""
        reports = []
        for result in self:
            report = result.clean_up()
            if report is not None:
                reports.append(report)
        logger.info(f"Finished cleanup of {len(reports)} controllers")
        return reports
