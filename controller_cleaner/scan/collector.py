"""Candidate collection: every recognized sub-asset stored with a controller."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from controller_cleaner.graph.model import RECOGNIZED_KINDS, AssetObject, Controller

if TYPE_CHECKING:
    from controller_cleaner.asset.store import AssetStore

logger = logging.getLogger(__name__)


def collect_candidates(controller: Controller, store: AssetStore) -> list[AssetObject]:
    """Load every sub-asset stored with ``controller`` and keep recognized kinds.

    Storage errors propagate to the caller, which fails the scan.
    """
    candidates = [
        obj
        for obj in store.load_all_sub_assets(controller)
        if obj is not None and obj.alive and obj.kind in RECOGNIZED_KINDS
    ]
    logger.debug(f"{controller.name}: {len(candidates)} candidate sub-assets")
    return candidates
