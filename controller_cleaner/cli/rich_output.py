"""Choose between rich and plain output for the scan and clean commands.

Rich output is a results table with a spinner while scans run. Plain output
is one tab-separated row per controller, suited to pipes, logs and CI.

Detection priority:
1. ``CONTROLLER_CLEANER_RICH`` env var: explicit override (``0``/``false``/``no``
   to disable, ``1``/``true``/``yes`` to force enable)
2. ``NO_COLOR`` env var: standard convention, disables rich
3. ``CI`` env var: CI runners, disables rich
4. ``stdout.isatty()``: false in pipes, redirects, cron, disables rich
"""

from __future__ import annotations

import os
import sys


def should_use_rich() -> bool:
    """Determine whether to use Rich tables and spinners.

    Returns False for CI, pipes, redirected output, non-TTY, or when
    explicitly disabled.
    """
    override = os.environ.get("CONTROLLER_CLEANER_RICH", "").strip().lower()
    if override in ("0", "false", "no"):
        return False
    if override in ("1", "true", "yes"):
        return True

    # NO_COLOR convention (https://no-color.org/)
    if os.environ.get("NO_COLOR") is not None:
        return False

    if os.environ.get("CI"):
        return False

    try:
        if not sys.stdout.isatty():
            return False
    except (AttributeError, ValueError):
        return False

    return True
