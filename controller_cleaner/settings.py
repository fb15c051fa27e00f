"""Project settings loaded from pyproject.toml [tool.controller-cleaner] section.

The nearest ``pyproject.toml`` at or above the working directory is used, so a
Unity project can carry its own settings::

    [tool.controller-cleaner]
    controller-glob = "*.controller"
    exclude-dirs = ["Library", "Temp", "Logs", "obj", ".git"]
    log-dir = "~/.local/share/controller-cleaner/logs"

All settings support environment variable overrides (CONTROLLER_CLEANER_* prefix).
"""

import os
from functools import cache
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found]

DEFAULT_CONTROLLER_GLOB = "*.controller"

# Unity-generated or VCS directories that never hold source assets
DEFAULT_EXCLUDE_DIRS = frozenset({"Library", "Temp", "Logs", "obj", ".git"})

DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "controller-cleaner" / "logs"


def find_pyproject(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` (default: cwd) to the nearest pyproject.toml."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


@cache
def _load_pyproject_settings() -> dict:
    """Load settings from pyproject.toml [tool.controller-cleaner] section.

    Returns:
        Dictionary of settings from pyproject.toml, empty dict if not found.
    """
    pyproject_path = find_pyproject()
    if pyproject_path is None:
        return {}
    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return data.get("tool", {}).get("controller-cleaner", {})


def get_controller_glob() -> str:
    """Filename pattern of controller assets.

    Priority: CONTROLLER_CLEANER_GLOB env → [tool.controller-cleaner].controller-glob
    → '*.controller'.
    """
    if env := os.getenv("CONTROLLER_CLEANER_GLOB"):
        return env
    return str(_load_pyproject_settings().get("controller-glob", DEFAULT_CONTROLLER_GLOB))


def get_exclude_dirs() -> frozenset[str]:
    """Directory names skipped when discovering controllers.

    Priority: CONTROLLER_CLEANER_EXCLUDE_DIRS env (comma separated)
    → [tool.controller-cleaner].exclude-dirs → Unity defaults.
    """
    if env := os.getenv("CONTROLLER_CLEANER_EXCLUDE_DIRS"):
        return frozenset(d.strip() for d in env.split(",") if d.strip())
    configured = _load_pyproject_settings().get("exclude-dirs")
    if configured is None:
        return DEFAULT_EXCLUDE_DIRS
    return frozenset(str(d) for d in configured)


def get_log_dir() -> Path:
    """Directory for CLI log files.

    Priority: CONTROLLER_CLEANER_LOG_DIR env → [tool.controller-cleaner].log-dir
    → ~/.local/share/controller-cleaner/logs.
    """
    if env := os.getenv("CONTROLLER_CLEANER_LOG_DIR"):
        return Path(env).expanduser()
    if configured := _load_pyproject_settings().get("log-dir"):
        return Path(str(configured)).expanduser()
    return DEFAULT_LOG_DIR
