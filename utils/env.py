"""Environment helper utilities.

Loads a `.env` file from the project root so that store credentials and the
reorder webhook URL (e.g. ``INVENTORY_STORE_URL``, ``REORDER_WEBHOOK_URL``)
defined there become available via ``os.getenv``, and offers small typed
readers used by ``config.config``.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

__all__ = ["load_project_dotenv", "env_flag", "env_float"]

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _find_project_root(start: Path | None = None) -> Path:
    """Traverse upwards until we find a directory that contains `pyproject.toml`."""
    current = start or Path(__file__).resolve().parent
    for _ in range(10):  # safety break
        if (current / "pyproject.toml").exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return Path(__file__).resolve().parent


def load_project_dotenv() -> None:
    """Load environment variables from the project-level `.env` if present."""
    project_root = _find_project_root()
    dotenv_path = project_root / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean switch such as ``REPLENISHMENT_COLLAPSE_APPROVAL=false``."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"Environment variable {name} must be a boolean, got {raw!r}")


def env_float(name: str, default: float) -> float:
    """Read a float setting (timeouts), falling back to ``default`` when unset."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from exc
