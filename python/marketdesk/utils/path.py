"""Filesystem path helpers."""

from __future__ import annotations

from pathlib import Path


def get_python_root_path() -> str:
    """Return the ``python/`` source root that holds the package and configs."""
    return str(Path(__file__).resolve().parents[2])
