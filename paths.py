from __future__ import annotations

"""Shared helpers for locating bundled resources and the output directory."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class ResourcePaths:
    """Resolved filesystem locations for fonts, icons and rendered images."""

    fonts_dir: Path
    icons_dir: Path
    output_dir: Path


def _project_root() -> Path:
    return Path(__file__).resolve().parent


def _env_path(name: str, default: Path) -> Path:
    raw = os.environ.get(name, "").strip()
    if raw:
        return Path(raw).expanduser()
    return default


def resolve_storage_paths(*, logger: Optional[object] = None) -> ResourcePaths:
    """Return filesystem paths for fonts, weather icons and output images.

    Fonts live in ``<project_root>/resources/fonts`` and icons in
    ``<project_root>/resources/icons`` unless FONTS_DIR / ICONS_DIR say
    otherwise. Images are written to OUTPUT (or OUTPUT_DIR), defaulting to
    ``<project_root>/output``, which is created when missing.
    """

    base_dir = _project_root()
    resources = base_dir / "resources"

    fonts_dir = _env_path("FONTS_DIR", resources / "fonts")
    icons_dir = _env_path("ICONS_DIR", resources / "icons")

    output_raw = (os.environ.get("OUTPUT") or os.environ.get("OUTPUT_DIR") or "").strip()
    output_dir = Path(output_raw).expanduser() if output_raw else base_dir / "output"
    output_dir.mkdir(parents=True, exist_ok=True)

    if logger:
        logger.info("Using font directory %s", fonts_dir)
        logger.info("Using icon directory %s", icons_dir)
        logger.info("Using output directory %s", output_dir)

    return ResourcePaths(
        fonts_dir=fonts_dir,
        icons_dir=icons_dir,
        output_dir=output_dir,
    )
