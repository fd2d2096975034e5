"""Weather icon lookup with a process-wide, lock-guarded bitmap cache."""
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from PIL import Image

from utils import RESAMPLE_LANCZOS, log_call


@dataclass(frozen=True)
class IconVariant:
    """Where a variant's bitmap lives and how much to scale it on compact canvases."""

    filename: str
    compact_scale: float


ICON_VARIANTS: Dict[str, IconVariant] = {
    "current": IconVariant(filename="{code}@2x.png", compact_scale=0.75),
    "hourly": IconVariant(filename="{code}.png", compact_scale=1.25),
}

CacheKey = Tuple[str, str, bool]


def _load_icon(path: str) -> Image.Image:
    with Image.open(path) as icon:
        return icon.convert("RGBA")


def _scaled(icon: Image.Image, scale: float) -> Image.Image:
    width = max(1, int(round(icon.width * scale)))
    height = max(1, int(round(icon.height * scale)))
    return icon.resize((width, height), RESAMPLE_LANCZOS)


class IconCache:
    """Resolve ``(code, variant)`` pairs to bitmaps, decoding each one once.

    Entries are never replaced once stored. Misses are cached as ``None`` so a
    missing icon is only logged the first time it is requested.
    """

    def __init__(self, icon_dir: str):
        self.icon_dir = icon_dir
        self._entries: Dict[CacheKey, Optional[Image.Image]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def resolve(self, code: Optional[str], variant: str, compact: bool = False) -> Optional[Image.Image]:
        if not code:
            return None
        spec = ICON_VARIANTS.get(variant)
        if spec is None:
            raise ValueError(f"Unknown icon variant {variant!r}")

        key = (code, variant, compact)
        with self._lock:
            if key not in self._entries:
                self._entries[key] = self._decode(code, spec, compact)
            return self._entries[key]

    @log_call
    def _decode(self, code: str, spec: IconVariant, compact: bool) -> Optional[Image.Image]:
        path = os.path.join(self.icon_dir, spec.filename.format(code=code))
        try:
            icon = _load_icon(path)
        except (OSError, ValueError) as exc:
            logging.warning("Weather icon load failed for %s: %s", path, exc)
            return None
        if compact:
            icon = _scaled(icon, spec.compact_scale)
        return icon


_DEFAULT_CACHES: Dict[str, IconCache] = {}
_DEFAULT_CACHE_LOCK = threading.Lock()


def default_icon_cache(icon_dir: str) -> IconCache:
    """Return the shared cache for *icon_dir*, creating it on first use."""

    with _DEFAULT_CACHE_LOCK:
        cache = _DEFAULT_CACHES.get(icon_dir)
        if cache is None:
            cache = _DEFAULT_CACHES[icon_dir] = IconCache(icon_dir)
        return cache
