import logging
import threading

import pytest

from screens import icons
from screens.icons import IconCache, default_icon_cache


@pytest.fixture
def load_counter(monkeypatch):
    calls = []
    original = icons._load_icon

    def counting_load(path):
        calls.append(path)
        return original(path)

    monkeypatch.setattr(icons, "_load_icon", counting_load)
    return calls


def test_icon_is_decoded_once(icon_dir, load_counter):
    cache = IconCache(str(icon_dir))

    first = cache.resolve("10d", "current")
    second = cache.resolve("10d", "current")

    assert first is second
    assert len(load_counter) == 1
    assert ("10d", "current", False) in cache


def test_variants_load_different_files(icon_dir):
    cache = IconCache(str(icon_dir))

    assert cache.resolve("10d", "current").size == (100, 100)
    assert cache.resolve("10d", "hourly").size == (40, 40)
    assert len(cache) == 2


def test_compact_canvas_scales_icons(icon_dir):
    cache = IconCache(str(icon_dir))

    assert cache.resolve("01n", "current", compact=True).size == (75, 75)
    assert cache.resolve("01n", "hourly", compact=True).size == (50, 50)
    assert cache.resolve("01n", "current").size == (100, 100)


def test_compact_current_icon_is_scaled_once(icon_dir, load_counter):
    cache = IconCache(str(icon_dir))

    first = cache.resolve("10d", "current", compact=True)
    second = cache.resolve("10d", "current", compact=True)

    assert first.size == (75, 75)
    assert first is second
    assert len(load_counter) == 1


def test_missing_icon_is_logged_once_and_cached(icon_dir, load_counter, caplog):
    cache = IconCache(str(icon_dir))

    with caplog.at_level(logging.WARNING):
        assert cache.resolve("13d", "current") is None
        assert cache.resolve("13d", "current") is None

    assert len(load_counter) == 1
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert ("13d", "current", False) in cache


def test_empty_code_resolves_to_nothing(icon_dir, load_counter):
    cache = IconCache(str(icon_dir))

    assert cache.resolve(None, "current") is None
    assert cache.resolve("", "hourly") is None
    assert load_counter == []


def test_unknown_variant_is_rejected(icon_dir):
    with pytest.raises(ValueError):
        IconCache(str(icon_dir)).resolve("10d", "daily")


def test_concurrent_lookups_decode_once(icon_dir, load_counter):
    cache = IconCache(str(icon_dir))
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(cache.resolve("04d", "hourly"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(load_counter) == 1
    assert len(results) == 8
    assert all(result is results[0] for result in results)


def test_default_cache_is_shared_per_directory(icon_dir, tmp_path):
    first = default_icon_cache(str(icon_dir))

    assert default_icon_cache(str(icon_dir)) is first

    other = default_icon_cache(str(tmp_path))
    assert other is not first
    assert default_icon_cache(str(icon_dir)) is first
    assert default_icon_cache(str(tmp_path)) is other
