#!/usr/bin/env python3
"""
Render loop for the e-ink infoscreen.

Each cycle reads the recent sensor samples, reduces them to the ordered
measurement list, fetches the short-term weather forecast, and renders one
dashboard image per configured canvas (e.g. 800×600 and 1024×758).
A failed write only skips that canvas; configuration and font problems
abort the cycle.
"""
import argparse
import datetime
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from config import (
    ENABLE_WEATHER,
    OUTPUT_GRAYSCALE,
    OUTPUT_ROTATION,
    RENDER_INTERVAL_SECONDS,
    SAMPLE_LOOKBACK_MINUTES,
    SAMPLES_PATH,
    SAMPLES_PER_SENSOR,
    CanvasConfig,
    ConfigurationError,
    get_sensor_labels,
    get_sensor_order,
    load_canvas_configs,
)
import data_fetch
from measurements import Measurement, recent_samples, reduce_samples
from output import OutputError, write_image
from paths import ResourcePaths, resolve_storage_paths
from screens.draw_dashboard import draw_dashboard
from screens.icons import default_icon_cache
from screens.layout import LayoutError
from screens.text import FontLoadError, load_fonts
from utils import ColorFormatter


def configure_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(
        ColorFormatter("%(asctime)s %(levelname)-8s %(message)s", datefmt="%H:%M:%S")
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[handler],
        force=True,
    )
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def read_measurements(now: datetime.datetime) -> List[Measurement]:
    """Load ordering and labels, then reduce the recent samples."""

    order = get_sensor_order()
    labels = get_sensor_labels()
    samples = recent_samples(
        data_fetch.load_samples(SAMPLES_PATH),
        now,
        lookback_minutes=SAMPLE_LOOKBACK_MINUTES,
        per_sensor=SAMPLES_PER_SENSOR,
    )
    return reduce_samples(samples, order, labels, now)


def render_canvases(
    measurements: Sequence[Measurement],
    weather,
    canvases: Sequence[CanvasConfig],
    storage: ResourcePaths,
    now: Optional[datetime.datetime] = None,
) -> List[str]:
    """Render and write every canvas; returns the paths written."""

    icons = default_icon_cache(str(storage.icons_dir))
    written = []
    for canvas in canvases:
        canvas = canvas.with_output_dir(str(storage.output_dir))
        fonts = load_fonts(canvas, str(storage.fonts_dir))
        image = draw_dashboard(measurements, canvas, weather, fonts=fonts, icons=icons, now=now)
        try:
            written.append(
                write_image(image, canvas.output, grayscale=OUTPUT_GRAYSCALE, rotation=OUTPUT_ROTATION)
            )
        except OutputError as exc:
            logging.error("Skipping canvas %s: %s", canvas.name, exc)
    return written


def run_cycle(
    now: Optional[datetime.datetime] = None,
    *,
    storage: Optional[ResourcePaths] = None,
    canvases: Optional[Sequence[CanvasConfig]] = None,
) -> List[str]:
    current = now or datetime.datetime.now(datetime.timezone.utc)
    storage = storage or resolve_storage_paths()
    canvases = canvases if canvases is not None else load_canvas_configs()

    measurements = read_measurements(current)
    weather = data_fetch.fetch_weather() if ENABLE_WEATHER else None
    if weather is None:
        logging.info("Rendering without weather section")

    return render_canvases(measurements, weather, canvases, storage, now=current)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render the infoscreen dashboard images.")
    parser.add_argument("--once", action="store_true", help="Render a single cycle and exit")
    parser.add_argument(
        "--interval",
        type=int,
        default=RENDER_INTERVAL_SECONDS,
        help="Seconds between cycles when looping (default: %(default)s)",
    )
    parser.add_argument("--output-dir", help="Directory for the rendered images (overrides OUTPUT)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.verbose)

    storage = resolve_storage_paths(logger=logging.getLogger(__name__))
    if args.output_dir:
        output_dir = Path(args.output_dir).expanduser()
        output_dir.mkdir(parents=True, exist_ok=True)
        storage = replace(storage, output_dir=output_dir)
    logging.info("🖥️  Starting infoscreen renderer…")

    while True:
        try:
            run_cycle(storage=storage)
        except (ConfigurationError, FontLoadError, LayoutError) as exc:
            logging.error("Render cycle aborted: %s", exc)
            if args.once:
                return 1
        if args.once:
            return 0
        time.sleep(max(1, args.interval))


if __name__ == "__main__":
    sys.exit(main())
