# config.py

#!/usr/bin/env python3
import json
import logging
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytz

# ─── Environment helpers ───────────────────────────────────────────────────────

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))


class ConfigurationError(RuntimeError):
    """Raised when the sensor ordering, labels or canvas list cannot be loaded."""


def _load_env_file(path: str) -> None:
    """Load simple KEY=VALUE pairs from *path* without overriding existing vars."""

    try:
        with open(path, "r", encoding="utf-8") as fh:
            lines = fh.readlines()
    except FileNotFoundError:
        return
    except OSError:
        logging.debug("Could not read .env file at %s", path)
        return

    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()

        if not key:
            continue

        if value and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]

        os.environ.setdefault(key, value)


def _initialise_env() -> None:
    """Load environment variables from `.env` if present.

    ``CONFIG`` may point at a directory holding the `.env` file; the project
    root and the working directory are checked after it.
    """

    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        load_dotenv = None

    candidate_paths = []

    config_dir = os.environ.get("CONFIG")
    if config_dir:
        candidate_paths.append(Path(config_dir) / ".env")

    candidate_paths.append(Path(SCRIPT_DIR) / ".env")

    cwd_path = Path.cwd() / ".env"
    if cwd_path not in candidate_paths:
        candidate_paths.append(cwd_path)

    for path in candidate_paths:
        if not path.is_file():
            continue
        if load_dotenv is not None:
            load_dotenv(path, override=False)
        else:
            _load_env_file(str(path))


_ENV_INITIALISED = False


def initialise_env_if_requested(force: bool = False) -> None:
    """Conditionally load `.env` files based on CONFIG_LOAD_DOTENV flag."""

    global _ENV_INITIALISED

    if _ENV_INITIALISED and not force:
        return

    raw_flag = os.environ.get("CONFIG_LOAD_DOTENV", "0").strip().lower()
    should_load = raw_flag in {"1", "true", "yes", "on"}

    if should_load:
        _initialise_env()

    _ENV_INITIALISED = True


initialise_env_if_requested()


def _get_first_env_var(*names: str):
    """Return the first populated environment variable from *names.*"""

    for name in names:
        value = os.environ.get(name)
        if value:
            return value

    return None


def _get_bool_env(name: str, default: bool) -> bool:
    """Parse boolean feature flags from environment variables."""

    raw = os.environ.get(name)
    if raw is None:
        return default

    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _get_int_env(name: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logging.warning("Invalid %s value %r; defaulting to %d.", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        logging.warning("%s below %d; clamping.", name, minimum)
        return minimum
    return value


# ─── Feature flags ────────────────────────────────────────────────────────────
ENABLE_WEATHER    = _get_bool_env("ENABLE_WEATHER", True)
OUTPUT_GRAYSCALE  = _get_bool_env("OUTPUT_GRAYSCALE", True)

# Counter-clockwise degrees; the e-ink panel is mounted in portrait.
try:
    OUTPUT_ROTATION = int(os.environ.get("OUTPUT_ROTATION", "90"))
except (TypeError, ValueError):
    logging.warning("Invalid OUTPUT_ROTATION value; defaulting to 90 degrees.")
    OUTPUT_ROTATION = 90

RENDER_INTERVAL_SECONDS = _get_int_env("RENDER_INTERVAL_SECONDS", 300, minimum=30)

# ─── Time zone ────────────────────────────────────────────────────────────────
try:
    DISPLAY_TIMEZONE = pytz.timezone(os.environ.get("DISPLAY_TIMEZONE", "Europe/Helsinki"))
except pytz.UnknownTimeZoneError:
    logging.warning("Unknown DISPLAY_TIMEZONE; falling back to Europe/Helsinki.")
    DISPLAY_TIMEZONE = pytz.timezone("Europe/Helsinki")

# ─── Weather ──────────────────────────────────────────────────────────────────
OWM_API_KEY   = _get_first_env_var("OPENWEATHERMAP_API_KEY", "OWM_API_KEY")
OWM_API_URL   = "https://api.openweathermap.org/data/3.0/onecall"
OWM_UNITS     = os.environ.get("WEATHER_UNITS", "metric")
LATITUDE      = os.environ.get("COORDS_LAT")
LONGITUDE     = os.environ.get("COORDS_LON")
HOURLY_FORECAST_HOURS = 4

# ─── Samples ──────────────────────────────────────────────────────────────────
SAMPLES_PATH             = os.environ.get("SAMPLES_PATH", os.path.join(SCRIPT_DIR, "samples.json"))
SAMPLE_LOOKBACK_MINUTES  = _get_int_env("SAMPLE_LOOKBACK_MINUTES", 30, minimum=1)
SAMPLES_PER_SENSOR       = _get_int_env("SAMPLES_PER_SENSOR", 5, minimum=1)

# ─── Fonts ────────────────────────────────────────────────────────────────────
# Drop BitterPro-Bold.ttf and BitterPro-Medium.ttf into the fonts directory
# (see paths.py). Values use the bold face, labels the medium one.
FONT_VALUE_FILE = os.environ.get("FONT_VALUE_FILE", "BitterPro-Bold.ttf")
FONT_LABEL_FILE = os.environ.get("FONT_LABEL_FILE", "BitterPro-Medium.ttf")

# ─── Sensor ordering and labels ───────────────────────────────────────────────

_MAC_KEY_RE = re.compile(r"^(?:[0-9A-F]{2}_){5}[0-9A-F]{2}$")


def sensor_env_key(sensor_id: str) -> str:
    """Return the environment key holding the label for *sensor_id*."""

    return sensor_id.strip().replace(":", "_").upper()


def get_sensor_order(raw: Optional[str] = None) -> List[str]:
    """Return the semicolon-delimited SENSORS_IN_ORDER list.

    Raises ConfigurationError when the value is missing or holds no entries.
    """

    value = raw if raw is not None else os.environ.get("SENSORS_IN_ORDER")
    if not value:
        raise ConfigurationError("SENSORS_IN_ORDER is not set")

    order = [part.strip() for part in value.split(";") if part.strip()]
    if not order:
        raise ConfigurationError("SENSORS_IN_ORDER holds no sensors")
    return order


def _load_label_file(path: str) -> Dict[str, str]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Sensor label file {path} not found") from exc
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Sensor label file {path} is unreadable: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Sensor label file {path} must hold an object")

    labels: Dict[str, str] = {}
    for sensor_id, label in payload.items():
        if not isinstance(sensor_id, str) or not isinstance(label, str):
            raise ConfigurationError(f"Invalid label entry {sensor_id!r}: {label!r}")
        labels[sensor_env_key(sensor_id)] = label
    return labels


def get_sensor_labels(environ: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Return the sensor-id → label mapping keyed by :func:`sensor_env_key`.

    Labels come from the JSON file named by SENSOR_LABELS_PATH, or else from
    environment keys shaped like a MAC address (``AA_BB_CC_DD_EE_FF=Kitchen``).
    """

    env = os.environ if environ is None else environ

    path = env.get("SENSOR_LABELS_PATH")
    if path:
        return _load_label_file(path)

    labels = {
        key: value
        for key, value in env.items()
        if _MAC_KEY_RE.match(key)
    }
    if not labels:
        raise ConfigurationError(
            "No sensor labels configured. Set SENSOR_LABELS_PATH or MAC-named keys."
        )
    return labels


# ─── Canvas configuration ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class CanvasConfig:
    """One output resolution: size, the three font sizes and a destination."""

    name: str
    width: int
    height: int
    font_large: int
    font_medium: int
    font_small: int
    output: str
    compact: bool = False
    inset: int = 0

    def with_output_dir(self, output_dir: str) -> "CanvasConfig":
        if os.path.isabs(self.output):
            return self
        return replace(self, output=os.path.join(output_dir, self.output))


DEFAULT_CANVASES = (
    CanvasConfig(
        name="800x600",
        width=800,
        height=600,
        font_large=90,
        font_medium=24,
        font_small=16,
        output="infoscreen-800x600.png",
        compact=True,
    ),
    CanvasConfig(
        name="1024x758",
        width=1024,
        height=758,
        font_large=110,
        font_medium=30,
        font_small=20,
        output="infoscreen-1024x758.png",
    ),
)

CANVAS_CONFIG_PATH = os.environ.get(
    "CANVAS_CONFIG_PATH", os.path.join(SCRIPT_DIR, "canvases.json")
)

_CANVAS_INT_FIELDS = ("width", "height", "font_large", "font_medium", "font_small")


def _parse_canvas(entry: Any, index: int) -> CanvasConfig:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Canvas entry {index} must be an object")

    values: Dict[str, Any] = {}
    for key in _CANVAS_INT_FIELDS:
        raw = entry.get(key)
        if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
            raise ConfigurationError(f"Canvas entry {index} needs a positive integer {key!r}")
        values[key] = raw

    output = entry.get("output")
    if not isinstance(output, str) or not output.strip():
        raise ConfigurationError(f"Canvas entry {index} needs an output file name")

    inset = entry.get("inset", 0)
    if isinstance(inset, bool) or not isinstance(inset, int) or inset < 0:
        raise ConfigurationError(f"Canvas entry {index} has an invalid inset")
    if inset * 2 >= min(values["width"], values["height"]):
        raise ConfigurationError(f"Canvas entry {index} inset leaves no drawing area")

    name = entry.get("name") or f"{values['width']}x{values['height']}"
    return CanvasConfig(
        name=str(name),
        output=output.strip(),
        compact=bool(entry.get("compact", False)),
        inset=inset,
        **values,
    )


def load_canvas_configs(path: Optional[str] = None) -> List[CanvasConfig]:
    """Read canvas records from JSON, falling back to the built-in pair."""

    config_path = path or CANVAS_CONFIG_PATH
    if not os.path.isfile(config_path):
        logging.debug("No canvas config at %s; using defaults", config_path)
        return list(DEFAULT_CANVASES)

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Canvas config {config_path} is unreadable: {exc}") from exc

    if isinstance(payload, dict):
        payload = payload.get("canvases")
    if not isinstance(payload, list) or not payload:
        raise ConfigurationError(f"Canvas config {config_path} holds no canvases")

    return [_parse_canvas(entry, idx) for idx, entry in enumerate(payload)]
