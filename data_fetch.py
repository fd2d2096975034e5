#!/usr/bin/env python3
"""
data_fetch.py

Data sources feeding the dashboard: the OpenWeatherMap One Call forecast
(via a shared requests.Session with retries) and the locally collected
RuuviTag readings.
"""

import datetime
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import (
    HOURLY_FORECAST_HOURS,
    LATITUDE,
    LONGITUDE,
    OWM_API_KEY,
    OWM_API_URL,
    OWM_UNITS,
)
from measurements import RawSample
from utils import timestamp_to_datetime


@dataclass(frozen=True)
class ForecastPoint:
    icon: str
    at: datetime.datetime
    temp: float
    feels_like: float
    precipitation: float
    pop: int


@dataclass(frozen=True)
class WeatherSnapshot:
    icon: str
    precipitation: float
    hourly: Tuple[ForecastPoint, ...] = ()


# ─── Shared HTTP session ─────────────────────────────────────────────────────
_session: Optional[requests.Session] = None


def get_session() -> requests.Session:
    global _session
    if _session is None:
        retry = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=(500, 502, 503, 504),
            allowed_methods=("GET",),
        )
        session = requests.Session()
        session.mount("https://", HTTPAdapter(max_retries=retry))
        _session = session
    return _session


# -----------------------------------------------------------------------------
# WEATHER
# -----------------------------------------------------------------------------
def _precipitation(entry: Dict[str, Any]) -> float:
    """Snow takes precedence over rain; both are reported per last hour."""

    for key in ("snow", "rain"):
        if key in entry:
            bucket = entry.get(key)
            if isinstance(bucket, dict):
                try:
                    return float(bucket.get("1h", 0.0))
                except (TypeError, ValueError):
                    return 0.0
            return 0.0
    return 0.0


def _icon_code(entry: Dict[str, Any]) -> str:
    weather_list = entry.get("weather") if isinstance(entry.get("weather"), list) else []
    if not weather_list or not isinstance(weather_list[0], dict):
        raise ValueError("weather entry without an icon")
    icon = weather_list[0].get("icon")
    if not isinstance(icon, str) or not icon:
        raise ValueError("weather entry without an icon")
    return icon


def _forecast_point(entry: Dict[str, Any]) -> ForecastPoint:
    at = timestamp_to_datetime(entry["dt"], datetime.timezone.utc)
    if at is None:
        raise ValueError(f"invalid forecast timestamp {entry.get('dt')!r}")
    return ForecastPoint(
        icon=_icon_code(entry),
        at=at,
        temp=float(entry["temp"]),
        feels_like=float(entry.get("feels_like", entry["temp"])),
        precipitation=_precipitation(entry),
        pop=int(float(entry.get("pop", 0.0)) * 100),
    )


def parse_onecall(payload: Any, hours: int = HOURLY_FORECAST_HOURS) -> WeatherSnapshot:
    """Build a snapshot from a One Call response.

    The first hourly entry is the current hour, already covered by
    ``current``, so the forecast strip starts from the second one.
    Raises ValueError on malformed payloads.
    """

    if not isinstance(payload, dict) or not isinstance(payload.get("current"), dict):
        raise ValueError("One Call payload without current weather")

    current = payload["current"]
    hourly_raw = payload.get("hourly") if isinstance(payload.get("hourly"), list) else []

    hourly: List[ForecastPoint] = []
    for entry in hourly_raw[1 : hours + 1]:
        if not isinstance(entry, dict):
            continue
        try:
            hourly.append(_forecast_point(entry))
        except (KeyError, TypeError, ValueError) as exc:
            logging.debug("Skipping malformed hourly entry: %s", exc)

    return WeatherSnapshot(
        icon=_icon_code(current),
        precipitation=_precipitation(current),
        hourly=tuple(hourly),
    )


def fetch_weather() -> Optional[WeatherSnapshot]:
    """
    Fetch the current weather and the next hours from OpenWeatherMap.

    Any failure is logged and reported as ``None`` so the dashboard simply
    renders without its weather section.
    """
    if not OWM_API_KEY or not LATITUDE or not LONGITUDE:
        logging.warning("OpenWeatherMap key or coordinates missing; skipping weather")
        return None

    params = {
        "lat": LATITUDE,
        "lon": LONGITUDE,
        "exclude": "minutely,daily",
        "appid": OWM_API_KEY,
        "units": OWM_UNITS,
    }
    try:
        r = get_session().get(OWM_API_URL, params=params, timeout=10)
        r.raise_for_status()
        return parse_onecall(r.json())
    except requests.exceptions.HTTPError as http_err:
        logging.error("HTTP error fetching weather: %s", http_err)
    except requests.exceptions.RequestException as exc:
        logging.error("Error fetching weather: %s", exc)
    except ValueError as exc:
        logging.error("Malformed weather response: %s", exc)
    return None


# -----------------------------------------------------------------------------
# SENSOR SAMPLES
# -----------------------------------------------------------------------------
def _parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    if isinstance(value, (int, float)):
        return timestamp_to_datetime(value, datetime.timezone.utc)
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _parse_sample(entry: Any) -> Optional[RawSample]:
    if not isinstance(entry, dict):
        return None
    sensor_id = entry.get("mac")
    at = _parse_timestamp(entry.get("at", entry.get("created_at")))
    try:
        value = float(entry.get("temp", entry.get("temperature")))
    except (TypeError, ValueError):
        return None
    if not isinstance(sensor_id, str) or not sensor_id or at is None:
        return None
    return RawSample(
        sensor_id=sensor_id,
        label=str(entry.get("label") or ""),
        value=value,
        timestamp=at,
    )


def load_samples(path: str) -> List[RawSample]:
    """Read RuuviTag readings stored as a JSON array or as JSON lines.

    A missing or unreadable file means no data this cycle; sensors then show
    as empty cells.
    """

    if not os.path.isfile(path):
        logging.warning("Sample file %s not found; rendering without readings", path)
        return []

    try:
        with open(path, "r", encoding="utf-8") as fh:
            text = fh.read()
    except OSError as exc:
        logging.error("Could not read samples from %s: %s", path, exc)
        return []

    stripped = text.strip()
    entries: List[Any] = []
    try:
        if stripped.startswith("["):
            entries = json.loads(stripped)
        else:
            entries = [json.loads(line) for line in stripped.splitlines() if line.strip()]
    except ValueError as exc:
        logging.error("Malformed sample file %s: %s", path, exc)
        return []

    samples = []
    for entry in entries:
        sample = _parse_sample(entry)
        if sample is None:
            logging.debug("Skipping malformed sample %r", entry)
            continue
        samples.append(sample)
    logging.debug("Loaded %d samples from %s", len(samples), path)
    return samples
