#!/usr/bin/env python3
"""
measurements.py

Reduce raw sensor samples into the ordered measurement list shown on the
dashboard:
  • group samples per sensor and sort them oldest first
  • slope between the earliest and latest sample (per minute)
  • staleness of the latest sample in whole minutes
  • reorder to SENSORS_IN_ORDER, padding missing sensors with empty entries
"""

from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from config import sensor_env_key

AGE_HIDDEN_BELOW = 3
AGE_CAP_MINUTES = 30
LOOKBACK_MINUTES = 30
TREND_UP = "↑"
TREND_DOWN = "↓"
EMPTY_VALUE = "--"


@dataclass(frozen=True)
class RawSample:
    sensor_id: str
    label: str
    value: float
    timestamp: datetime.datetime


@dataclass(frozen=True)
class Measurement:
    """Latest value, trend and staleness for one configured sensor."""

    label: str
    value: float = 0.0
    slope: float = 0.0
    age_minutes: int = 0
    empty: bool = False
    sensor_id: str = ""

    @classmethod
    def empty_for(cls, label: str) -> "Measurement":
        return cls(label=label, empty=True)

    def format_label(self) -> str:
        return self.label

    def format_value(self) -> str:
        if self.empty:
            return EMPTY_VALUE
        return f"{self.value:.1f}"

    def format_age(self) -> str:
        if self.empty or self.age_minutes < AGE_HIDDEN_BELOW:
            return ""
        if self.age_minutes < AGE_CAP_MINUTES:
            return f">{self.age_minutes}m"
        return f">{AGE_CAP_MINUTES}m"

    def format_slope(self) -> str:
        if self.empty or self.slope == 0:
            return ""
        if self.slope > 0:
            return TREND_UP
        return TREND_DOWN


def _group_by_sensor(samples: Iterable[RawSample]) -> Dict[str, List[RawSample]]:
    grouped: Dict[str, List[RawSample]] = defaultdict(list)
    for sample in samples:
        grouped[sensor_env_key(sample.sensor_id)].append(sample)
    for group in grouped.values():
        group.sort(key=lambda s: s.timestamp)
    return grouped


def _slope(earliest: RawSample, latest: RawSample) -> float:
    elapsed = (latest.timestamp - earliest.timestamp).total_seconds() / 60.0
    if elapsed <= 0:
        return 0.0
    return (latest.value - earliest.value) / elapsed


def _age_minutes(latest: RawSample, now: datetime.datetime) -> int:
    seconds = (now - latest.timestamp).total_seconds()
    return max(0, int(seconds // 60))


def recent_samples(
    samples: Iterable[RawSample],
    now: datetime.datetime,
    *,
    lookback_minutes: int = LOOKBACK_MINUTES,
    per_sensor: int = 5,
) -> List[RawSample]:
    """Keep the newest *per_sensor* samples of each sensor inside the lookback window.

    The window has no upper bound: a reading stamped slightly after *now*
    still counts and reduces to age 0.
    """

    cutoff = now - datetime.timedelta(minutes=lookback_minutes)
    kept: List[RawSample] = []
    for group in _group_by_sensor(samples).values():
        window = [s for s in group if s.timestamp >= cutoff]
        kept.extend(window[-per_sensor:])
    return kept


def reduce_samples(
    samples: Iterable[RawSample],
    order: Sequence[str],
    labels: Mapping[str, str],
    now: Optional[datetime.datetime] = None,
) -> List[Measurement]:
    """Return one measurement per entry of *order*, in that order.

    Order entries match a sensor either by its id or by its resolved label.
    Sensors missing from *order* are dropped; entries without samples become
    empty measurements.
    """

    current = now or datetime.datetime.now(datetime.timezone.utc)

    reduced: List[Measurement] = []
    for key, group in _group_by_sensor(samples).items():
        earliest, latest = group[0], group[-1]
        label = labels.get(key) or latest.label or ""
        measurement = Measurement(
            label=label,
            value=latest.value,
            slope=_slope(earliest, latest),
            age_minutes=_age_minutes(latest, current),
            sensor_id=key,
        )
        logging.debug(
            "Label: %s, value: %.2f, slope: %.4f, age in mins: %d",
            measurement.label,
            measurement.value,
            measurement.slope,
            measurement.age_minutes,
        )
        reduced.append(measurement)

    by_id = {m.sensor_id: m for m in reduced}
    by_label = {m.label: m for m in reduced if m.label}

    ordered: List[Measurement] = []
    for entry in order:
        match = by_id.get(sensor_env_key(entry)) or by_label.get(entry)
        if match is None:
            label = labels.get(sensor_env_key(entry), entry)
            match = Measurement.empty_for(label)
        ordered.append(match)

    dropped = set(by_id) - {m.sensor_id for m in ordered if not m.empty}
    if dropped:
        logging.debug("Ignoring sensors outside SENSORS_IN_ORDER: %s", sorted(dropped))

    return ordered
