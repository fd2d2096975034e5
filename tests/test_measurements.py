import datetime

import pytest

from measurements import Measurement, RawSample, recent_samples, reduce_samples

NOW = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

LABELS = {
    "AA_BB_CC_DD_EE_01": "Olohuone",
    "AA_BB_CC_DD_EE_02": "Parveke",
    "AA_BB_CC_DD_EE_03": "Sauna",
}


def _sample(mac: str, value: float, minutes_ago: float, label: str = "") -> RawSample:
    return RawSample(
        sensor_id=mac,
        label=label,
        value=value,
        timestamp=NOW - datetime.timedelta(minutes=minutes_ago),
    )


def test_output_length_matches_order_regardless_of_sensor_count():
    order = ["Olohuone", "Parveke", "Sauna"]
    samples = [
        _sample("AA:BB:CC:DD:EE:01", 21.0, 5),
        _sample("AA:BB:CC:DD:EE:04", 10.0, 5),
        _sample("AA:BB:CC:DD:EE:05", 11.0, 5),
        _sample("AA:BB:CC:DD:EE:06", 12.0, 5),
    ]

    result = reduce_samples(samples, order, LABELS, NOW)

    assert len(result) == len(order)
    assert [m.label for m in result] == order
    assert [m.empty for m in result] == [False, True, True]


def test_no_samples_yields_all_empty_measurements():
    order = ["Olohuone", "Parveke"]

    result = reduce_samples([], order, LABELS, NOW)

    assert len(result) == 2
    assert all(m.empty for m in result)
    assert all(m.format_value() == "--" for m in result)


def test_order_entries_match_sensor_ids_as_well_as_labels():
    order = ["aa:bb:cc:dd:ee:02", "Olohuone"]
    samples = [
        _sample("AA:BB:CC:DD:EE:01", 21.0, 5),
        _sample("AA:BB:CC:DD:EE:02", -3.5, 5),
    ]

    result = reduce_samples(samples, order, LABELS, NOW)

    assert [m.label for m in result] == ["Parveke", "Olohuone"]
    assert result[0].value == pytest.approx(-3.5)


def test_slope_uses_earliest_and_latest_samples():
    samples = [
        _sample("AA:BB:CC:DD:EE:01", 22.0, 0),
        _sample("AA:BB:CC:DD:EE:01", 20.0, 20),
        _sample("AA:BB:CC:DD:EE:01", 25.0, 10),
    ]

    (measurement,) = reduce_samples(samples, ["Olohuone"], LABELS, NOW)

    assert measurement.value == pytest.approx(22.0)
    assert measurement.slope == pytest.approx(0.1)
    assert measurement.format_slope() == "↑"


def test_negative_slope_shows_down_trend():
    samples = [
        _sample("AA:BB:CC:DD:EE:01", 20.0, 10),
        _sample("AA:BB:CC:DD:EE:01", 19.0, 0),
    ]

    (measurement,) = reduce_samples(samples, ["Olohuone"], LABELS, NOW)

    assert measurement.slope < 0
    assert measurement.format_slope() == "↓"


def test_single_sample_has_zero_slope_and_no_trend():
    (measurement,) = reduce_samples(
        [_sample("AA:BB:CC:DD:EE:01", 20.0, 4)], ["Olohuone"], LABELS, NOW
    )

    assert measurement.slope == 0
    assert measurement.format_slope() == ""


def test_identical_values_have_zero_slope():
    samples = [
        _sample("AA:BB:CC:DD:EE:01", 20.0, 10),
        _sample("AA:BB:CC:DD:EE:01", 20.0, 0),
    ]

    (measurement,) = reduce_samples(samples, ["Olohuone"], LABELS, NOW)

    assert measurement.slope == 0
    assert measurement.format_slope() == ""


def test_samples_at_same_instant_do_not_divide_by_zero():
    samples = [
        _sample("AA:BB:CC:DD:EE:01", 20.0, 1),
        _sample("AA:BB:CC:DD:EE:01", 24.0, 1),
    ]

    (measurement,) = reduce_samples(samples, ["Olohuone"], LABELS, NOW)

    assert measurement.slope == 0


def test_age_is_floored_to_whole_minutes():
    sample = _sample("AA:BB:CC:DD:EE:01", 20.0, 4 + 59 / 60)

    (measurement,) = reduce_samples([sample], ["Olohuone"], LABELS, NOW)

    assert measurement.age_minutes == 4


def test_missing_label_renders_as_empty_string():
    mac = "AA:BB:CC:DD:EE:09"

    (measurement,) = reduce_samples([_sample(mac, 20.0, 1)], [mac], LABELS, NOW)

    assert measurement.label == ""
    assert not measurement.empty


def test_sample_label_used_when_mapping_has_none():
    mac = "AA:BB:CC:DD:EE:09"

    (measurement,) = reduce_samples([_sample(mac, 20.0, 1, label="Autotalli")], ["Autotalli"], LABELS, NOW)

    assert measurement.label == "Autotalli"


def test_empty_entry_for_unseen_sensor_uses_mapped_label():
    (measurement,) = reduce_samples([], ["AA:BB:CC:DD:EE:03"], LABELS, NOW)

    assert measurement.empty
    assert measurement.label == "Sauna"


@pytest.mark.parametrize(
    "age, expected",
    [
        (0, ""),
        (2, ""),
        (3, ">3m"),
        (29, ">29m"),
        (30, ">30m"),
        (240, ">30m"),
    ],
)
def test_format_age(age, expected):
    assert Measurement(label="x", value=1.0, age_minutes=age).format_age() == expected


def test_empty_measurement_never_shows_age_or_trend():
    measurement = Measurement(label="x", slope=2.0, age_minutes=45, empty=True)

    assert measurement.format_age() == ""
    assert measurement.format_slope() == ""
    assert measurement.format_value() == "--"


def test_format_value_uses_one_decimal():
    assert Measurement(label="x", value=21.5).format_value() == "21.5"
    assert Measurement(label="x", value=19).format_value() == "19.0"


def test_recent_samples_applies_window_and_per_sensor_limit():
    samples = [_sample("AA:BB:CC:DD:EE:01", float(i), i * 4) for i in range(10)]
    samples.append(_sample("AA:BB:CC:DD:EE:02", 1.0, 45))

    kept = recent_samples(samples, NOW, lookback_minutes=30, per_sensor=5)

    assert len(kept) == 5
    assert {s.sensor_id for s in kept} == {"AA:BB:CC:DD:EE:01"}
    assert sorted(s.value for s in kept) == [0.0, 1.0, 2.0, 3.0, 4.0]


def test_sample_slightly_ahead_of_clock_is_still_shown():
    sample = _sample("AA:BB:CC:DD:EE:01", 21.5, -2 / 60)

    kept = recent_samples([sample], NOW)
    (measurement,) = reduce_samples(kept, ["Olohuone"], LABELS, NOW)

    assert kept == [sample]
    assert not measurement.empty
    assert measurement.value == pytest.approx(21.5)
    assert measurement.age_minutes == 0
