from __future__ import annotations

import pytest

from src.beacon_attendance.beacon_attendance.beacon.distance import estimate_distance, is_within_range


def test_reference_power_is_one_meter():
    assert estimate_distance(-59) == pytest.approx(1.0)


def test_every_20_db_is_ten_times_further():
    assert estimate_distance(-79) == pytest.approx(10.0)
    assert estimate_distance(-39) == pytest.approx(0.1)


def test_zero_rssi_means_no_reading():
    assert estimate_distance(0) == -1.0
    assert not is_within_range(estimate_distance(0), 5.0)


def test_custom_calibration():
    assert estimate_distance(-70, reference_power=-70, path_loss_exponent=3) == pytest.approx(1.0)
    assert estimate_distance(-100, reference_power=-70, path_loss_exponent=3) == pytest.approx(10.0)


def test_range_boundary_is_inclusive():
    assert is_within_range(5.0, 5.0)
    assert not is_within_range(5.01, 5.0)
    assert not is_within_range(0.0, 5.0)


def test_distance_never_grows_as_signal_gets_stronger():
    readings = [r for r in range(-120, 1) if r != 0]
    for weaker, stronger in zip(readings, readings[1:]):
        assert estimate_distance(stronger) <= estimate_distance(weaker)
