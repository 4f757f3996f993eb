from datetime import datetime, timedelta, timezone

from src.fleet_risk.services.sampling import sample_indices, sample_route


def test_sample_indices_spread_over_route_with_endpoints():
    assert sample_indices(10, 5) == [0, 2, 5, 7, 9]
    assert sample_indices(2, 5) == [0, 1]
    assert sample_indices(3, 5) == [0, 1, 2]


def test_sample_indices_single_sample_returns_first_index():
    assert sample_indices(10, 1) == [0]
    assert sample_indices(1, 5) == [0]
    assert sample_indices(0, 5) == [0]


def test_sample_route_derives_fraction_and_eta():
    coords = [(40.0 + i * 0.1, -3.0) for i in range(10)]
    start = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)

    segments = sample_route(coords, 5, start_time=start, duration_s=900)

    assert [segment.index for segment in segments] == [0, 2, 5, 7, 9]
    assert segments[0].fraction == 0.0
    assert segments[0].eta == start
    assert segments[-1].fraction == 1.0
    assert segments[-1].eta == start + timedelta(seconds=900)
    assert segments[2].coords == coords[5]


def test_sample_route_normalizes_swapped_coordinates():
    segments = sample_route([(-3.0, 40.0), (-120.0, 45.0)], 5)

    assert segments[1].coords == (45.0, -120.0)
    assert segments[0].coords == (-3.0, 40.0)
    assert all(segment.eta is None for segment in segments)


def test_sample_route_without_duration_keeps_start_time():
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    segments = sample_route([(40.0, -3.0), (40.1, -3.0)], 5, start_time=start, duration_s=None)

    assert [segment.eta for segment in segments] == [start, start]


def test_sample_route_empty_coordinates():
    assert sample_route([], 5) == []
