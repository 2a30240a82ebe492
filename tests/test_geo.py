import math

import pytest

from backend.app.errors import InvalidArgument
from backend.app.services.geo import (
    EARTH_RADIUS_METERS,
    Coordinate,
    bounding_box,
    destination_point,
    format_coordinate,
    haversine_distance,
    initial_bearing,
    is_within_distance,
    make_coordinate,
)


SAN_FRANCISCO = Coordinate(37.7749, -122.4194)
LOS_ANGELES = Coordinate(34.0522, -118.2437)


def test_distance_to_itself_is_zero():
    assert haversine_distance(SAN_FRANCISCO, SAN_FRANCISCO) == 0


def test_distance_is_symmetric():
    assert haversine_distance(SAN_FRANCISCO, LOS_ANGELES) == pytest.approx(
        haversine_distance(LOS_ANGELES, SAN_FRANCISCO)
    )


def test_known_city_distance():
    assert haversine_distance(SAN_FRANCISCO, LOS_ANGELES) == pytest.approx(559_000, rel=0.01)


def test_one_degree_of_latitude():
    expected = 2 * math.pi * EARTH_RADIUS_METERS / 360
    assert haversine_distance(Coordinate(0, 0), Coordinate(1, 0)) == pytest.approx(expected)


def test_antipodal_points():
    distance = haversine_distance(Coordinate(0, 0), Coordinate(0, 180))
    assert distance == pytest.approx(math.pi * EARTH_RADIUS_METERS)


def test_is_within_distance():
    assert is_within_distance(SAN_FRANCISCO, LOS_ANGELES, 600_000)
    assert not is_within_distance(SAN_FRANCISCO, LOS_ANGELES, 500_000)


@pytest.mark.parametrize("bearing", [0, 45, 90, 135, 180, 225, 270, 315])
def test_bounding_box_contains_circle_edge(bearing):
    radius = 5000
    box = bounding_box(SAN_FRANCISCO, radius)
    edge = destination_point(SAN_FRANCISCO, bearing, radius * 0.999)
    assert box.contains(edge)


def test_bounding_box_excludes_far_point():
    box = bounding_box(SAN_FRANCISCO, 5000)
    assert not box.contains(Coordinate(37.9, -122.4))


def test_bounding_box_across_antimeridian():
    origin = Coordinate(0, 179.99)
    box = bounding_box(origin, 10_000)
    assert box.crosses_antimeridian
    assert box.contains(Coordinate(0, -179.99))
    assert not box.contains(Coordinate(0, 0))


def test_bounding_box_near_pole_covers_all_longitudes():
    box = bounding_box(Coordinate(89.99, 0), 5000)
    assert box.covers_all_longitudes
    assert box.max_lat == 90
    assert box.contains(Coordinate(89.995, 135))


def test_destination_point_matches_distance():
    target = destination_point(SAN_FRANCISCO, 60, 12_345)
    assert haversine_distance(SAN_FRANCISCO, target) == pytest.approx(12_345, rel=1e-6)


def test_initial_bearing():
    assert initial_bearing(Coordinate(0, 0), Coordinate(1, 0)) == pytest.approx(0)
    assert initial_bearing(Coordinate(0, 0), Coordinate(0, 1)) == pytest.approx(90)
    assert initial_bearing(Coordinate(0, 0), Coordinate(-1, 0)) == pytest.approx(180)


def test_format_coordinate():
    assert format_coordinate(37.7749, "lat") == "37° 46' 29.64\" N"
    assert format_coordinate(-122.4194, "lon") == "122° 25' 9.84\" W"
    with pytest.raises(ValueError):
        format_coordinate(10, "alt")


def test_make_coordinate_accepts_boundaries():
    assert make_coordinate(-90, 180) == Coordinate(-90.0, 180.0)
    assert make_coordinate("37.5", "-122.1") == Coordinate(37.5, -122.1)


@pytest.mark.parametrize("latitude, longitude", [
    (None, 10),
    (10, None),
    (90.5, 0),
    (0, -180.5),
    (float("nan"), 0),
    ("north", 0),
])
def test_make_coordinate_rejects_invalid(latitude, longitude):
    with pytest.raises(InvalidArgument):
        make_coordinate(latitude, longitude)
