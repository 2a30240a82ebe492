"""
Геометрия на сфере: расстояния, bounding box, азимуты.

Земля считается шаром со средним радиусом 6371 км. Для поиска в пределах
города точности хватает, эллипсоид не нужен.
"""

import math
from typing import NamedTuple

from ..errors import InvalidArgument


EARTH_RADIUS_METERS = 6_371_000.0

MIN_LAT, MAX_LAT = -90.0, 90.0
MIN_LON, MAX_LON = -180.0, 180.0


class Coordinate(NamedTuple):
    """Точка (широта, долгота) в градусах."""
    latitude: float
    longitude: float


class BoundingBox(NamedTuple):
    """
    Прямоугольник в градусах вокруг точки.

    Если min_lon > max_lon, прямоугольник пересекает антимеридиан (±180°).
    """
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.min_lon > self.max_lon

    @property
    def covers_all_longitudes(self) -> bool:
        return self.min_lon == MIN_LON and self.max_lon == MAX_LON

    def contains(self, point: Coordinate) -> bool:
        if not self.min_lat <= point.latitude <= self.max_lat:
            return False
        if self.crosses_antimeridian:
            return point.longitude >= self.min_lon or point.longitude <= self.max_lon
        return self.min_lon <= point.longitude <= self.max_lon


def make_coordinate(latitude, longitude) -> Coordinate:
    """
    Проверяет и создаёт координату.

    Raises:
        InvalidArgument: если одной из частей нет или она вне диапазона
    """
    if latitude is None or longitude is None:
        raise InvalidArgument("Both latitude and longitude are required")
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise InvalidArgument("Latitude and longitude must be numbers")
    # NaN не проходит ни одно сравнение
    if not MIN_LAT <= lat <= MAX_LAT:
        raise InvalidArgument("Latitude must be between -90 and 90")
    if not MIN_LON <= lon <= MAX_LON:
        raise InvalidArgument("Longitude must be between -180 and 180")
    return Coordinate(lat, lon)


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Расстояние по большому кругу между двумя точками в метрах."""
    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlambda = math.radians(b.longitude - a.longitude)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # Ошибки округления могут дать h чуть больше 1
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(h))


def is_within_distance(a: Coordinate, b: Coordinate, meters: float) -> bool:
    return haversine_distance(a, b) <= meters


def bounding_box(origin: Coordinate, radius_meters: float) -> BoundingBox:
    """
    Прямоугольник, гарантированно содержащий круг радиуса radius_meters.

    Только для отсева кандидатов: попадание в круг всё равно решает
    haversine_distance. Около полюса круг накрывает все долготы.
    """
    lat = math.radians(origin.latitude)
    lon = math.radians(origin.longitude)
    angular = radius_meters / EARTH_RADIUS_METERS

    min_lat = lat - angular
    max_lat = lat + angular

    if min_lat > -math.pi / 2 and max_lat < math.pi / 2:
        # Здесь angular < pi/2 - |lat|, поэтому аргумент asin не больше 1
        delta_lon = math.asin(min(1.0, math.sin(angular) / math.cos(lat)))
        min_lon = lon - delta_lon
        max_lon = lon + delta_lon
        if min_lon < -math.pi:
            min_lon += 2 * math.pi
        if max_lon > math.pi:
            max_lon -= 2 * math.pi
    else:
        min_lat = max(min_lat, -math.pi / 2)
        max_lat = min(max_lat, math.pi / 2)
        min_lon, max_lon = -math.pi, math.pi

    return BoundingBox(
        min_lat=math.degrees(min_lat),
        max_lat=math.degrees(max_lat),
        min_lon=math.degrees(min_lon),
        max_lon=math.degrees(max_lon),
    )


def destination_point(origin: Coordinate, bearing_degrees: float, distance_meters: float) -> Coordinate:
    """Точка на расстоянии distance_meters от origin по азимуту bearing_degrees."""
    lat1 = math.radians(origin.latitude)
    lon1 = math.radians(origin.longitude)
    bearing = math.radians(bearing_degrees)
    angular = distance_meters / EARTH_RADIUS_METERS

    lat2 = math.asin(
        math.sin(lat1) * math.cos(angular)
        + math.cos(lat1) * math.sin(angular) * math.cos(bearing)
    )
    lon2 = lon1 + math.atan2(
        math.sin(bearing) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * math.sin(lat2),
    )
    # Нормализуем долготу в [-180, 180)
    lon2 = (lon2 + 3 * math.pi) % (2 * math.pi) - math.pi
    return Coordinate(math.degrees(lat2), math.degrees(lon2))


def initial_bearing(a: Coordinate, b: Coordinate) -> float:
    """Начальный азимут от a к b в градусах [0, 360)."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)
    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def format_coordinate(value: float, axis: str) -> str:
    """Координата в виде градусов, минут и секунд: 37° 46' 29.64" N."""
    absolute = abs(value)
    degrees = int(absolute)
    minutes = int((absolute - degrees) * 60)
    seconds = ((absolute - degrees) * 60 - minutes) * 60
    if axis == "lat":
        direction = "N" if value >= 0 else "S"
    elif axis == "lon":
        direction = "E" if value >= 0 else "W"
    else:
        raise ValueError(f"Unknown axis: {axis}")
    return f"{degrees}° {minutes}' {seconds:.2f}\" {direction}"
