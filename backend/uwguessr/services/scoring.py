from math import radians, sin, cos, sqrt, atan2, exp, floor

from ..models.game import Coordinate, Photo, RoundResult

# Earth's radius in meters
EARTH_RADIUS_M = 6_371_000.0

# Game balance
MAX_SCORE = 5000
DECAY_CONSTANT = 0.004
PERFECT_RADIUS_M = 30.0
MAX_DISTANCE_M = 1000.0


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        a, b: Coordinates in degrees

    Returns:
        Distance in meters
    """
    # Convert coordinates to radians
    lat1_rad = radians(a.lat)
    lon1_rad = radians(a.lng)
    lat2_rad = radians(b.lat)
    lon2_rad = radians(b.lng)

    # Haversine formula
    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    h = sin(dlat / 2)**2 + cos(lat1_rad) * cos(lat2_rad) * sin(dlon / 2)**2
    c = 2 * atan2(sqrt(h), sqrt(1 - h))

    return EARTH_RADIUS_M * c


def round_half_up(value: float) -> int:
    return int(floor(value + 0.5))


def calculate_score(distance_m: float) -> int:
    """
    Calculate score based on distance from actual location.

    Scoring system:
    - Within 30m: MAX_SCORE
    - 1km or more: 0
    - In between: MAX_SCORE * e^(-DECAY_CONSTANT * distance), rounded half up
      (3352 at 100m, 677 at 500m, 92 just inside 1km)

    Args:
        distance_m: Distance in meters

    Returns:
        Score (0 to MAX_SCORE)
    """
    if distance_m <= PERFECT_RADIUS_M:
        return MAX_SCORE
    if distance_m >= MAX_DISTANCE_M:
        return 0
    return round_half_up(MAX_SCORE * exp(-DECAY_CONSTANT * distance_m))


def build_round_result(
    round_number: int,
    photo: Photo,
    guess: Coordinate,
    time_spent_ms: int,
) -> RoundResult:
    """Score a guess against the photo's true location.

    The photo must have a location; callers check ``photo.has_location`` first.
    """
    actual = Coordinate(lat=photo.lat, lng=photo.lng)
    distance = haversine_distance(guess, actual)
    return RoundResult(
        round=round_number,
        photo=photo,
        user_guess=guess,
        actual_location=actual,
        distance=distance,
        score=calculate_score(distance),
        time_spent=max(0, time_spent_ms),
    )
