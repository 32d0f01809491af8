import pytest

from placegraph.utils.geo import haversine_distance, within_radius

SYDNEY = (-33.8688, 151.2093)
BONDI = (-33.8915, 151.2767)
LONDON = (51.5074, -0.1278)
PARIS = (48.8566, 2.3522)


def test_distance_to_self_is_zero() -> None:
    assert haversine_distance(*SYDNEY, *SYDNEY) == 0


@pytest.mark.parametrize('a, b', [(SYDNEY, BONDI), (LONDON, PARIS), ((0.0, 179.9), (0.0, -179.9))])
def test_distance_is_symmetric(a, b) -> None:
    assert haversine_distance(*a, *b) == pytest.approx(haversine_distance(*b, *a), abs=1e-6)


def test_known_city_distance() -> None:
    assert haversine_distance(*LONDON, *PARIS) == pytest.approx(343_500, rel=0.01)


def test_within_radius() -> None:
    distance = haversine_distance(*SYDNEY, *BONDI)
    assert within_radius(*SYDNEY, *BONDI, distance + 1)
    assert not within_radius(*SYDNEY, *BONDI, distance - 1)
