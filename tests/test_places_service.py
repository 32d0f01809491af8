import pytest
from conftest import FakeGraph, FakeVector, make_place

from placegraph.models.requests import RequestValidationError
from placegraph.services.places import PlacesService
from placegraph.utils.health_check import check_health


@pytest.fixture
def service(make_orchestrator):
    return PlacesService(orchestrator=make_orchestrator())


def test_saved_places_fall_back_to_samples(service) -> None:
    assert len(service.get_saved_places()) == 10
    assert [p.name for p in service.get_saved_places({'category': 'Bar'})] == ['Opera Bar']


def test_search_validates_parameters(service) -> None:
    with pytest.raises(RequestValidationError) as exc_info:
        service.search_saved_places({'query': 'beach', 'location': {'lat': 'north', 'lng': 0}})
    assert exc_info.value.errors[0]['field'] == 'location.lat'


def test_search_without_backends(service) -> None:
    results = service.search_saved_places({'query': 'BEACH'})
    assert {c.place.name for c in results} == {'Bondi Beach', 'Manly Beach'}


def test_nearby_returns_distances(service) -> None:
    results = service.find_nearby_places({'lat': -33.8568, 'lng': 151.2153, 'radius': 500})
    assert [p.name for p, _ in results] == ['Sydney Opera House', 'Opera Bar']
    assert results[1][1] > results[0][1]


def test_recommendations_over_listing(service, now) -> None:
    recommendations = service.get_recommendations({'mood': 'relaxed', 'category': 'Beach', 'limit': 1}, now)
    assert [r.place.name for r in recommendations] == ['Bondi Beach']
    assert 0 <= recommendations[0].confidence <= 1


def test_insights_include_recommendations(service, now) -> None:
    insights = service.get_insights(now)
    assert insights.total_places == 10
    assert len(insights.recommendations) == 5
    assert insights.to_dict()['recommendations'][0]['place']['place_id']


def test_analysis_over_samples(service, now) -> None:
    analysis = service.analyze_preferences(now)
    assert analysis.sentiment_distribution == {'positive': 8, 'negative': 1, 'neutral': 1}
    assert analysis.top_categories[0].name == 'Beach'


def test_unknown_place_is_not_an_error(service) -> None:
    assert service.get_place('missing') is None
    assert service.get_place('') is None
    assert service.get_place_activity('missing') == []
    assert service.find_similar_places('missing') == []
    assert service.find_co_visited_places('missing') == []


def test_sentiment_listing_validates(service) -> None:
    with pytest.raises(RequestValidationError):
        service.get_places_by_sentiment({'sentiment': 'furious'})
    assert [p.sentiment for p in service.get_places_by_sentiment({'sentiment': 'neutral'})] == ['neutral']


def test_write_paths(make_orchestrator) -> None:
    vector = FakeVector()
    graph = FakeGraph()
    service = PlacesService(orchestrator=make_orchestrator(vector=vector, graph=graph))

    saved = service.save_place({'place_id': 'p1', 'name': 'Corner Cafe', 'location': {'lat': -33.87, 'lng': 151.2}})
    visited = service.record_visit('p1', {'date': '2024-01-20T08:30:00', 'rating': 4})
    related = service.relate_places('p1', 'p2', 'NEAR')

    assert saved == {'vector': True, 'graph': True}
    assert visited == {'graph': True, 'vector': True}
    assert related == {'graph': True}
    assert service.get_place_activity('p1')[0].rating == 4
    assert service.delete_place('p1') == {'vector': True, 'graph': True}
    assert service.get_place('p1') is None


def test_relate_rejects_unknown_kind(service) -> None:
    with pytest.raises(RequestValidationError) as exc_info:
        service.relate_places('a', 'b', 'RIVALS')
    assert exc_info.value.errors[0]['field'] == 'kind'


def test_co_visited_from_graph(make_orchestrator) -> None:
    graph = FakeGraph([make_place('a'), make_place('b')])
    service = PlacesService(orchestrator=make_orchestrator(graph=graph))
    assert [p.place_id for p in service.find_co_visited_places('a')] == ['b']


def test_health_status_reports_disabled_backends(make_orchestrator) -> None:
    service = PlacesService(orchestrator=make_orchestrator(graph=FakeGraph()))

    status = service.health_status()

    assert status['embedding'] == {'enabled': True, 'healthy': True, 'provider': 'hash', 'dimension': 16}
    assert status['graph']['enabled'] and status['graph']['healthy']
    assert not status['vector']['enabled']


def test_check_health_ignores_disabled_backends(make_orchestrator) -> None:
    graph = FakeGraph()
    orchestrator = make_orchestrator(graph=graph)
    assert check_health(orchestrator)

    graph.health_check = lambda: False
    assert not check_health(orchestrator)
