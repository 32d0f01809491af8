from datetime import datetime

import pytest

from placegraph.models.requests import (NearbyRequest, PlaceInput, RecommendationRequest, RelateRequest,
                                        RequestValidationError, SearchRequest, VisitInput, parse_request)


def _fields(exc_info) -> set:
    return {e['field'] for e in exc_info.value.errors}


def test_nested_field_paths_are_reported() -> None:
    with pytest.raises(RequestValidationError) as exc_info:
        parse_request(SearchRequest, {'query': 'beach', 'location': {'lat': 95, 'lng': 10}})
    assert _fields(exc_info) == {'location.lat'}


def test_every_offending_field_is_reported() -> None:
    with pytest.raises(RequestValidationError) as exc_info:
        parse_request(NearbyRequest, {'lat': -100, 'lng': 200, 'radius': -5})
    assert _fields(exc_info) == {'lat', 'lng', 'radius'}
    assert all(e['message'] for e in exc_info.value.errors)


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(RequestValidationError) as exc_info:
        parse_request(RecommendationRequest, {'mood': 'relaxed', 'vibe': 'chill'})
    assert _fields(exc_info) == {'vibe'}


def test_sentiment_must_be_known() -> None:
    with pytest.raises(RequestValidationError) as exc_info:
        parse_request(SearchRequest, {'sentiment': 'ecstatic'})
    assert _fields(exc_info) == {'sentiment'}


def test_none_values_count_as_absent() -> None:
    request = parse_request(RecommendationRequest, {'mood': None, 'category': None, 'limit': None})
    assert request.mood is None
    assert request.limit == 10


def test_missing_required_fields() -> None:
    with pytest.raises(RequestValidationError) as exc_info:
        parse_request(RelateRequest, {'place_id': 'a', 'kind': 'FRIENDS'})
    assert _fields(exc_info) == {'other_place_id', 'kind'}


def test_place_input_builds_place() -> None:
    place = parse_request(PlaceInput, {
        'place_id': 'p1',
        'name': 'Bondi Beach',
        'location': {'lat': -33.89, 'lng': 151.27},
        'tags': ['surf', 'sand', 'surf'],
        'last_visited': '2024-01-10T09:00:00',
        'sentiment': 'positive'
    }).to_place()

    assert place.tags == ['surf', 'sand']
    assert place.location.lat == -33.89
    assert place.last_visited == datetime(2024, 1, 10, 9, 0)
    assert place.visit_count == 0


def test_visit_input_builds_visit() -> None:
    visit = parse_request(VisitInput, {'date': '2024-01-10', 'duration': 90, 'companions': ['Sam']}).to_visit()
    assert visit.date == datetime(2024, 1, 10)
    assert visit.duration == 90
    assert visit.companions == ['Sam']


def test_error_message_names_the_fields() -> None:
    with pytest.raises(RequestValidationError, match='location.lng'):
        parse_request(PlaceInput, {'place_id': 'p', 'name': 'n', 'location': {'lat': 0, 'lng': 500}})
