import time
from datetime import datetime

import pytest

from placegraph.models.core import Location, Place
from placegraph.services.embedding import DeterministicHashEmbedding
from placegraph.services.retrieval import RetrievalOrchestrator
from placegraph.services.sample_places import sample_places
from placegraph.utils.config import RetrievalConfig
from placegraph.utils.geo import haversine_distance

NOW = datetime(2024, 2, 1, 12, 0)


class FakeVector:
    """In-process vector backend; hits are returned as configured."""

    def __init__(self, hits=None, stored=None):
        self.hits = hits or []
        self.stored = stored or {}
        self.fail_on = set()
        self.delay = 0.0
        self.calls = []

    def _enter(self, operation, *args):
        self.calls.append((operation, args))
        if self.delay:
            time.sleep(self.delay)
        if operation in self.fail_on:
            raise RuntimeError(f'{operation} exploded')

    def upsert(self, place_id, vector, payload):
        self._enter('upsert', place_id)
        self.stored[place_id] = vector
        return True

    def search(self, vector, filters, limit, score_threshold):
        self._enter('search', filters, limit, score_threshold)
        return [(p, s) for p, s in self.hits if p['place_id'] not in filters.exclude_ids][:limit]

    def delete(self, place_id):
        self._enter('delete', place_id)
        return self.stored.pop(place_id, None) is not None

    def retrieve_vector(self, place_id):
        self._enter('retrieve_vector', place_id)
        return self.stored.get(place_id)

    def health_check(self):
        return True


class FakeGraph:
    """In-process graph backend over a list of places."""

    def __init__(self, places=None):
        self.places = list(places or [])
        self.related = {}
        self.visits = {}
        self.fail_on = set()
        self.calls = []

    def _enter(self, operation, *args):
        self.calls.append((operation, args))
        if operation in self.fail_on:
            raise RuntimeError(f'{operation} exploded')

    def upsert_place(self, place):
        self._enter('upsert_place', place.place_id)
        self.places = [p for p in self.places if p.place_id != place.place_id] + [place]
        return True

    def record_visit(self, user_id, place_id, visit):
        self._enter('record_visit', user_id, place_id)
        self.visits.setdefault(place_id, []).append(visit)
        return True

    def query_user_places(self, user_id, filters):
        self._enter('query_user_places', user_id, filters)
        places = list(self.places)
        if filters.category:
            places = [p for p in places if p.category == filters.category]
        if filters.sentiment:
            places = [p for p in places if p.sentiment == filters.sentiment]
        if filters.text:
            places = [p for p in places if p.matches_text(filters.text)]
        if filters.limit:
            places = places[:filters.limit]
        return places

    def query_nearby(self, lat, lng, radius_km, limit):
        self._enter('query_nearby', lat, lng, radius_km, limit)
        places = [p for p in self.places if haversine_distance(lat, lng, p.location.lat, p.location.lng) <= radius_km * 1000]
        return places[:limit]

    def query_related(self, place_id, kind, limit):
        self._enter('query_related', place_id, kind)
        return self.related.get(place_id, [])[:limit]

    def scan_places(self, limit):
        self._enter('scan_places', limit)
        return self.places[:limit]

    def get_place(self, place_id):
        self._enter('get_place', place_id)
        return next((p for p in self.places if p.place_id == place_id), None)

    def query_visits(self, user_id, place_id):
        self._enter('query_visits', user_id, place_id)
        return list(self.visits.get(place_id, []))

    def relate(self, place_id, other_place_id, kind):
        self._enter('relate', place_id, other_place_id, kind)
        return True

    def query_co_visited(self, place_id, limit):
        self._enter('query_co_visited', place_id)
        return [p for p in self.places if p.place_id != place_id][:limit]

    def delete_place(self, place_id):
        self._enter('delete_place', place_id)
        self.places = [p for p in self.places if p.place_id != place_id]
        return True

    def health_check(self):
        return True


def make_place(place_id, **overrides) -> Place:
    fields = {
        'name': f'Place {place_id}',
        'address': '1 Test St, Sydney NSW 2000, Australia',
        'location': Location(lat=-33.8688, lng=151.2093),
    }
    fields.update(overrides)
    return Place(place_id=place_id, **fields)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def retrieval_config() -> RetrievalConfig:
    return RetrievalConfig(user_id='test-user',
                           call_timeout=0.5,
                           default_radius_meters=5000,
                           score_threshold=0.3,
                           similar_score_threshold=0.5,
                           nearby_scan_limit=1000)


@pytest.fixture
def embedder():
    return DeterministicHashEmbedding(16)


@pytest.fixture
def fake_vector():
    return FakeVector()


@pytest.fixture
def fake_graph():
    return FakeGraph(sample_places())


@pytest.fixture
def make_orchestrator(embedder, retrieval_config):
    created = []

    def _make(vector=None, graph=None):
        orchestrator = RetrievalOrchestrator(embedder, retrieval_config, vector=vector, graph=graph)
        created.append(orchestrator)
        return orchestrator

    try:
        yield _make
    finally:
        for orchestrator in created:
            orchestrator.close()
