"""
Tiered retrieval over the vector index, the graph store and in-memory data.

Each capability walks an explicit list of tiers, richest first. A tier is only
listed when its backend passed the startup check; a failing or timed-out call
falls through to the next tier and is retried on the next request.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..models.core import Place, ScoredCandidate, Visit
from ..models.requests import ListPlacesRequest, LocationParam, NearbyRequest, SearchRequest, SentimentRequest
from ..utils.config import AppConfig, RetrievalConfig
from ..utils.geo import haversine_distance, within_radius
from ..utils.logging_config import get_logger
from ..utils.neptune_client import NeptuneClient
from ..utils.opensearch_client import OpenSearchClient
from .backends import (BackendCallFailed, BackendResult, BackendUnavailable, GraphBackend, GraphFilters, VectorBackend,
                       VectorFilters)
from .embedding import create_embedding_provider
from .sample_places import sample_places

logger = get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 20

Tier = Tuple[str, Callable[[], BackendResult]]


def _meets_rating(place: Place, min_rating: Optional[float]) -> bool:
    if min_rating is None:
        return True
    return any(r is not None and r >= min_rating for r in (place.user_rating, place.rating))


def _nearby_key(item: Tuple[float, Place]):
    distance, place = item
    return (distance, -(place.user_rating or 0.0))


def _rating_key(place: Place):
    return (place.user_rating is not None, place.user_rating or 0.0, place.rating is not None, place.rating or 0.0)


class RetrievalOrchestrator:
    """Select the richest available backend per capability and degrade in order."""

    def __init__(self,
                 embedder,
                 config: RetrievalConfig,
                 vector: Optional[VectorBackend] = None,
                 graph: Optional[GraphBackend] = None,
                 sample_loader: Callable[[], List[Place]] = sample_places,
                 max_workers: int = 4):
        """
        Initialize the orchestrator with already-checked backends.

        Args:
            embedder: Embedding provider with embed() and embed_place()
            config: RetrievalConfig instance
            vector: Vector backend, None when unavailable
            graph: Graph backend, None when unavailable
            sample_loader: Source of the static place set served without a graph store
            max_workers: Size of the pool bounding backend calls
        """
        self.embedder = embedder
        self.config = config
        self.vector = vector
        self.graph = graph
        self.sample_loader = sample_loader
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='placegraph-backend')

    # Call plumbing

    def _call(self, backend: str, operation: str, fn: Callable, *args) -> BackendResult:
        """Run one backend call bounded by the configured timeout."""
        future = self._executor.submit(fn, *args)
        try:
            return BackendResult.success(future.result(timeout=self.config.call_timeout))
        except FutureTimeoutError:
            future.cancel()
            error = BackendCallFailed(backend, operation, f'timed out after {self.config.call_timeout}s', timed_out=True)
        except Exception as e:
            error = BackendCallFailed(backend, operation, str(e))

        logger.warning(f'Backend call failed: {error}')
        return BackendResult.failure(error)

    def _run_tiers(self, capability: str, tiers: Sequence[Tier]):
        """Return the value of the first tier that succeeds."""
        for name, attempt in tiers:
            result = attempt()
            if result.ok:
                logger.debug(f'{capability} served by {name} tier')
                return result.value
            logger.warning(f'{capability}: {name} tier unavailable, falling through ({result.error.reason})')

        logger.error(f'{capability}: no tier could answer')
        return []

    def _memory(self, fn: Callable, *args) -> BackendResult:
        return BackendResult.success(fn(*args))

    def _radius(self, location: Optional[LocationParam]) -> Optional[float]:
        if location is None:
            return None
        return location.radius or self.config.default_radius_meters

    # Listing

    def list_places(self, request: Optional[ListPlacesRequest] = None) -> List[Place]:
        """
        List the user's places.

        Args:
            request: Optional category, location and limit

        Returns:
            List of Place objects
        """
        request = request or ListPlacesRequest()
        tiers: List[Tier] = []
        if self.graph is not None:
            tiers.append(('graph', lambda: self._graph_listing(request)))
        tiers.append(('sample', lambda: self._memory(self._sample_listing, request)))
        return self._run_tiers('list_places', tiers)

    def _graph_listing(self, request: ListPlacesRequest) -> BackendResult:
        if request.location is None:
            filters = GraphFilters(category=request.category, limit=request.limit)
            return self._call('graph', 'query_user_places', self.graph.query_user_places, self.config.user_id, filters)

        radius_km = self._radius(request.location) / 1000
        limit = request.limit or self.config.nearby_scan_limit
        result = self._call('graph', 'query_nearby', self.graph.query_nearby, request.location.lat, request.location.lng,
                            radius_km, limit)
        if result.ok and request.category:
            result = BackendResult.success([p for p in result.value if p.category == request.category])
        return result

    def _sample_listing(self, request: ListPlacesRequest) -> List[Place]:
        places = self.sample_loader()
        if request.category:
            places = [p for p in places if p.category == request.category]
        if request.location is not None:
            radius = self._radius(request.location)
            places = [
                p for p in places
                if within_radius(request.location.lat, request.location.lng, p.location.lat, p.location.lng, radius)
            ]
        if request.limit:
            places = places[:request.limit]
        return places

    # Search

    def search(self, request: SearchRequest) -> List[ScoredCandidate]:
        """
        Free-text search with structured filters.

        Vector hits carry their similarity and are ordered by it; hits below
        the configured threshold are dropped.

        Args:
            request: Validated search request

        Returns:
            List of ScoredCandidate objects
        """
        tiers: List[Tier] = []
        if self.vector is not None and request.query:
            tiers.append(('vector', lambda: self._vector_search(request)))
        if self.graph is not None:
            tiers.append(('graph', lambda: self._graph_search(request)))
        tiers.append(('memory', lambda: self._memory(self._memory_search, request)))
        return self._run_tiers('search', tiers)

    def _vector_search(self, request: SearchRequest) -> BackendResult:
        filters = VectorFilters(category=request.category, sentiment=request.sentiment, min_rating=request.min_rating)
        if request.location is not None:
            filters.lat = request.location.lat
            filters.lng = request.location.lng
            filters.radius_meters = self._radius(request.location)

        vector = self.embedder.embed(request.query)
        limit = request.limit or DEFAULT_SEARCH_LIMIT
        result = self._call('vector', 'search', self.vector.search, vector, filters, limit, self.config.score_threshold)
        if not result.ok:
            return result
        return BackendResult.success(self._to_candidates(result.value, self.config.score_threshold))

    @staticmethod
    def _to_candidates(hits, threshold: float) -> List[ScoredCandidate]:
        candidates = [
            ScoredCandidate(place=Place.from_payload(payload), similarity=score) for payload, score in hits
            if score >= threshold
        ]
        candidates.sort(key=lambda c: c.similarity, reverse=True)
        return candidates

    def _graph_search(self, request: SearchRequest) -> BackendResult:
        filters = GraphFilters(category=request.category,
                               sentiment=request.sentiment,
                               min_rating=request.min_rating,
                               text=request.query,
                               limit=None if request.location else request.limit)
        result = self._call('graph', 'query_user_places', self.graph.query_user_places, self.config.user_id, filters)
        if not result.ok:
            return result

        places = self._within(result.value, request.location)
        if request.limit:
            places = places[:request.limit]
        return BackendResult.success([ScoredCandidate(place=p) for p in places])

    def _memory_search(self, request: SearchRequest) -> List[ScoredCandidate]:
        places = self.list_places(ListPlacesRequest(category=request.category))
        if request.query:
            places = [p for p in places if p.matches_text(request.query)]
        if request.sentiment:
            places = [p for p in places if p.sentiment == request.sentiment]
        places = [p for p in places if _meets_rating(p, request.min_rating)]
        places = self._within(places, request.location)
        if request.limit:
            places = places[:request.limit]
        return [ScoredCandidate(place=p) for p in places]

    def _within(self, places: List[Place], location: Optional[LocationParam]) -> List[Place]:
        if location is None:
            return places
        radius = self._radius(location)
        return [p for p in places if within_radius(location.lat, location.lng, p.location.lat, p.location.lng, radius)]

    # Nearby

    def nearby(self, request: NearbyRequest) -> List[Tuple[Place, float]]:
        """
        Find places around a coordinate.

        Args:
            request: Validated nearby request

        Returns:
            (place, distance in meters) pairs, nearest first, ties by user rating
        """
        radius = request.radius or self.config.default_radius_meters
        tiers: List[Tier] = []
        if self.graph is not None:
            tiers.append(('graph-native', lambda: self._graph_nearby(request, radius)))
            tiers.append(('graph-scan', lambda: self._graph_scan_nearby(request, radius)))
        tiers.append(('memory', lambda: self._memory(self._rank_nearby, self.list_places(), request, radius)))
        return self._run_tiers('nearby', tiers)

    def _graph_nearby(self, request: NearbyRequest, radius: float) -> BackendResult:
        result = self._call('graph', 'query_nearby', self.graph.query_nearby, request.lat, request.lng, radius / 1000,
                            request.limit)
        if not result.ok:
            return result
        # Rank again in meters so every tier reports the same distance
        return BackendResult.success(self._rank_nearby(result.value, request, radius))

    def _graph_scan_nearby(self, request: NearbyRequest, radius: float) -> BackendResult:
        result = self._call('graph', 'scan_places', self.graph.scan_places, self.config.nearby_scan_limit)
        if not result.ok:
            return result
        return BackendResult.success(self._rank_nearby(result.value, request, radius))

    @staticmethod
    def _rank_nearby(places: Sequence[Place], request: NearbyRequest, radius: float) -> List[Tuple[Place, float]]:
        ranked = []
        for place in places:
            distance = haversine_distance(request.lat, request.lng, place.location.lat, place.location.lng)
            if distance <= radius:
                ranked.append((distance, place))
        ranked.sort(key=_nearby_key)
        return [(place, distance) for distance, place in ranked[:request.limit]]

    # Similar and co-visited

    def similar(self, place_id: str, limit: int) -> List[ScoredCandidate]:
        """
        Find places similar to a place.

        Args:
            place_id: Seed place
            limit: Maximum number of places

        Returns:
            List of ScoredCandidate objects, never including the seed
        """
        tiers: List[Tier] = []
        if self.vector is not None:
            tiers.append(('vector', lambda: self._vector_similar(place_id, limit)))
        if self.graph is not None:
            tiers.append(('graph', lambda: self._graph_similar(place_id, limit)))
        tiers.append(('memory', lambda: self._memory(self._memory_similar, place_id, limit)))
        return self._run_tiers('similar', tiers)

    def _vector_similar(self, place_id: str, limit: int) -> BackendResult:
        result = self._call('vector', 'retrieve_vector', self.vector.retrieve_vector, place_id)
        if not result.ok:
            return result
        if result.value is None:
            return BackendResult.failure(BackendCallFailed('vector', 'retrieve_vector', f'place {place_id} is not indexed'))

        threshold = self.config.similar_score_threshold
        filters = VectorFilters(exclude_ids=[place_id])
        result = self._call('vector', 'search', self.vector.search, result.value, filters, limit, threshold)
        if not result.ok:
            return result
        candidates = [c for c in self._to_candidates(result.value, threshold) if c.place.place_id != place_id]
        return BackendResult.success(candidates)

    def _graph_similar(self, place_id: str, limit: int) -> BackendResult:
        result = self._call('graph', 'query_related', self.graph.query_related, place_id, 'SIMILAR', limit)
        if not result.ok:
            return result
        return BackendResult.success([ScoredCandidate(place=p) for p in result.value])

    def _memory_similar(self, place_id: str, limit: int) -> List[ScoredCandidate]:
        places = self.list_places()
        seed = next((p for p in places if p.place_id == place_id), None)
        if seed is None or not seed.category:
            return []
        matches = [p for p in places if p.category == seed.category and p.place_id != place_id]
        matches.sort(key=_rating_key, reverse=True)
        return [ScoredCandidate(place=p) for p in matches[:limit]]

    def co_visited(self, place_id: str, limit: int) -> List[Place]:
        """Places visited by users who also visited place_id; empty without a graph store."""
        tiers: List[Tier] = []
        if self.graph is not None:
            tiers.append(('graph', lambda: self._call('graph', 'query_co_visited', self.graph.query_co_visited, place_id,
                                                      limit)))
        tiers.append(('memory', lambda: BackendResult.success([])))
        return self._run_tiers('co_visited', tiers)

    # Sentiment listing

    def by_sentiment(self, request: SentimentRequest) -> List[Place]:
        """
        List places with a given sentiment, optionally above a rating.

        Args:
            request: Validated sentiment request

        Returns:
            List of Place objects
        """
        tiers: List[Tier] = []
        if self.graph is not None:
            filters = GraphFilters(sentiment=request.sentiment, min_rating=request.min_rating, limit=request.limit)
            tiers.append(('graph', lambda: self._call('graph', 'query_user_places', self.graph.query_user_places,
                                                      self.config.user_id, filters)))
        tiers.append(('sample', lambda: self._memory(self._sample_by_sentiment, request)))
        return self._run_tiers('by_sentiment', tiers)

    def _sample_by_sentiment(self, request: SentimentRequest) -> List[Place]:
        places = [p for p in self.sample_loader() if p.sentiment == request.sentiment]
        places = [p for p in places if _meets_rating(p, request.min_rating)]
        if request.limit:
            places = places[:request.limit]
        return places

    # Lookups

    def get_place(self, place_id: str) -> Optional[Place]:
        """
        Look a place up by id.

        Returns:
            Place, or None when no tier knows it
        """
        tiers: List[Tier] = []
        if self.graph is not None:
            tiers.append(('graph', lambda: self._call('graph', 'get_place', self.graph.get_place, place_id)))
        tiers.append(('sample', lambda: self._memory(self._sample_place, place_id)))
        return self._run_tiers('get_place', tiers) or None

    def _sample_place(self, place_id: str) -> Optional[Place]:
        return next((p for p in self.sample_loader() if p.place_id == place_id), None)

    def place_activity(self, place_id: str) -> List[Visit]:
        """The user's visits to a place, newest first; empty when unknown."""
        tiers: List[Tier] = []
        if self.graph is not None:
            tiers.append(('graph', lambda: self._call('graph', 'query_visits', self.graph.query_visits,
                                                      self.config.user_id, place_id)))
        tiers.append(('memory', lambda: BackendResult.success([])))
        return self._run_tiers('place_activity', tiers)

    # Writes

    def save_place(self, place: Place) -> Dict[str, bool]:
        """
        Store a place in every available backend.

        Args:
            place: Place to store

        Returns:
            Backend name to success flag
        """
        outcome = {}
        if self.vector is not None:
            vector = self.embedder.embed_place(place)
            result = self._call('vector', 'upsert', self.vector.upsert, place.place_id, vector, place.to_payload())
            outcome['vector'] = result.ok and bool(result.value)
        if self.graph is not None:
            result = self._call('graph', 'upsert_place', self.graph.upsert_place, place)
            outcome['graph'] = result.ok and bool(result.value)

        logger.info(f'Saved place {place.place_id}: {outcome}')
        return outcome

    def record_visit(self, place_id: str, visit: Visit) -> Dict[str, bool]:
        """
        Record a visit in the graph store and refresh the indexed document.

        Args:
            place_id: Visited place
            visit: Visit details

        Returns:
            Backend name to success flag
        """
        outcome = {}
        if self.graph is None:
            logger.warning(f'Visit to {place_id} not recorded: no graph store available')
            return outcome

        result = self._call('graph', 'record_visit', self.graph.record_visit, self.config.user_id, place_id, visit)
        outcome['graph'] = result.ok and bool(result.value)

        if outcome['graph'] and self.vector is not None:
            # Visit count and sentiment live in the indexed payload too
            lookup = self._call('graph', 'get_place', self.graph.get_place, place_id)
            if lookup.ok and lookup.value is not None:
                place = lookup.value
                result = self._call('vector', 'upsert', self.vector.upsert, place_id, self.embedder.embed_place(place),
                                    place.to_payload())
                outcome['vector'] = result.ok and bool(result.value)
            else:
                outcome['vector'] = False

        return outcome

    def relate(self, place_id: str, other_place_id: str, kind: str) -> Dict[str, bool]:
        """Link two places in the graph store."""
        outcome = {}
        if self.graph is not None:
            result = self._call('graph', 'relate', self.graph.relate, place_id, other_place_id, kind)
            outcome['graph'] = result.ok and bool(result.value)
        return outcome

    def delete(self, place_id: str) -> Dict[str, bool]:
        """Remove a place from every available backend."""
        outcome = {}
        if self.vector is not None:
            result = self._call('vector', 'delete', self.vector.delete, place_id)
            outcome['vector'] = result.ok and bool(result.value)
        if self.graph is not None:
            result = self._call('graph', 'delete_place', self.graph.delete_place, place_id)
            outcome['graph'] = result.ok and bool(result.value)

        logger.info(f'Deleted place {place_id}: {outcome}')
        return outcome

    def backends(self) -> Dict[str, object]:
        """Enabled backends by name."""
        enabled = {}
        if self.vector is not None:
            enabled['vector'] = self.vector
        if self.graph is not None:
            enabled['graph'] = self.graph
        return enabled

    def close(self):
        """Release the call pool and backend connections."""
        self._executor.shutdown(wait=False)
        close = getattr(self.graph, 'close', None)
        if close is not None:
            close()


def _start_vector(config: AppConfig) -> OpenSearchClient:
    if not config.opensearch.enabled:
        raise BackendUnavailable('vector', 'OPENSEARCH_ENDPOINT not set')

    client = OpenSearchClient(config.opensearch)
    if client.create_index_if_not_exists() == 'failed':
        raise BackendUnavailable('vector', f'index {config.opensearch.index_name} could not be created')
    if not client.health_check():
        raise BackendUnavailable('vector', 'health check failed')
    return client


def _start_graph(config: AppConfig) -> NeptuneClient:
    if not config.neptune.enabled:
        raise BackendUnavailable('graph', 'NEPTUNE_ENDPOINT not set')

    client = NeptuneClient(config.neptune)
    try:
        healthy = client.health_check()
    except Exception as e:
        client.close()
        raise BackendUnavailable('graph', f'health check failed: {e}')
    if not healthy:
        client.close()
        raise BackendUnavailable('graph', 'health check failed')
    return client


def build_orchestrator(config: AppConfig) -> RetrievalOrchestrator:
    """
    Construct the backends selected by configuration and wire the orchestrator.

    The vector and graph startup checks run concurrently. A backend that is not
    configured or fails its check stays disabled for the process lifetime.

    Args:
        config: AppConfig instance

    Returns:
        RetrievalOrchestrator with only the healthy backends
    """
    embedder = create_embedding_provider(config.embedding)

    started = {}
    pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix='placegraph-startup')
    futures = {'vector': pool.submit(_start_vector, config), 'graph': pool.submit(_start_graph, config)}
    for name, future in futures.items():
        try:
            started[name] = future.result(timeout=config.retrieval.call_timeout)
        except BackendUnavailable as e:
            logger.info(f'Backend disabled: {e}')
        except FutureTimeoutError:
            logger.warning(f'{name} backend disabled: startup check timed out')
        except Exception as e:
            logger.warning(f'{name} backend disabled: startup check failed: {e}')
    pool.shutdown(wait=False)

    logger.info(f'Retrieval backends enabled: {sorted(started) or "none"}')
    return RetrievalOrchestrator(embedder,
                                 config.retrieval,
                                 vector=started.get('vector'),
                                 graph=started.get('graph'))
