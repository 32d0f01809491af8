"""
Places service composing retrieval, recommendation and preference analysis.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..models.core import Insights, Place, PreferenceAnalysis, Recommendation, ScoredCandidate, Visit
from ..models.requests import (ListPlacesRequest, NearbyRequest, PlaceInput, RecommendationRequest, RelateRequest,
                               SearchRequest, SentimentRequest, SimilarRequest, VisitInput, parse_request)
from ..utils.config import config
from ..utils.health_check import get_health_status
from ..utils.logging_config import get_logger
from .preference_analysis import PreferenceAnalyzer
from .recommendation import RecommendationEngine
from .retrieval import RetrievalOrchestrator, build_orchestrator

logger = get_logger(__name__)

INSIGHT_RECOMMENDATIONS = 5

Params = Optional[Dict[str, Any]]


class PlacesService:
    """Entry point for place queries, recommendations and writes.

    Parameters arrive as plain dicts and are validated into request models;
    malformed input raises RequestValidationError. Backend failures never
    reach the caller.
    """

    def __init__(self,
                 orchestrator: Optional[RetrievalOrchestrator] = None,
                 engine: Optional[RecommendationEngine] = None,
                 analyzer: Optional[PreferenceAnalyzer] = None):
        """Initialize the places service, building backends from configuration when none are given."""
        self.orchestrator = orchestrator or build_orchestrator(config)
        self.engine = engine or RecommendationEngine(self.orchestrator.config.default_radius_meters)
        self.analyzer = analyzer or PreferenceAnalyzer()

        logger.info('Initialized PlacesService')

    # Queries

    def get_saved_places(self, params: Params = None) -> List[Place]:
        """List saved places, optionally by category and around a location."""
        request = parse_request(ListPlacesRequest, params)
        return self.orchestrator.list_places(request)

    def search_saved_places(self, params: Params = None) -> List[ScoredCandidate]:
        """Search saved places by free text and filters.

        Args:
            params: query, category, location, sentiment, min_rating, limit

        Returns:
            List of ScoredCandidate; similarity is set for vector hits only
        """
        request = parse_request(SearchRequest, params)
        results = self.orchestrator.search(request)
        logger.debug(f'Search for {request.query!r} returned {len(results)} places')
        return results

    def find_nearby_places(self, params: Params) -> List[Tuple[Place, float]]:
        """Find places around lat/lng within radius meters, nearest first."""
        request = parse_request(NearbyRequest, params)
        return self.orchestrator.nearby(request)

    def find_similar_places(self, place_id: str, limit: int = 10) -> List[ScoredCandidate]:
        request = parse_request(SimilarRequest, {'place_id': place_id, 'limit': limit})
        return self.orchestrator.similar(request.place_id, request.limit)

    def find_co_visited_places(self, place_id: str, limit: int = 10) -> List[Place]:
        request = parse_request(SimilarRequest, {'place_id': place_id, 'limit': limit})
        return self.orchestrator.co_visited(request.place_id, request.limit)

    def get_places_by_sentiment(self, params: Params) -> List[Place]:
        request = parse_request(SentimentRequest, params)
        return self.orchestrator.by_sentiment(request)

    def get_place(self, place_id: str) -> Optional[Place]:
        """Look a place up by id; None when unknown."""
        if not place_id:
            return None
        return self.orchestrator.get_place(place_id)

    def get_place_activity(self, place_id: str) -> List[Visit]:
        if not place_id:
            return []
        return self.orchestrator.place_activity(place_id)

    # Recommendations and analysis

    def get_recommendations(self, params: Params = None, now: Optional[datetime] = None) -> List[Recommendation]:
        """
        Recommend saved places for a mood, category or location.

        Args:
            params: mood, category, location, limit
            now: Reference time for recency (optional, uses current time if None)

        Returns:
            Recommendations, best first
        """
        request = parse_request(RecommendationRequest, params)
        candidates = self.orchestrator.list_places()
        return self.engine.recommend(candidates, request, now)

    def analyze_preferences(self, now: Optional[datetime] = None) -> PreferenceAnalysis:
        return self.analyzer.analyze(self.orchestrator.list_places(), now)

    def get_insights(self, now: Optional[datetime] = None) -> Insights:
        """
        Headline statistics over all saved places with a default set of recommendations.

        Args:
            now: Reference time for recency (optional, uses current time if None)

        Returns:
            Insights
        """
        places = self.orchestrator.list_places()
        insights = self.analyzer.insights(places, now)
        insights.recommendations = self.engine.recommend(places, RecommendationRequest(limit=INSIGHT_RECOMMENDATIONS), now)
        return insights

    # Writes

    def save_place(self, params: Params) -> Dict[str, bool]:
        """
        Save a place to every available backend.

        Args:
            params: Place fields, location as {lat, lng}

        Returns:
            Backend name to success flag
        """
        place = parse_request(PlaceInput, params).to_place()
        return self.orchestrator.save_place(place)

    def record_visit(self, place_id: str, params: Params) -> Dict[str, bool]:
        """Record a visit to a saved place."""
        if not place_id:
            return {}
        visit = parse_request(VisitInput, params).to_visit()
        return self.orchestrator.record_visit(place_id, visit)

    def relate_places(self, place_id: str, other_place_id: str, kind: str = 'SIMILAR') -> Dict[str, bool]:
        request = parse_request(RelateRequest, {'place_id': place_id, 'other_place_id': other_place_id, 'kind': kind})
        return self.orchestrator.relate(request.place_id, request.other_place_id, request.kind)

    def delete_place(self, place_id: str) -> Dict[str, bool]:
        if not place_id:
            return {}
        return self.orchestrator.delete(place_id)

    def health_status(self) -> Dict[str, Any]:
        return get_health_status(self.orchestrator)

    def close(self):
        self.orchestrator.close()
