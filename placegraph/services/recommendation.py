"""
Heuristic scoring and ranking of candidate places.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ..models.core import Place, Recommendation, ScoreBreakdown, ScoredCandidate
from ..models.requests import RecommendationRequest
from ..utils.geo import DEFAULT_RADIUS_METERS, haversine_distance, within_radius
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import days_since

logger = get_logger(__name__)

MOOD_CATEGORIES: Dict[str, List[str]] = {
    'relaxed': ['beach', 'park', 'spa', 'cafe', 'library'],
    'adventurous': ['hiking', 'outdoor', 'sports', 'adventure'],
    'social': ['restaurant', 'bar', 'cafe', 'entertainment', 'nightlife'],
    'cultural': ['museum', 'gallery', 'theater', 'landmark', 'historic'],
    'romantic': ['restaurant', 'park', 'beach', 'viewpoint', 'cafe'],
    'active': ['gym', 'sports', 'hiking', 'outdoor', 'fitness'],
    'quiet': ['library', 'park', 'cafe', 'museum', 'gallery'],
    'energetic': ['nightlife', 'sports', 'entertainment', 'festival'],
}

MOOD_CATEGORY_SCORE = 30
MOOD_TAG_SCORE = 5
MOOD_UPBEAT_SCORE = 10
MOOD_BASE_SCORE = 5
MOOD_CAP = 50


def mood_score(place: Place, mood: str) -> float:
    """Score how well a place fits a mood, from MOOD_BASE_SCORE up to MOOD_CAP."""
    mood_lower = mood.lower()
    keywords = MOOD_CATEGORIES.get(mood_lower, [])
    score = 0

    if place.category and place.category.lower() in keywords:
        score += MOOD_CATEGORY_SCORE

    matching_tags = [tag for tag in place.tags if any(k in tag.lower() for k in keywords)]
    score += len(matching_tags) * MOOD_TAG_SCORE

    if ('positive' in mood_lower or 'happy' in mood_lower) and place.sentiment == 'positive':
        score += MOOD_UPBEAT_SCORE

    if score == 0:
        score = MOOD_BASE_SCORE

    return min(score, MOOD_CAP)


def rating_score(place: Place) -> float:
    return place.effective_rating * 6


def visit_score(place: Place) -> float:
    if place.visit_count > 3:
        return 25
    if place.visit_count > 1:
        return 15
    if place.visit_count == 1:
        return 5
    return 0


def sentiment_score(place: Place) -> float:
    if place.sentiment == 'positive':
        return 20
    if place.sentiment == 'neutral':
        return 10
    return 0


def recency_score(place: Place, now: datetime) -> float:
    if place.last_visited is None:
        return 0
    days = days_since(place.last_visited, now)
    if days < 30:
        return 25
    if days < 90:
        return 15
    if days < 180:
        return 5
    return 0


class RecommendationEngine:
    """Score candidates against a request and rank them.

    The engine is stateless; candidates are passed on every call and never
    modified.
    """

    def __init__(self, default_radius_meters: float = DEFAULT_RADIUS_METERS):
        self.default_radius_meters = default_radius_meters

    def score(self, place: Place, mood: Optional[str] = None, now: Optional[datetime] = None) -> ScoreBreakdown:
        """
        Compute the additive score of a single place.

        Args:
            place: Candidate place
            mood: Optional mood label
            now: Reference time for recency (optional, uses current time if None)

        Returns:
            ScoreBreakdown with one entry per component
        """
        now = now or datetime.now()
        return ScoreBreakdown(mood=mood_score(place, mood) if mood else 0,
                              rating=rating_score(place),
                              visit=visit_score(place),
                              sentiment=sentiment_score(place),
                              recency=recency_score(place, now))

    def _filter(self, candidates: Sequence[Place], request: RecommendationRequest) -> List[Place]:
        places = list(candidates)
        if request.category:
            places = [p for p in places if p.category == request.category]
        if request.location:
            radius = request.location.radius or self.default_radius_meters
            places = [
                p for p in places
                if within_radius(request.location.lat, request.location.lng, p.location.lat, p.location.lng, radius)
            ]
        return places

    def rank(self, candidates: Sequence[Place], request: RecommendationRequest,
             now: Optional[datetime] = None) -> List[ScoredCandidate]:
        """
        Filter and score candidates, best first.

        Ties keep the input order.

        Args:
            candidates: Places to consider
            request: Validated recommendation request
            now: Reference time for recency (optional, uses current time if None)

        Returns:
            All surviving candidates as ScoredCandidate objects
        """
        now = now or datetime.now()
        scored = [ScoredCandidate(place=p, score=self.score(p, request.mood, now)) for p in self._filter(candidates, request)]
        # list.sort is stable
        scored.sort(key=lambda c: c.score.total, reverse=True)
        return scored

    def recommend(self, candidates: Sequence[Place], request: RecommendationRequest,
                  now: Optional[datetime] = None) -> List[Recommendation]:
        """
        Recommend places for a request.

        Args:
            candidates: Places to consider
            request: Validated recommendation request
            now: Reference time for recency (optional, uses current time if None)

        Returns:
            Up to request.limit recommendations with reasons, best first
        """
        ranked = self.rank(candidates, request, now)[:request.limit]
        recommendations = [self._explain(candidate, request) for candidate in ranked]
        logger.debug(f'Recommended {len(recommendations)} of {len(candidates)} candidates')
        return recommendations

    def _explain(self, candidate: ScoredCandidate, request: RecommendationRequest) -> Recommendation:
        place = candidate.place
        score = candidate.score
        reasons = []
        mood_match = None
        category_match = None
        location_match = False

        if score.mood > 0:
            reasons.append(f'Matches your {request.mood} mood preferences')
            mood_match = request.mood

        if score.rating > 0:
            reasons.append(f'Highly rated ({place.effective_rating:.1f}/5)')

        if score.visit > 0:
            if place.visit_count > 1:
                reasons.append(f"You've visited {place.visit_count} times")
            else:
                reasons.append('Recently discovered')

        if place.sentiment == 'positive':
            reasons.append('Positive past experience')
        elif place.sentiment == 'neutral':
            reasons.append('Mixed past experience')

        if request.category and place.category == request.category:
            reasons.append(f'Matches your interest in {request.category}')
            category_match = request.category

        if request.location:
            distance = haversine_distance(request.location.lat, request.location.lng, place.location.lat, place.location.lng)
            if distance <= (request.location.radius or self.default_radius_meters):
                reasons.append(f'Close to your location ({round(distance / 1000)}km away)')
                location_match = True

        confidence = round(min(max(score.total / 100, 0.0), 1.0), 2)

        return Recommendation(place=place,
                              score=score,
                              confidence=confidence,
                              reasons=reasons,
                              mood_match=mood_match,
                              category_match=category_match,
                              location_match=location_match)
