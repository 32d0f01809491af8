"""
Core data models for the places intelligence layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..utils.timestamp_utils import parse_datetime, to_iso_str

SENTIMENTS = ('positive', 'negative', 'neutral')
RELATION_KINDS = ('SIMILAR', 'NEAR', 'SAME_CATEGORY')


@dataclass
class Location:
    """Geographic coordinate in degrees."""
    lat: float
    lng: float


@dataclass
class Place:
    """A place saved by the user.

    place_id is issued by the places provider and is unique within the
    owning user's scope. tags has set semantics; order is irrelevant.
    """
    place_id: str
    name: str
    address: str
    location: Location
    category: Optional[str] = None
    rating: Optional[float] = None  # Provider-sourced
    user_rating: Optional[float] = None  # Self-reported, 0-5
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    sentiment: Optional[str] = None
    last_visited: Optional[datetime] = None
    visit_count: int = 0

    @property
    def effective_rating(self) -> float:
        """Self-reported rating if present, else provider rating, else 0."""
        if self.user_rating is not None:
            return self.user_rating
        if self.rating is not None:
            return self.rating
        return 0.0

    def matches_text(self, query: str) -> bool:
        """Case-insensitive substring match over name, address, tags and notes."""
        needle = query.lower()
        if needle in self.name.lower() or needle in self.address.lower():
            return True
        if any(needle in tag.lower() for tag in self.tags):
            return True
        return bool(self.notes) and needle in self.notes.lower()

    def to_payload(self) -> Dict[str, Any]:
        """Flatten into the document stored by the vector and graph backends."""
        return {
            'place_id': self.place_id,
            'name': self.name,
            'address': self.address,
            'category': self.category,
            'rating': self.rating,
            'user_rating': self.user_rating,
            'latitude': self.location.lat,
            'longitude': self.location.lng,
            'tags': list(self.tags),
            'notes': self.notes,
            'sentiment': self.sentiment,
            'last_visited': to_iso_str(self.last_visited),
            'visit_count': self.visit_count,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'Place':
        """Rebuild a Place from a stored backend document."""
        rating = payload.get('rating')
        user_rating = payload.get('user_rating')
        return cls(place_id=payload['place_id'],
                   name=payload.get('name', ''),
                   address=payload.get('address', ''),
                   location=Location(lat=float(payload['latitude']), lng=float(payload['longitude'])),
                   category=payload.get('category') or None,
                   rating=float(rating) if rating is not None else None,
                   user_rating=float(user_rating) if user_rating is not None else None,
                   tags=list(payload.get('tags') or []),
                   notes=payload.get('notes') or None,
                   sentiment=payload.get('sentiment') or None,
                   last_visited=parse_datetime(payload.get('last_visited')),
                   visit_count=int(payload.get('visit_count') or 0))

    def to_dict(self) -> Dict[str, Any]:
        """Render for tool responses."""
        data = self.to_payload()
        data['location'] = {'lat': data.pop('latitude'), 'lng': data.pop('longitude')}
        return data


@dataclass
class Visit:
    """A single visit of the user to a place. Never mutated after creation."""
    date: datetime
    duration: Optional[int] = None  # Minutes
    companions: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    rating: Optional[float] = None
    sentiment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': to_iso_str(self.date),
            'duration': self.duration,
            'companions': list(self.companions),
            'notes': self.notes,
            'rating': self.rating,
            'sentiment': self.sentiment,
        }


@dataclass
class ScoreBreakdown:
    """Additive score components of a recommendation candidate."""
    mood: float = 0.0
    rating: float = 0.0
    visit: float = 0.0
    sentiment: float = 0.0
    recency: float = 0.0

    @property
    def total(self) -> float:
        return self.mood + self.rating + self.visit + self.sentiment + self.recency


@dataclass
class ScoredCandidate:
    """A place under consideration with its score and, for vector hits, similarity."""
    place: Place
    score: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    similarity: Optional[float] = None


@dataclass
class Recommendation:
    """A ranked suggestion with human-readable reasons."""
    place: Place
    score: ScoreBreakdown
    confidence: float
    reasons: List[str] = field(default_factory=list)
    mood_match: Optional[str] = None
    category_match: Optional[str] = None
    location_match: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'place': self.place.to_dict(),
            'confidence': self.confidence,
            'score': self.score.total,
            'reasons': list(self.reasons),
            'mood_match': self.mood_match,
            'category_match': self.category_match,
            'location_match': self.location_match,
        }


@dataclass
class BucketStat:
    """Count and average rating of the places sharing a category or location."""
    name: str
    count: int
    avg_rating: float


@dataclass
class VisitPatterns:
    favorite_time_of_day: Optional[str] = None
    favorite_day_of_week: Optional[str] = None
    favorite_season: Optional[str] = None
    seasonal_preferences: Dict[str, int] = field(default_factory=dict)


@dataclass
class PreferenceTrends:
    recent_favorites: List[Place] = field(default_factory=list)
    emerging_categories: List[str] = field(default_factory=list)
    declining_interest: List[Place] = field(default_factory=list)


@dataclass
class PreferenceAnalysis:
    """Aggregate view of a place collection. Always recomputed, never stored."""
    top_categories: List[BucketStat]
    top_locations: List[BucketStat]
    rating_distribution: Dict[int, int]
    sentiment_distribution: Dict[str, int]
    patterns: VisitPatterns
    trends: PreferenceTrends

    def to_dict(self) -> Dict[str, Any]:
        return {
            'top_categories': [{'category': b.name, 'count': b.count, 'avg_rating': b.avg_rating}
                               for b in self.top_categories],
            'top_locations': [{'location': b.name, 'count': b.count, 'avg_rating': b.avg_rating}
                              for b in self.top_locations],
            'rating_distribution': dict(self.rating_distribution),
            'sentiment_distribution': dict(self.sentiment_distribution),
            'patterns': {
                'favorite_time_of_day': self.patterns.favorite_time_of_day,
                'favorite_day_of_week': self.patterns.favorite_day_of_week,
                'favorite_season': self.patterns.favorite_season,
                'seasonal_preferences': dict(self.patterns.seasonal_preferences),
            },
            'trends': {
                'recent_favorites': [p.to_dict() for p in self.trends.recent_favorites],
                'emerging_categories': list(self.trends.emerging_categories),
                'declining_interest': [p.to_dict() for p in self.trends.declining_interest],
            },
        }


@dataclass
class Insights:
    """Headline statistics over a place collection.

    recommendations is filled by the caller composing the recommendation
    engine; the analyzer leaves it empty.
    """
    total_places: int
    total_visits: int
    average_rating: float
    favorite_places: List[Place]
    recent_discoveries: List[Place]
    most_visited_category: str
    trending_locations: List[str]
    rating_trend: str  # improving, declining or stable
    visit_frequency: str  # high, medium or low
    time_preferences: str
    recommendations: List[Recommendation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_places': self.total_places,
            'total_visits': self.total_visits,
            'average_rating': self.average_rating,
            'favorite_places': [p.to_dict() for p in self.favorite_places],
            'recent_discoveries': [p.to_dict() for p in self.recent_discoveries],
            'trends': {
                'most_visited_category': self.most_visited_category,
                'trending_locations': list(self.trending_locations),
                'rating_trend': self.rating_trend,
            },
            'patterns': {
                'visit_frequency': self.visit_frequency,
                'time_preferences': self.time_preferences,
            },
            'recommendations': [r.to_dict() for r in self.recommendations],
        }
