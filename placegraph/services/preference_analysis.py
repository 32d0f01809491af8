"""
Aggregate statistics, visit patterns and trends over a place collection.
"""

import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ..models.core import (SENTIMENTS, BucketStat, Insights, Place, PreferenceAnalysis, PreferenceTrends,
                           VisitPatterns)
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import days_ago

logger = get_logger(__name__)

RECENT_DAYS = 30
TOP_BUCKETS = 5
TOP_FAVORITES = 10
TOP_TREND_PLACES = 5
TRENDING_LOCATIONS = 3
RATING_TREND_DELTA = 0.2


def extract_location(address: str) -> Optional[str]:
    """Second-to-last comma-separated segment of an address, e.g. the city."""
    parts = address.split(',')
    if len(parts) >= 2:
        return parts[-2].strip()
    return None


def time_of_day(moment: datetime) -> str:
    if moment.hour < 12:
        return 'morning'
    if moment.hour < 17:
        return 'afternoon'
    return 'evening'


def season(moment: datetime) -> str:
    if moment.month <= 3:
        return 'winter'
    if moment.month <= 6:
        return 'spring'
    if moment.month <= 9:
        return 'summer'
    return 'fall'


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mode(counts: Dict[str, int]) -> Optional[str]:
    # First key wins ties
    if not counts:
        return None
    return max(counts, key=counts.get)


def _mean_rating(places: Sequence[Place]) -> float:
    if not places:
        return 0.0
    return sum(p.effective_rating for p in places) / len(places)


def _top_buckets(totals: Dict[str, List[float]]) -> List[BucketStat]:
    buckets = [BucketStat(name=name, count=len(ratings), avg_rating=sum(ratings) / len(ratings))
               for name, ratings in totals.items()]
    buckets.sort(key=lambda b: b.count, reverse=True)
    return buckets[:TOP_BUCKETS]


class PreferenceAnalyzer:
    """Pure aggregations over a snapshot of the user's places."""

    def analyze(self, places: Sequence[Place], now: Optional[datetime] = None) -> PreferenceAnalysis:
        """
        Group, count and trend a place collection.

        Args:
            places: Place collection
            now: Reference time for recency windows (optional, uses current time if None)

        Returns:
            PreferenceAnalysis
        """
        cutoff = days_ago(RECENT_DAYS, now)

        by_category: Dict[str, List[float]] = {}
        by_location: Dict[str, List[float]] = {}
        rating_distribution: Dict[int, int] = {}
        sentiment_distribution = {s: 0 for s in SENTIMENTS}
        by_time: Dict[str, int] = {}
        by_day: Dict[str, int] = {}
        by_season: Dict[str, int] = {}

        for place in places:
            rating = place.effective_rating

            if place.category:
                by_category.setdefault(place.category, []).append(rating)

            location = extract_location(place.address)
            if location:
                by_location.setdefault(location, []).append(rating)

            bucket = _round_half_up(rating)
            rating_distribution[bucket] = rating_distribution.get(bucket, 0) + 1

            if place.sentiment in sentiment_distribution:
                sentiment_distribution[place.sentiment] += 1

            if place.last_visited is not None:
                visited = place.last_visited
                key = time_of_day(visited)
                by_time[key] = by_time.get(key, 0) + 1
                key = visited.strftime('%A')
                by_day[key] = by_day.get(key, 0) + 1
                key = season(visited)
                by_season[key] = by_season.get(key, 0) + 1

        recent_favorites = [p for p in places if p.last_visited is not None and p.last_visited >= cutoff]
        recent_favorites = [p for p in recent_favorites if p.effective_rating >= 4]
        recent_favorites.sort(key=lambda p: p.last_visited, reverse=True)
        recent_favorites = recent_favorites[:TOP_TREND_PLACES]

        emerging_categories = list(dict.fromkeys(p.category for p in recent_favorites if p.category))

        declining = [p for p in places if p.last_visited is not None and p.last_visited < cutoff and p.visit_count > 1]
        declining.sort(key=lambda p: p.last_visited)
        declining = declining[:TOP_TREND_PLACES]

        return PreferenceAnalysis(top_categories=_top_buckets(by_category),
                                  top_locations=_top_buckets(by_location),
                                  rating_distribution=rating_distribution,
                                  sentiment_distribution=sentiment_distribution,
                                  patterns=VisitPatterns(favorite_time_of_day=_mode(by_time),
                                                         favorite_day_of_week=_mode(by_day),
                                                         favorite_season=_mode(by_season),
                                                         seasonal_preferences=by_season),
                                  trends=PreferenceTrends(recent_favorites=recent_favorites,
                                                          emerging_categories=emerging_categories,
                                                          declining_interest=declining))

    def insights(self, places: Sequence[Place], now: Optional[datetime] = None) -> Insights:
        """
        Headline statistics over a place collection.

        The recommendations field is left empty for the caller to fill.

        Args:
            places: Place collection
            now: Reference time for recency windows (optional, uses current time if None)

        Returns:
            Insights
        """
        analysis = self.analyze(places, now)
        cutoff = days_ago(RECENT_DAYS, now)

        total_places = len(places)
        total_visits = sum(p.visit_count for p in places)
        average_rating = _mean_rating(places)

        favorite_places = [p for p in places if p.effective_rating >= 4]
        favorite_places.sort(key=lambda p: p.effective_rating * p.visit_count, reverse=True)
        favorite_places = favorite_places[:TOP_FAVORITES]

        recent_discoveries = [
            p for p in places if p.last_visited is not None and p.last_visited >= cutoff and p.visit_count == 1
        ]
        recent_discoveries.sort(key=lambda p: p.last_visited, reverse=True)
        recent_discoveries = recent_discoveries[:TOP_TREND_PLACES]

        most_visited_category = analysis.top_categories[0].name if analysis.top_categories else 'Unknown'
        trending_locations = [b.name for b in analysis.top_locations[:TRENDING_LOCATIONS]]

        recent = [p for p in places if p.last_visited is not None and p.last_visited >= cutoff]
        older = [p for p in places if p.last_visited is not None and p.last_visited < cutoff]
        rating_trend = self._rating_trend(recent, older)

        avg_visits = total_visits / total_places if total_places else 0
        if avg_visits > 3:
            visit_frequency = 'high'
        elif avg_visits > 1.5:
            visit_frequency = 'medium'
        else:
            visit_frequency = 'low'

        favorite_time = analysis.patterns.favorite_time_of_day
        time_preferences = f'Prefers {favorite_time} visits' if favorite_time else 'No clear time preference'

        logger.debug(f'Computed insights over {total_places} places')
        return Insights(total_places=total_places,
                        total_visits=total_visits,
                        average_rating=round(average_rating, 1),
                        favorite_places=favorite_places,
                        recent_discoveries=recent_discoveries,
                        most_visited_category=most_visited_category,
                        trending_locations=trending_locations,
                        rating_trend=rating_trend,
                        visit_frequency=visit_frequency,
                        time_preferences=time_preferences)

    @staticmethod
    def _rating_trend(recent: Sequence[Place], older: Sequence[Place]) -> str:
        # Without both windows there is nothing to compare
        if not recent or not older:
            return 'stable'
        recent_avg = _mean_rating(recent)
        older_avg = _mean_rating(older)
        if recent_avg > older_avg + RATING_TREND_DELTA:
            return 'improving'
        if recent_avg < older_avg - RATING_TREND_DELTA:
            return 'declining'
        return 'stable'
