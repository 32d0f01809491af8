from datetime import datetime, timedelta

import pytest
from conftest import make_place

from placegraph.services.preference_analysis import PreferenceAnalyzer, extract_location, season, time_of_day


@pytest.fixture
def analyzer() -> PreferenceAnalyzer:
    return PreferenceAnalyzer()


def test_insights_average_and_total(analyzer, now) -> None:
    places = [make_place('a', user_rating=5), make_place('b', user_rating=3)]

    insights = analyzer.insights(places, now)

    assert insights.average_rating == 4.0
    assert insights.total_places == 2
    assert insights.recommendations == []


def test_insights_on_empty_collection(analyzer, now) -> None:
    insights = analyzer.insights([], now)
    assert insights.total_places == 0
    assert insights.average_rating == 0.0
    assert insights.most_visited_category == 'Unknown'
    assert insights.rating_trend == 'stable'
    assert insights.visit_frequency == 'low'
    assert insights.time_preferences == 'No clear time preference'


def test_extract_location_takes_second_to_last_segment() -> None:
    assert extract_location('Bennelong Point, Sydney NSW 2000, Australia') == 'Sydney NSW 2000'
    assert extract_location('Bondi Beach NSW 2026, Australia') == 'Bondi Beach NSW 2026'
    assert extract_location('Nowhere') is None


def test_time_of_day_and_season_buckets() -> None:
    assert time_of_day(datetime(2024, 1, 1, 11, 59)) == 'morning'
    assert time_of_day(datetime(2024, 1, 1, 12, 0)) == 'afternoon'
    assert time_of_day(datetime(2024, 1, 1, 17, 0)) == 'evening'
    assert [season(datetime(2024, m, 1)) for m in (1, 3, 4, 6, 7, 9, 10, 12)] == [
        'winter', 'winter', 'spring', 'spring', 'summer', 'summer', 'fall', 'fall'
    ]


def test_top_categories_count_and_average(analyzer, now) -> None:
    places = [
        make_place('a', category='Cafe', user_rating=4),
        make_place('b', category='Beach', user_rating=5),
        make_place('c', category='Cafe', user_rating=2),
        make_place('d'),
    ]

    analysis = analyzer.analyze(places, now)

    assert [(b.name, b.count, b.avg_rating) for b in analysis.top_categories] == [('Cafe', 2, 3.0), ('Beach', 1, 5.0)]
    assert analysis.top_locations[0].name == 'Sydney NSW 2000'
    assert analysis.top_locations[0].count == 4


def test_top_categories_keep_first_seen_order_on_ties(analyzer, now) -> None:
    places = [make_place(str(i), category=c) for i, c in enumerate(['Park', 'Bar', 'Museum'])]
    assert [b.name for b in analyzer.analyze(places, now).top_categories] == ['Park', 'Bar', 'Museum']


def test_rating_distribution_rounds_half_up(analyzer, now) -> None:
    places = [
        make_place('a', user_rating=2.5),
        make_place('b', user_rating=3.49),
        make_place('c', user_rating=4.5),
        make_place('d', rating=4.7),
        make_place('e'),
    ]
    assert analyzer.analyze(places, now).rating_distribution == {3: 2, 5: 2, 0: 1}


def test_sentiment_distribution_has_every_key(analyzer, now) -> None:
    places = [make_place('a', sentiment='positive'), make_place('b', sentiment='positive'), make_place('c')]
    assert analyzer.analyze(places, now).sentiment_distribution == {'positive': 2, 'negative': 0, 'neutral': 0}


def test_visit_patterns(analyzer, now) -> None:
    places = [
        make_place('a', last_visited=datetime(2024, 1, 15, 19, 30)),
        make_place('b', last_visited=datetime(2024, 1, 15, 20, 0)),
        make_place('c', last_visited=datetime(2023, 7, 20, 9, 0)),
        make_place('d'),
    ]

    patterns = analyzer.analyze(places, now).patterns

    assert patterns.favorite_time_of_day == 'evening'
    assert patterns.favorite_day_of_week == 'Monday'
    assert patterns.favorite_season == 'winter'
    assert patterns.seasonal_preferences == {'winter': 2, 'summer': 1}


def test_trends(analyzer, now) -> None:
    fresh = make_place('fresh', category='Bar', user_rating=5, last_visited=now - timedelta(days=2))
    recent = make_place('recent', category='Cafe', user_rating=4, last_visited=now - timedelta(days=20))
    meh = make_place('meh', category='Gym', user_rating=3, last_visited=now - timedelta(days=1))
    stale = make_place('stale', user_rating=4, visit_count=3, last_visited=now - timedelta(days=90))
    older = make_place('older', user_rating=4, visit_count=2, last_visited=now - timedelta(days=400))
    once = make_place('once', user_rating=4, visit_count=1, last_visited=now - timedelta(days=100))

    trends = analyzer.analyze([recent, meh, stale, fresh, older, once], now).trends

    assert [p.place_id for p in trends.recent_favorites] == ['fresh', 'recent']
    assert trends.emerging_categories == ['Bar', 'Cafe']
    assert [p.place_id for p in trends.declining_interest] == ['older', 'stale']


def test_favorites_rank_by_rating_times_visits(analyzer, now) -> None:
    places = [
        make_place('a', user_rating=5, visit_count=1),
        make_place('b', user_rating=4, visit_count=3),
        make_place('c', user_rating=3, visit_count=10),
    ]
    assert [p.place_id for p in analyzer.insights(places, now).favorite_places] == ['b', 'a']


def test_recent_discoveries_are_single_recent_visits(analyzer, now) -> None:
    places = [
        make_place('new', visit_count=1, last_visited=now - timedelta(days=3)),
        make_place('newer', visit_count=1, last_visited=now - timedelta(days=1)),
        make_place('regular', visit_count=5, last_visited=now - timedelta(days=1)),
        make_place('old', visit_count=1, last_visited=now - timedelta(days=60)),
    ]
    assert [p.place_id for p in analyzer.insights(places, now).recent_discoveries] == ['newer', 'new']


@pytest.mark.parametrize('recent_rating, expected', [(5, 'improving'), (3.1, 'stable'), (2, 'declining')])
def test_rating_trend(analyzer, now, recent_rating, expected) -> None:
    places = [
        make_place('recent', user_rating=recent_rating, last_visited=now - timedelta(days=5)),
        make_place('older', user_rating=3, last_visited=now - timedelta(days=60)),
    ]
    assert analyzer.insights(places, now).rating_trend == expected


def test_rating_trend_without_older_history_is_stable(analyzer, now) -> None:
    places = [make_place('recent', user_rating=1, last_visited=now - timedelta(days=5))]
    assert analyzer.insights(places, now).rating_trend == 'stable'


@pytest.mark.parametrize('visits, expected', [([4, 4], 'high'), ([2, 2], 'medium'), ([1, 2], 'low')])
def test_visit_frequency(analyzer, now, visits, expected) -> None:
    places = [make_place(str(i), visit_count=v) for i, v in enumerate(visits)]
    assert analyzer.insights(places, now).visit_frequency == expected


def test_insights_summary_fields(analyzer, now) -> None:
    places = [
        make_place('a', category='Cafe', user_rating=4.26, visit_count=2, last_visited=datetime(2024, 1, 20, 8, 0)),
        make_place('b', category='Cafe', user_rating=4.0, visit_count=1, address='Main St, Bondi NSW 2026, Australia'),
    ]

    insights = analyzer.insights(places, now)

    assert insights.average_rating == 4.1
    assert insights.total_visits == 3
    assert insights.most_visited_category == 'Cafe'
    assert insights.trending_locations == ['Sydney NSW 2000', 'Bondi NSW 2026']
    assert insights.time_preferences == 'Prefers morning visits'
