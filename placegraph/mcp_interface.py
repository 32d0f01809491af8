"""
MCP Interface Layer using fastmcp for agent orchestration.
"""
from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from .models.requests import RequestValidationError
from .services.places import PlacesService
from .utils.config import config
from .utils.health_check import check_health
from .utils.logging_config import get_logger

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('PlaceGraph')
places_service = PlacesService()


def _run(tool: str, fn: Callable, *args):
    """Invoke a service call, reporting malformed input with its field paths."""
    try:
        return fn(*args)
    except RequestValidationError as e:
        logger.info(f'Rejected {tool} request: {e}')
        raise ToolError(f'Invalid parameters: {e.errors}')
    except Exception as e:
        logger.error(f'Unexpected error in {tool}: {e}')
        raise ToolError(f'{tool} failed: {e}')


@mcp.tool()
def get_saved_places(category: Optional[str] = None,
                     location: Optional[Dict[str, float]] = None,
                     limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """List saved places.

    Args:
        category: Only places of this category
        location: {lat, lng, radius} to restrict to an area, radius in meters (default 5000)
        limit: Maximum number of places

    Returns:
        List of places
    """
    params = {'category': category, 'location': location, 'limit': limit}
    places = _run('get_saved_places', places_service.get_saved_places, params)
    return [p.to_dict() for p in places]


@mcp.tool()
def search_saved_places(query: Optional[str] = None,
                        category: Optional[str] = None,
                        location: Optional[Dict[str, float]] = None,
                        sentiment: Optional[str] = None,
                        min_rating: Optional[float] = None,
                        limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Search saved places by meaning and filters.

    Args:
        query: Natural language query
        category: Only places of this category
        location: {lat, lng, radius} to restrict to an area
        sentiment: positive, negative or neutral
        min_rating: Minimum rating, 0 to 5
        limit: Maximum number of places

    Returns:
        List of places, with similarity when semantic search answered
    """
    params = {
        'query': query,
        'category': category,
        'location': location,
        'sentiment': sentiment,
        'min_rating': min_rating,
        'limit': limit
    }
    results = _run('search_saved_places', places_service.search_saved_places, params)
    return [{**c.place.to_dict(), 'similarity': c.similarity} for c in results]


@mcp.tool()
def find_nearby_places(lat: float, lng: float, radius: Optional[float] = None, limit: int = 10) -> List[Dict[str, Any]]:
    """Find saved places near a coordinate, nearest first.

    Args:
        lat: Latitude in degrees
        lng: Longitude in degrees
        radius: Search radius in meters (default 5000)
        limit: Maximum number of places (default 10)

    Returns:
        List of places with distance_meters
    """
    params = {'lat': lat, 'lng': lng, 'radius': radius, 'limit': limit}
    results = _run('find_nearby_places', places_service.find_nearby_places, params)
    return [{**place.to_dict(), 'distance_meters': round(distance, 1)} for place, distance in results]


@mcp.tool()
def find_similar_places(place_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    """Find saved places similar to a given place."""
    results = _run('find_similar_places', places_service.find_similar_places, place_id, limit)
    return [{**c.place.to_dict(), 'similarity': c.similarity} for c in results]


@mcp.tool()
def find_co_visited_places(place_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    """Find places visited by people who also visited a given place."""
    places = _run('find_co_visited_places', places_service.find_co_visited_places, place_id, limit)
    return [p.to_dict() for p in places]


@mcp.tool()
def get_places_by_sentiment(sentiment: str, min_rating: Optional[float] = None,
                            limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """List saved places by past experience: positive, negative or neutral."""
    params = {'sentiment': sentiment, 'min_rating': min_rating, 'limit': limit}
    places = _run('get_places_by_sentiment', places_service.get_places_by_sentiment, params)
    return [p.to_dict() for p in places]


@mcp.tool()
def get_recommendations(mood: Optional[str] = None,
                        category: Optional[str] = None,
                        location: Optional[Dict[str, float]] = None,
                        limit: int = 10) -> List[Dict[str, Any]]:
    """Recommend saved places.

    Args:
        mood: e.g. relaxed, adventurous, social, cultural, romantic, active, quiet, energetic
        category: Only places of this category
        location: {lat, lng, radius} to restrict to an area
        limit: Maximum number of recommendations (default 10)

    Returns:
        Recommendations with confidence and reasons, best first
    """
    params = {'mood': mood, 'category': category, 'location': location, 'limit': limit}
    recommendations = _run('get_recommendations', places_service.get_recommendations, params)
    return [r.to_dict() for r in recommendations]


@mcp.tool()
def analyze_preferences() -> Dict[str, Any]:
    """Summarize categories, locations, ratings, visit patterns and trends of saved places."""
    return _run('analyze_preferences', places_service.analyze_preferences).to_dict()


@mcp.tool()
def get_insights() -> Dict[str, Any]:
    """Headline statistics and recommendations over saved places."""
    return _run('get_insights', places_service.get_insights).to_dict()


@mcp.tool()
def get_place(place_id: str) -> Optional[Dict[str, Any]]:
    """Get a saved place by id, null when unknown."""
    place = _run('get_place', places_service.get_place, place_id)
    return place.to_dict() if place else None


@mcp.tool()
def get_place_activity(place_id: str) -> List[Dict[str, Any]]:
    """Get the visit history of a place, newest first."""
    visits = _run('get_place_activity', places_service.get_place_activity, place_id)
    return [v.to_dict() for v in visits]


@mcp.tool()
def save_place(place: Dict[str, Any]) -> Dict[str, bool]:
    """Save or update a place.

    Args:
        place: place_id, name, address, location {lat, lng}, and optionally category, rating,
            user_rating, tags, notes, sentiment, last_visited, visit_count

    Returns:
        Success flag per backend
    """
    return _run('save_place', places_service.save_place, place)


@mcp.tool()
def record_visit(place_id: str, visit: Dict[str, Any]) -> Dict[str, bool]:
    """Record a visit to a place.

    Args:
        place_id: Visited place
        visit: date, and optionally duration (minutes), companions, notes, rating, sentiment

    Returns:
        Success flag per backend
    """
    return _run('record_visit', places_service.record_visit, place_id, visit)


@mcp.tool()
def relate_places(place_id: str, other_place_id: str, kind: str = 'SIMILAR') -> Dict[str, bool]:
    """Link two places as SIMILAR, NEAR or SAME_CATEGORY."""
    return _run('relate_places', places_service.relate_places, place_id, other_place_id, kind)


@mcp.tool()
def delete_place(place_id: str) -> Dict[str, bool]:
    """Delete a place from every backend."""
    return _run('delete_place', places_service.delete_place, place_id)


@mcp.tool()
def health_status() -> Dict[str, Any]:
    """Report which backends are enabled and healthy."""
    return _run('health_status', places_service.health_status)


def main():
    """Run the MCP server with the configured transport."""
    check_health(places_service.orchestrator)

    transport = config.mcp.transport
    if transport == 'stdio':
        mcp.run(transport=transport)
    else:
        mcp.run(transport=transport, host=config.mcp.host, port=config.mcp.port)


if __name__ == '__main__':
    main()
