"""
Amazon Neptune graph database client with Gremlin Python driver and AWS SigV4 authentication.

Graph layout:
    (:User {user_id})-[:VISITED {date, duration, rating, sentiment, notes, companions}]->(:Place {place_id, ...})
    (:Place)-[:SIMILAR|NEAR|SAME_CATEGORY {created_at}]-(:Place)
"""

import json
from datetime import datetime
from functools import wraps
from typing import Any, Dict, List, Optional

from boto3 import Session
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from gremlin_python.driver.aiohttp.transport import AiohttpTransport
from gremlin_python.driver.driver_remote_connection import DriverRemoteConnection
from gremlin_python.process.anonymous_traversal import traversal
from gremlin_python.process.graph_traversal import __
from gremlin_python.process.traversal import Cardinality, P

from ..models.core import RELATION_KINDS, Place, Visit
from .config import NeptuneConfig
from .logging_config import get_logger
from .timestamp_utils import parse_datetime, to_iso_str

logger = get_logger(__name__)

PLACE_PROPERTIES = ('place_id', 'name', 'address', 'category', 'rating', 'user_rating', 'latitude', 'longitude', 'tags',
                    'notes', 'sentiment', 'last_visited', 'visit_count')

# Haversine in kilometers, evaluated server side by the Gremlin math() step
NEARBY_DISTANCE_EXPR = ('6371 * 2 * asin(sqrt(sin((plat - ({lat})) * pi / 360) ^ 2 + '
                        'cos(({lat}) * pi / 180) * cos(plat * pi / 180) * sin((plng - ({lng})) * pi / 360) ^ 2))')


class NeptuneError(Exception):
    """Custom exception for Neptune errors."""
    pass


def retry_on_connection_error(func):
    """Decorator to retry Neptune operations on connection errors."""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except NeptuneError:
            raise
        except Exception as e:
            if 'cannot write to closing transport' in str(e).lower():
                logger.warning(f'Connection error detected: {e}. Reconnecting...')
                self.close()
                self._connect()
                try:
                    return func(self, *args, **kwargs)
                except Exception as retry_e:
                    logger.error(f'Error in {func.__name__}: {retry_e}')
                    raise NeptuneError(f'Failed to {func.__name__}: {retry_e}')
            else:
                logger.error(f'Error in {func.__name__}: {e}')
                raise NeptuneError(f'Failed to {func.__name__}: {e}')

    return wrapper


def _first(data: Dict[Any, Any], key: str, default: Any = None) -> Any:
    """Unwrap a value_map entry, which holds a list for vertex properties."""
    value = data.get(key, default)
    if isinstance(value, list):
        return value[0] if value else default
    return value


def _place_from_vertex(data: Dict[Any, Any]) -> Place:
    payload = {key: _first(data, key) for key in PLACE_PROPERTIES}
    payload['tags'] = json.loads(payload['tags']) if payload.get('tags') else []
    return Place.from_payload(payload)


def _visit_from_edge(data: Dict[Any, Any]) -> Visit:
    companions = _first(data, 'companions')
    duration = _first(data, 'duration')
    rating = _first(data, 'rating')
    return Visit(date=parse_datetime(_first(data, 'date')),
                 duration=int(duration) if duration is not None else None,
                 companions=json.loads(companions) if companions else [],
                 notes=_first(data, 'notes'),
                 rating=float(rating) if rating is not None else None,
                 sentiment=_first(data, 'sentiment'))


def _rating_key(place: Place):
    """Sort key placing higher user rating, then higher provider rating, first."""
    return (place.user_rating is not None, place.user_rating or 0.0, place.rating is not None, place.rating or 0.0)


class NeptuneClient:
    """Amazon Neptune client using Gremlin Python driver with AWS authentication."""

    def __init__(self, config: NeptuneConfig):
        """
        Initialize Neptune client with Gremlin driver.

        Args:
            config: NeptuneConfig instance with connection parameters
        """
        self.config = config
        self.connection = None
        self.g = None
        self._connect()

        logger.info(f'Connected to Neptune at {config.endpoint}')

    def _connect(self):
        """Establish connection to Neptune."""
        # Build WebSocket connection string
        conn_string = f'wss://{self.config.endpoint}:{self.config.port}/gremlin'

        # Get AWS credentials
        credentials = Session().get_credentials()
        if credentials is None:
            raise NeptuneError('No AWS credentials found')
        creds = credentials.get_frozen_credentials()

        # Get region
        region = self.config.region or Session().region_name or 'us-east-1'

        # Create signed request for WebSocket connection
        request = AWSRequest(method='GET', url=conn_string, data=None)
        SigV4Auth(creds, 'neptune-db', region).add_auth(request)

        # Initialize Gremlin connection
        self.connection = DriverRemoteConnection(conn_string,
                                                 'g',
                                                 headers=request.headers.items(),
                                                 transport_factory=lambda: AiohttpTransport(call_from_event_loop=True))

        self.g = traversal().with_remote(self.connection)

    def close(self):
        """Close the Neptune connection."""
        if self.connection is not None:
            self.connection.close()

    @retry_on_connection_error
    def upsert_place(self, place: Place) -> bool:
        """
        Create or update a place vertex.

        Args:
            place: Place to store

        Returns:
            True if the upsert was successful
        """
        payload = place.to_payload()
        payload['tags'] = json.dumps(payload['tags'])

        t = self.g.V().has('Place', 'place_id', place.place_id).fold()\
            .coalesce(__.unfold(), __.add_v('Place').property('place_id', place.place_id))

        for key, value in payload.items():
            if key == 'place_id':
                continue
            if value is None:
                t = t.side_effect(__.properties(key).drop())
            else:
                t = t.property(Cardinality.single, key, value)

        t.iterate()
        logger.debug(f'Upserted place vertex: {place.place_id}')
        return True

    @retry_on_connection_error
    def record_visit(self, user_id: str, place_id: str, visit: Visit) -> bool:
        """
        Append a visit edge and refresh the place's visit count and last visit.

        Args:
            user_id: User ID
            place_id: Visited place
            visit: Visit details

        Returns:
            True if the visit was recorded

        Raises:
            NeptuneError: If the place vertex does not exist
        """
        places = self.g.V().has('Place', 'place_id', place_id).to_list()
        if not places:
            raise NeptuneError(f'Place {place_id} not found')
        place_vertex = places[0]

        user_vertex = self.g.V().has('User', 'user_id', user_id).fold()\
            .coalesce(__.unfold(), __.add_v('User').property('user_id', user_id)).next()

        t = self.g.V(user_vertex).add_e('VISITED').to(place_vertex)\
            .property('user_id', user_id)\
            .property('date', to_iso_str(visit.date))\
            .property('companions', json.dumps(visit.companions))
        for key in ('duration', 'rating', 'sentiment', 'notes'):
            value = getattr(visit, key)
            if value is not None:
                t = t.property(key, value)
        t.iterate()

        visit_count = self.g.V(place_vertex).in_e('VISITED').count().next()
        t = self.g.V(place_vertex).property(Cardinality.single, 'visit_count', int(visit_count))
        last_visited = parse_datetime(_first(self.g.V(place_vertex).value_map('last_visited').next(), 'last_visited'))
        if last_visited is None or visit.date > last_visited:
            t = t.property(Cardinality.single, 'last_visited', to_iso_str(visit.date))
            if visit.sentiment:
                t = t.property(Cardinality.single, 'sentiment', visit.sentiment)
        t.iterate()

        logger.debug(f'Recorded visit of {user_id} to {place_id}')
        return True

    @retry_on_connection_error
    def query_user_places(self, user_id: str, filters) -> List[Place]:
        """
        Get places visited by the user, most recently visited first.

        Args:
            user_id: User ID
            filters: GraphFilters instance

        Returns:
            List of Place objects
        """
        t = self.g.V().has('User', 'user_id', user_id).out('VISITED').has_label('Place')
        if filters.category:
            t = t.has('category', filters.category)
        if filters.sentiment:
            t = t.has('sentiment', filters.sentiment)
        if filters.min_rating is not None:
            t = t.or_(__.has('user_rating', P.gte(filters.min_rating)), __.has('rating', P.gte(filters.min_rating)))

        places = [_place_from_vertex(data) for data in t.dedup().value_map(True).to_list()]

        # Gremlin has no case-insensitive contains
        if filters.text:
            places = [p for p in places if p.matches_text(filters.text)]

        places.sort(key=lambda p: (p.last_visited or datetime.min, p.user_rating or 0.0), reverse=True)
        if filters.limit:
            places = places[:filters.limit]

        logger.debug(f'Found {len(places)} places for user {user_id}')
        return places

    @retry_on_connection_error
    def query_nearby(self, lat: float, lng: float, radius_km: float, limit: int) -> List[Place]:
        """
        Find places within radius_km using a server-side haversine.

        Args:
            lat: Latitude of the center
            lng: Longitude of the center
            radius_km: Radius in kilometers
            limit: Maximum number of places

        Returns:
            Places ordered by distance, then user rating
        """
        expr = NEARBY_DISTANCE_EXPR.format(lat=float(lat), lng=float(lng))
        rows = self.g.V().has_label('Place').has('latitude').has('longitude').as_('p')\
            .values('latitude').as_('plat')\
            .select('p').values('longitude').as_('plng')\
            .math(expr).is_(P.lte(radius_km)).as_('distance_km')\
            .select('p', 'distance_km').by(__.value_map(True)).by()\
            .to_list()

        ranked = [(row['distance_km'], _place_from_vertex(row['p'])) for row in rows]
        ranked.sort(key=lambda item: (item[0], -(item[1].user_rating or 0.0)))
        return [place for _, place in ranked[:limit]]

    @retry_on_connection_error
    def scan_places(self, limit: int) -> List[Place]:
        """
        Get up to limit places with coordinates, in storage order.

        Args:
            limit: Maximum number of places

        Returns:
            List of Place objects
        """
        data = self.g.V().has_label('Place').has('latitude').has('longitude').limit(limit).value_map(True).to_list()
        return [_place_from_vertex(d) for d in data]

    @retry_on_connection_error
    def get_place(self, place_id: str) -> Optional[Place]:
        """
        Get a place by id.

        Args:
            place_id: Place identifier

        Returns:
            Place if found, None otherwise
        """
        data = self.g.V().has('Place', 'place_id', place_id).value_map(True).to_list()
        return _place_from_vertex(data[0]) if data else None

    @retry_on_connection_error
    def query_visits(self, user_id: str, place_id: str) -> List[Visit]:
        """
        Get the user's visits to a place, newest first.

        Args:
            user_id: User ID
            place_id: Place identifier

        Returns:
            List of Visit objects
        """
        data = self.g.V().has('User', 'user_id', user_id).out_e('VISITED')\
            .where(__.in_v().has('place_id', place_id))\
            .value_map().to_list()

        visits = [_visit_from_edge(d) for d in data]
        visits.sort(key=lambda v: v.date or datetime.min, reverse=True)
        return visits

    @retry_on_connection_error
    def relate(self, place_id: str, other_place_id: str, kind: str) -> bool:
        """
        Create an undirected relationship between two places if absent.

        Args:
            place_id: First place
            other_place_id: Second place
            kind: SIMILAR, NEAR or SAME_CATEGORY

        Returns:
            True if the relationship exists afterwards

        Raises:
            NeptuneError: If kind is unknown or a place does not exist
        """
        if kind not in RELATION_KINDS:
            raise NeptuneError(f'Unknown relationship kind: {kind}')

        existing = self.g.V().has('Place', 'place_id', place_id).both_e(kind)\
            .where(__.other_v().has('place_id', other_place_id)).to_list()
        if existing:
            logger.debug(f'{kind} relationship already exists: {place_id} - {other_place_id}')
            return True

        first = self.g.V().has('Place', 'place_id', place_id).to_list()
        second = self.g.V().has('Place', 'place_id', other_place_id).to_list()
        if not first or not second:
            raise NeptuneError(f'Cannot relate missing places {place_id} and {other_place_id}')

        self.g.V(first[0]).add_e(kind).to(second[0]).property('created_at', to_iso_str(datetime.now())).iterate()
        logger.debug(f'Created {kind} relationship: {place_id} - {other_place_id}')
        return True

    @retry_on_connection_error
    def query_related(self, place_id: str, kind: str, limit: int) -> List[Place]:
        """
        Get places related to a place by kind.

        Args:
            place_id: Place identifier
            kind: SIMILAR, NEAR or SAME_CATEGORY
            limit: Maximum number of places

        Returns:
            Places ordered by user rating, then provider rating
        """
        if kind not in RELATION_KINDS:
            raise NeptuneError(f'Unknown relationship kind: {kind}')

        data = self.g.V().has('Place', 'place_id', place_id).both(kind).has_label('Place').dedup()\
            .value_map(True).to_list()

        places = [_place_from_vertex(d) for d in data]
        places.sort(key=_rating_key, reverse=True)
        return places[:limit]

    @retry_on_connection_error
    def query_co_visited(self, place_id: str, limit: int) -> List[Place]:
        """
        Get places visited by users who also visited place_id.

        Args:
            place_id: Place identifier
            limit: Maximum number of places

        Returns:
            Places ordered by number of common visitors, then user rating
        """
        counts = self.g.V().has('Place', 'place_id', place_id).in_('VISITED').dedup()\
            .local(__.out('VISITED').has('place_id', P.neq(place_id)).dedup())\
            .group_count().by('place_id').next()
        if not counts:
            return []

        data = self.g.V().has('Place', 'place_id', P.within(list(counts))).value_map(True).to_list()
        places = [_place_from_vertex(d) for d in data]
        places.sort(key=lambda p: (counts.get(p.place_id, 0), p.user_rating or 0.0), reverse=True)
        return places[:limit]

    @retry_on_connection_error
    def delete_place(self, place_id: str) -> bool:
        """
        Delete a place vertex and all its edges.

        Args:
            place_id: Place identifier

        Returns:
            True if deletion was successful
        """
        self.g.V().has('Place', 'place_id', place_id).drop().iterate()
        logger.debug(f'Deleted place: {place_id}')
        return True

    @retry_on_connection_error
    def health_check(self) -> bool:
        """
        Perform a health check on the Neptune service.

        Returns:
            True if service is healthy, False otherwise
        """
        # Simple query to test connectivity
        self.g.V().limit(1).count().next()
        return True
