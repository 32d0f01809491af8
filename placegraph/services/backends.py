"""
Capability interfaces for the embedding, vector and graph backends, plus the
result type the orchestrator uses to select tiers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Protocol, Tuple, TypeVar

from ..models.core import Place, Visit

T = TypeVar('T')


class BackendUnavailable(Exception):
    """Backend not configured or failed its startup check; it stays disabled."""

    def __init__(self, backend: str, reason: str):
        self.backend = backend
        self.reason = reason
        super().__init__(f'{backend} unavailable: {reason}')


class BackendCallFailed(Exception):
    """A single backend call errored or timed out; the next tier is tried."""

    def __init__(self, backend: str, operation: str, reason: str, timed_out: bool = False):
        self.backend = backend
        self.operation = operation
        self.reason = reason
        self.timed_out = timed_out
        super().__init__(f'{backend}.{operation} failed: {reason}')


@dataclass
class BackendResult(Generic[T]):
    """Outcome of one backend call."""
    ok: bool
    value: Optional[T] = None
    error: Optional[BackendCallFailed] = None

    @classmethod
    def success(cls, value: T) -> 'BackendResult[T]':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BackendCallFailed) -> 'BackendResult[T]':
        return cls(ok=False, error=error)


@dataclass
class VectorFilters:
    """Structured filters applied alongside a k-NN query."""
    category: Optional[str] = None
    sentiment: Optional[str] = None
    min_rating: Optional[float] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius_meters: Optional[float] = None
    exclude_ids: List[str] = field(default_factory=list)

    @property
    def has_geo(self) -> bool:
        return self.lat is not None and self.lng is not None and self.radius_meters is not None


@dataclass
class GraphFilters:
    """Attribute filters for user place queries."""
    category: Optional[str] = None
    sentiment: Optional[str] = None
    min_rating: Optional[float] = None
    text: Optional[str] = None  # Case-insensitive substring over name, address, tags, notes
    limit: Optional[int] = None


class EmbeddingBackend(Protocol):

    def embed(self, text: str, input_type: str = 'search_document') -> List[float]:
        ...


class VectorBackend(Protocol):

    def upsert(self, place_id: str, vector: List[float], payload: Dict[str, Any]) -> bool:
        ...

    def search(self, vector: List[float], filters: VectorFilters, limit: int,
               score_threshold: float) -> List[Tuple[Dict[str, Any], float]]:
        ...

    def delete(self, place_id: str) -> bool:
        ...

    def retrieve_vector(self, place_id: str) -> Optional[List[float]]:
        ...


class GraphBackend(Protocol):

    def upsert_place(self, place: Place) -> bool:
        ...

    def record_visit(self, user_id: str, place_id: str, visit: Visit) -> bool:
        ...

    def query_user_places(self, user_id: str, filters: GraphFilters) -> List[Place]:
        ...

    def query_nearby(self, lat: float, lng: float, radius_km: float, limit: int) -> List[Place]:
        ...

    def query_related(self, place_id: str, kind: str, limit: int) -> List[Place]:
        ...

    def scan_places(self, limit: int) -> List[Place]:
        ...

    def get_place(self, place_id: str) -> Optional[Place]:
        ...

    def query_visits(self, user_id: str, place_id: str) -> List[Visit]:
        ...

    def relate(self, place_id: str, other_place_id: str, kind: str) -> bool:
        ...

    def query_co_visited(self, place_id: str, limit: int) -> List[Place]:
        ...

    def delete_place(self, place_id: str) -> bool:
        ...
