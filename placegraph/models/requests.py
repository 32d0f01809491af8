"""
Request models validated at the service boundary.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..utils.timestamp_utils import parse_datetime
from .core import Location, Place, Visit

Sentiment = Literal['positive', 'negative', 'neutral']
RelationKind = Literal['SIMILAR', 'NEAR', 'SAME_CATEGORY']

ModelT = TypeVar('ModelT', bound=BaseModel)


class RequestValidationError(Exception):
    """Raised when request parameters are malformed.

    Attributes:
        errors: List of {'field': dotted path, 'message': text} entries
    """

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        details = '; '.join(f"{e['field'] or '<root>'}: {e['message']}" for e in errors)
        super().__init__(f'Invalid request: {details}')


class RequestModel(BaseModel):
    model_config = ConfigDict(extra='forbid')


class LocationParam(RequestModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius: Optional[float] = Field(default=None, gt=0)  # Meters


class ListPlacesRequest(RequestModel):
    category: Optional[str] = None
    location: Optional[LocationParam] = None
    limit: Optional[int] = Field(default=None, gt=0)


class SearchRequest(RequestModel):
    query: Optional[str] = None
    category: Optional[str] = None
    location: Optional[LocationParam] = None
    limit: Optional[int] = Field(default=None, gt=0)
    sentiment: Optional[Sentiment] = None
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)


class NearbyRequest(RequestModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius: Optional[float] = Field(default=None, gt=0)
    limit: int = Field(default=10, gt=0)


class SimilarRequest(RequestModel):
    place_id: str = Field(min_length=1)
    limit: int = Field(default=10, gt=0)


class SentimentRequest(RequestModel):
    sentiment: Sentiment
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    limit: Optional[int] = Field(default=None, gt=0)


class RecommendationRequest(RequestModel):
    mood: Optional[str] = None
    category: Optional[str] = None
    location: Optional[LocationParam] = None
    limit: int = Field(default=10, gt=0)


class PlaceInput(RequestModel):
    place_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    address: str = ''
    location: LocationParam
    category: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    user_rating: Optional[float] = Field(default=None, ge=0, le=5)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    sentiment: Optional[Sentiment] = None
    last_visited: Optional[datetime] = None
    visit_count: int = Field(default=0, ge=0)

    @field_validator('tags')
    @classmethod
    def _dedupe_tags(cls, tags: List[str]) -> List[str]:
        return list(dict.fromkeys(tags))

    def to_place(self) -> Place:
        return Place(place_id=self.place_id,
                     name=self.name,
                     address=self.address,
                     location=Location(lat=self.location.lat, lng=self.location.lng),
                     category=self.category,
                     rating=self.rating,
                     user_rating=self.user_rating,
                     tags=list(self.tags),
                     notes=self.notes,
                     sentiment=self.sentiment,
                     last_visited=parse_datetime(self.last_visited),
                     visit_count=self.visit_count)


class VisitInput(RequestModel):
    date: datetime
    duration: Optional[int] = Field(default=None, ge=0)
    companions: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    sentiment: Optional[Sentiment] = None

    def to_visit(self) -> Visit:
        return Visit(date=parse_datetime(self.date),
                     duration=self.duration,
                     companions=list(self.companions),
                     notes=self.notes,
                     rating=self.rating,
                     sentiment=self.sentiment)


class RelateRequest(RequestModel):
    place_id: str = Field(min_length=1)
    other_place_id: str = Field(min_length=1)
    kind: RelationKind


def parse_request(model: Type[ModelT], data: Optional[Dict[str, Any]] = None) -> ModelT:
    """Validate raw parameters into a request model.

    None values are treated as absent so tool callers can pass optional
    arguments through unchanged.

    Args:
        model: Request model class
        data: Raw parameters

    Returns:
        Validated model instance

    Raises:
        RequestValidationError: With one entry per offending field
    """
    if isinstance(data, model):
        return data
    raw = {k: v for k, v in (data or {}).items() if v is not None}
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        errors = []
        for err in exc.errors():
            errors.append({
                'field': '.'.join(str(loc) for loc in err['loc']),
                'message': err['msg'],
            })
        raise RequestValidationError(errors) from exc
