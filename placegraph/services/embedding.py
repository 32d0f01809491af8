"""
Embedding providers: a model-backed variant that never fails its caller and a
deterministic hash variant used when no model is configured.
"""

import math
import re
from typing import List, Optional

from ..models.core import Place
from ..utils.bedrock_embed import BedrockEmbed
from ..utils.config import EmbeddingConfig
from ..utils.logging_config import get_logger
from .backends import EmbeddingBackend

logger = get_logger(__name__)

_WHITESPACE = re.compile(r'\s+')


def build_place_text(place: Place) -> str:
    """Text used to embed a place: name, category, address, tags, notes."""
    parts = [place.name]
    if place.category:
        parts.append(place.category)
    if place.address:
        parts.append(place.address)
    if place.tags:
        parts.extend(place.tags)
    if place.notes:
        parts.append(place.notes)
    return ' '.join(parts)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def word_hash(word: str) -> int:
    """32-bit signed rolling hash (h * 31 + c) over UTF-16 code units."""
    encoded = word.encode('utf-16-le')
    h = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32((h << 5) - h + code_unit)
    return h


class DeterministicHashEmbedding:
    """Reproducible embedding computed from the text alone."""

    def __init__(self, dimension: int):
        self.dimension = dimension

    def embed(self, text: str) -> List[float]:
        # A leading or trailing whitespace run yields an empty word, which still counts
        words = _WHITESPACE.split(text.lower())
        vector = [0.0] * self.dimension

        for word in words:
            h = word_hash(word)
            for dim in range(self.dimension):
                value = math.sin(h + dim) * 0.5 + 0.5
                vector[dim] += value / len(words)

        magnitude = math.sqrt(sum(v * v for v in vector))
        if magnitude > 0:
            return [v / magnitude for v in vector]
        return vector

    def embed_place(self, place: Place) -> List[float]:
        return self.embed(build_place_text(place))


class ModelBackedEmbedding:
    """Embedding from an external model, degrading to the hash variant on any failure."""

    def __init__(self, backend: EmbeddingBackend, dimension: int, fallback: Optional[DeterministicHashEmbedding] = None):
        self.backend = backend
        self.dimension = dimension
        self.fallback = fallback or DeterministicHashEmbedding(dimension)

    def _embed(self, text: str, input_type: str) -> List[float]:
        try:
            vector = self.backend.embed(text, input_type=input_type)
        except Exception as e:
            logger.warning(f'Model embedding failed, using deterministic fallback: {e}')
            return self.fallback.embed(text)

        if not isinstance(vector, list) or len(vector) != self.dimension:
            logger.warning('Model returned a malformed embedding, using deterministic fallback')
            return self.fallback.embed(text)
        return vector

    def embed(self, text: str) -> List[float]:
        """Embed free-text query input."""
        return self._embed(text, 'search_query')

    def embed_place(self, place: Place) -> List[float]:
        return self._embed(build_place_text(place), 'search_document')


def create_embedding_provider(config: EmbeddingConfig):
    """
    Build the embedding provider selected by configuration.

    Args:
        config: EmbeddingConfig instance

    Returns:
        ModelBackedEmbedding when provider is 'bedrock' and the client could be
        created, DeterministicHashEmbedding otherwise
    """
    if config.provider != 'bedrock':
        logger.info(f'Using deterministic hash embeddings (dimension {config.dimension})')
        return DeterministicHashEmbedding(config.dimension)

    try:
        client = BedrockEmbed(config)
    except Exception as e:
        logger.warning(f'Bedrock embedding client unavailable, using deterministic hash embeddings: {e}')
        return DeterministicHashEmbedding(config.dimension)

    return ModelBackedEmbedding(client, config.dimension)
