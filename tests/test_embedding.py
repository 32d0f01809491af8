import math

import pytest

from placegraph.models.core import Location, Place
from placegraph.services.embedding import (DeterministicHashEmbedding, ModelBackedEmbedding, build_place_text,
                                           create_embedding_provider, word_hash)
from placegraph.utils.config import EmbeddingConfig


def _config(provider: str) -> EmbeddingConfig:
    return EmbeddingConfig(provider=provider,
                           region='us-east-1',
                           model_id='amazon.titan-embed-text-v2:0',
                           dimension=8,
                           retry_attempts=1,
                           retry_delay=0.0,
                           timeout=1.0)


def test_word_hash_is_a_signed_rolling_hash() -> None:
    assert word_hash('') == 0
    assert word_hash('a') == 97
    assert word_hash('ab') == 97 * 31 + 98


def test_word_hash_wraps_to_signed_32_bits() -> None:
    assert word_hash('beach') == 93610339
    assert word_hash('overflowing') == -1130083168
    assert word_hash('restaurant') == -1772467395
    assert word_hash('a much longer word that overflows') == -686127349


def test_hash_embedding_is_reproducible() -> None:
    first = DeterministicHashEmbedding(64).embed('Quiet beach with great coffee')
    second = DeterministicHashEmbedding(64).embed('Quiet beach with great coffee')
    assert first == second
    assert len(first) == 64


def test_hash_embedding_matches_recorded_values() -> None:
    # Values recorded once; they must not depend on the running process
    vector = DeterministicHashEmbedding(4).embed('Overflowing')
    assert vector == pytest.approx([0.015433240790856917, 0.11433902724265618, 0.51512642578671508, 0.84931335052741197],
                                   rel=1e-12)


def test_hash_embedding_is_case_insensitive() -> None:
    embedder = DeterministicHashEmbedding(32)
    assert embedder.embed('Bondi Beach') == embedder.embed('bondi beach')


def test_hash_embedding_has_unit_norm() -> None:
    embedder = DeterministicHashEmbedding(128)
    for text in ['beach', 'Sydney Opera House harbour views', '  padded text  ', '']:
        vector = embedder.embed(text)
        norm = math.sqrt(sum(v * v for v in vector))
        assert norm == pytest.approx(1.0, abs=1e-9)


def test_different_texts_give_different_vectors() -> None:
    embedder = DeterministicHashEmbedding(32)
    assert embedder.embed('museum') != embedder.embed('beach')


def test_place_text_order_skips_missing_parts() -> None:
    place = Place(place_id='p1',
                  name='Bondi Beach',
                  address='Bondi NSW 2026',
                  location=Location(lat=-33.89, lng=151.27),
                  category='Beach',
                  tags=['surf', 'sand'],
                  notes='Busy on weekends')
    assert build_place_text(place) == 'Bondi Beach Beach Bondi NSW 2026 surf sand Busy on weekends'

    bare = Place(place_id='p2', name='Somewhere', address='', location=Location(lat=0, lng=0))
    assert build_place_text(bare) == 'Somewhere'


class _Model:

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.input_types = []

    def embed(self, text, input_type='search_document'):
        self.input_types.append(input_type)
        if self.error:
            raise self.error
        return self.result


def test_model_embedding_is_used_when_it_works() -> None:
    provider = ModelBackedEmbedding(_Model(result=[0.5] * 4), dimension=4)
    assert provider.embed('anything') == [0.5] * 4


def test_model_failure_falls_back_to_hash() -> None:
    provider = ModelBackedEmbedding(_Model(error=RuntimeError('throttled')), dimension=16)
    assert provider.embed('beach') == DeterministicHashEmbedding(16).embed('beach')


def test_wrong_length_model_output_falls_back_to_hash() -> None:
    provider = ModelBackedEmbedding(_Model(result=[1.0, 0.0]), dimension=16)
    assert provider.embed('beach') == DeterministicHashEmbedding(16).embed('beach')


def test_provider_defaults_to_hash() -> None:
    provider = create_embedding_provider(_config('hash'))
    assert isinstance(provider, DeterministicHashEmbedding)
    assert provider.dimension == 8


def test_bedrock_client_failure_degrades_to_hash(monkeypatch) -> None:

    def broken_client(config):
        raise RuntimeError('no credentials')

    monkeypatch.setattr('placegraph.services.embedding.BedrockEmbed', broken_client)
    provider = create_embedding_provider(_config('bedrock'))
    assert isinstance(provider, DeterministicHashEmbedding)


def test_bedrock_provider_wraps_client(monkeypatch) -> None:
    monkeypatch.setattr('placegraph.services.embedding.BedrockEmbed', lambda config: _Model(result=[0.0] * 8))
    provider = create_embedding_provider(_config('bedrock'))
    assert isinstance(provider, ModelBackedEmbedding)
    assert provider.embed('x') == [0.0] * 8


def test_queries_and_places_use_their_own_input_type() -> None:
    model = _Model(result=[0.5] * 4)
    provider = ModelBackedEmbedding(model, dimension=4)
    place = Place(place_id='p1', name='Corner Cafe', address='', location=Location(lat=0, lng=0))

    provider.embed('quiet coffee')
    provider.embed_place(place)

    assert model.input_types == ['search_query', 'search_document']
