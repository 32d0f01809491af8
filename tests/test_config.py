from placegraph.utils.config import load_config

ENV_VARS = ('EMBEDDING_PROVIDER', 'EMBEDDING_DIMENSION', 'NEPTUNE_ENDPOINT', 'OPENSEARCH_ENDPOINT', 'OPENSEARCH_SERVICE',
            'BACKEND_CALL_TIMEOUT_SECONDS', 'DEFAULT_RADIUS_METERS', 'VECTOR_SCORE_THRESHOLD', 'PLACES_USER_ID')


def _clear(monkeypatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_leave_remote_backends_out(monkeypatch) -> None:
    _clear(monkeypatch)

    config = load_config()

    assert config.embedding.provider == 'hash'
    assert config.embedding.dimension == 1024
    assert not config.neptune.enabled
    assert not config.opensearch.enabled
    assert config.opensearch.service == 'es'
    assert config.retrieval.default_radius_meters == 5000
    assert config.retrieval.score_threshold == 0.3
    assert config.retrieval.similar_score_threshold == 0.5
    assert config.retrieval.call_timeout == 10


def test_environment_overrides(monkeypatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv('EMBEDDING_PROVIDER', 'Bedrock')
    monkeypatch.setenv('EMBEDDING_DIMENSION', '256')
    monkeypatch.setenv('OPENSEARCH_ENDPOINT', 'https://search.example.com')
    monkeypatch.setenv('NEPTUNE_ENDPOINT', 'graph.example.com')
    monkeypatch.setenv('BACKEND_CALL_TIMEOUT_SECONDS', '2.5')
    monkeypatch.setenv('PLACES_USER_ID', 'alex')

    config = load_config()

    assert config.embedding.provider == 'bedrock'
    assert config.opensearch.dimension == 256
    assert config.opensearch.enabled
    assert config.neptune.enabled
    assert config.opensearch.timeout == 2.5
    assert config.embedding.timeout == 2.5
    assert config.retrieval.user_id == 'alex'
