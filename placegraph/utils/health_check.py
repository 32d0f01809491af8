"""
Health check utilities for the application.
"""

from typing import Any, Dict

from .config import config
from .logging_config import get_logger

logger = get_logger(__name__)


def check_health(orchestrator) -> bool:
    """Check the health of all enabled components.

    Args:
        orchestrator: RetrievalOrchestrator whose backends are checked

    Returns:
        True if all enabled components are healthy, False otherwise
    """
    try:
        health_status = get_health_status(orchestrator)

        # Disabled backends are reported but do not count as unhealthy
        all_healthy = all(status.get('healthy', False) for status in health_status.values() if status.get('enabled', True))

        if all_healthy:
            logger.info('All system components are healthy')
        else:
            logger.warning('Some system components are unhealthy')

        return all_healthy

    except Exception as e:
        logger.error(f'Health check failed: {e}')
        return False


def _check_client(client) -> Dict[str, Any]:
    try:
        return {'healthy': bool(client.health_check())}
    except Exception as e:
        return {'healthy': False, 'error': str(e)}


def get_health_status(orchestrator) -> Dict[str, Any]:
    """Get detailed health status of all components.

    Args:
        orchestrator: RetrievalOrchestrator whose backends are checked

    Returns:
        Dictionary with health status of each component
    """
    health_status = {}

    # Embeddings always answer, the model only decides their quality
    embedder = orchestrator.embedder
    model = getattr(embedder, 'backend', None)
    embedding_status = {
        'enabled': True,
        'healthy': True,
        'provider': 'bedrock' if model is not None else 'hash',
        'dimension': embedder.dimension
    }
    if model is not None and hasattr(model, 'health_check'):
        embedding_status['model_healthy'] = _check_client(model)['healthy']
        embedding_status['model'] = config.embedding.model_id
    health_status['embedding'] = embedding_status

    # Check OpenSearch
    if orchestrator.vector is not None:
        health_status['vector'] = {'enabled': True, 'service': 'Amazon OpenSearch', **_check_client(orchestrator.vector)}
    else:
        health_status['vector'] = {'enabled': False, 'healthy': False, 'service': 'Amazon OpenSearch'}

    # Check Neptune
    if orchestrator.graph is not None:
        health_status['graph'] = {'enabled': True, 'service': 'Amazon Neptune', **_check_client(orchestrator.graph)}
    else:
        health_status['graph'] = {'enabled': False, 'healthy': False, 'service': 'Amazon Neptune'}

    return health_status

