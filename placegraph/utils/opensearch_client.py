"""
OpenSearch client wrapper for place vector similarity search.
"""

from typing import Any, Dict, List, Optional, Tuple

import boto3
from opensearchpy import OpenSearch, RequestsHttpConnection
from opensearchpy.exceptions import NotFoundError, OpenSearchException
from requests_aws4auth import AWS4Auth

from .config import OpenSearchConfig
from .logging_config import get_logger

logger = get_logger(__name__)


def score_to_cosine(score: float) -> float:
    """Undo the cosinesimil rescaling, which reports (1 + cos) / 2."""
    return 2 * score - 1


def cosine_to_score(cosine: float) -> float:
    return (1 + cosine) / 2


class OpenSearchError(Exception):
    """Custom exception for OpenSearch errors."""
    pass


class OpenSearchClient:
    """OpenSearch client with AWS authentication and error handling.

    Places are stored one document per place, keyed by place id, with the
    embedding in a cosine k-NN field and the coordinate in a geo_point field.
    """

    def __init__(self, config: OpenSearchConfig):
        """
        Initialize OpenSearch client.

        Args:
            config: OpenSearchConfig instance with connection parameters
        """
        self.config = config
        self.index_name = config.index_name

        # Get AWS credentials and create auth
        credentials = boto3.Session().get_credentials()
        auth = AWS4Auth(region=config.region, service=config.service, refreshable_credentials=credentials)
        # Parse endpoint to get host
        endpoint = config.endpoint
        if '://' in endpoint:
            # Remove protocol if present
            endpoint = endpoint.split('://', 1)[1]

        # Create OpenSearch client
        self.client = OpenSearch(hosts=[{
            'host': endpoint,
            'port': config.port
        }],
                                 http_auth=auth,
                                 use_ssl=True,
                                 verify_certs=True,
                                 timeout=config.timeout,
                                 connection_class=RequestsHttpConnection)

        logger.info(f'Initialized OpenSearch client for endpoint: {config.endpoint}')

    def create_index_if_not_exists(self) -> str:
        """
        Create the places index if it doesn't exist.

        Returns:
            'exists', 'created' or 'failed'

        Raises:
            OpenSearchError: If the index cannot be checked or created
        """
        try:
            if self.client.indices.exists(index=self.index_name):
                logger.debug(f'Index {self.index_name} already exists')
                return 'exists'

            index_body = {
                'mappings': {
                    'properties': {
                        'place_id': {
                            'type': 'keyword'
                        },
                        'name': {
                            'type': 'text'
                        },
                        'address': {
                            'type': 'text'
                        },
                        'category': {
                            'type': 'keyword'
                        },
                        'sentiment': {
                            'type': 'keyword'
                        },
                        'rating': {
                            'type': 'float'
                        },
                        'user_rating': {
                            'type': 'float'
                        },
                        'tags': {
                            'type': 'keyword'
                        },
                        'notes': {
                            'type': 'text'
                        },
                        'geo': {
                            'type': 'geo_point'
                        },
                        'latitude': {
                            'type': 'float'
                        },
                        'longitude': {
                            'type': 'float'
                        },
                        'visit_count': {
                            'type': 'integer'
                        },
                        'last_visited': {
                            'type': 'date'
                        },
                        'embedding': {
                            'type': 'knn_vector',
                            'dimension': self.config.dimension,
                            'method': {
                                'name': 'hnsw',
                                'space_type': 'cosinesimil',
                                'engine': 'nmslib'
                            }
                        }
                    }
                },
                'settings': {
                    'index': {
                        'knn': True,
                        'knn.algo_param.ef_search': 100
                    }
                }
            }

            response = self.client.indices.create(index=self.index_name, body=index_body)
            if response.get('acknowledged', False):
                logger.info(f'Created index {self.index_name}')
                return 'created'
            return 'failed'
        except OpenSearchException as e:
            logger.error(f'Error creating index {self.index_name}: {e}')
            raise OpenSearchError(f'Failed to create index: {e}')
        except Exception as e:
            logger.error(f'Unexpected error creating index {self.index_name}: {e}')
            raise OpenSearchError(f'Unexpected error creating index: {e}')

    def upsert(self, place_id: str, vector: List[float], payload: Dict[str, Any]) -> bool:
        """
        Index or replace a place document.

        Args:
            place_id: Place identifier, used as the document id
            vector: Place embedding
            payload: Flat place document

        Returns:
            True if indexing was successful, False otherwise
        """
        document = dict(payload)
        document['embedding'] = vector
        document['geo'] = {'lat': payload['latitude'], 'lon': payload['longitude']}

        try:
            response = self.client.index(index=self.index_name, id=place_id, body=document, refresh=True)

            success = response.get('result') in ['created', 'updated']
            if success:
                logger.debug(f'Indexed place {place_id} in {self.index_name}')
            else:
                logger.warning(f'Unexpected result indexing place {place_id}: {response}')

            return success

        except OpenSearchException as e:
            logger.error(f'Error indexing place {place_id}: {e}')
            raise OpenSearchError(f'Failed to index place: {e}')
        except Exception as e:
            logger.error(f'Unexpected error indexing place {place_id}: {e}')
            raise OpenSearchError(f'Unexpected error indexing place: {e}')

    @staticmethod
    def build_filter_clauses(filters) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """Translate VectorFilters into bool filter and must_not clauses."""
        clauses = []
        if filters.category:
            clauses.append({'term': {'category': filters.category}})
        if filters.sentiment:
            clauses.append({'term': {'sentiment': filters.sentiment}})
        if filters.min_rating is not None:
            clauses.append({'range': {'user_rating': {'gte': filters.min_rating}}})
        if filters.has_geo:
            clauses.append({
                'geo_distance': {
                    'distance': f'{filters.radius_meters}m',
                    'geo': {
                        'lat': filters.lat,
                        'lon': filters.lng
                    }
                }
            })

        exclusions = []
        if filters.exclude_ids:
            exclusions.append({'terms': {'place_id': list(filters.exclude_ids)}})
        return clauses, exclusions

    def search(self, vector: List[float], filters, limit: int, score_threshold: float) -> List[Tuple[Dict[str, Any], float]]:
        """
        Perform vector similarity search with structured filters.

        Args:
            vector: Query vector for similarity search
            filters: VectorFilters instance
            limit: Number of results to return
            score_threshold: Minimum cosine similarity, lower hits are dropped

        Returns:
            List of (payload, cosine similarity) tuples, best first
        """
        clauses, exclusions = self.build_filter_clauses(filters)

        try:
            search_body = {
                'size': limit,
                'min_score': cosine_to_score(score_threshold),
                'query': {
                    'bool': {
                        'must': [{
                            'knn': {
                                'embedding': {
                                    'vector': vector,
                                    'k': limit
                                }
                            }
                        }],
                        'filter': clauses,
                        'must_not': exclusions
                    }
                },
                '_source': {
                    'excludes': ['embedding', 'geo']  # Don't return vectors in results
                }
            }

            response = self.client.search(index=self.index_name, body=search_body)

            results = []
            for hit in response['hits']['hits']:
                similarity = score_to_cosine(float(hit['_score']))
                if similarity >= score_threshold:
                    results.append((hit['_source'], similarity))

            logger.debug(f'Vector search returned {len(results)} places')
            return results

        except OpenSearchException as e:
            logger.error(f'Error performing vector search: {e}')
            raise OpenSearchError(f'Vector search failed: {e}')
        except Exception as e:
            logger.error(f'Unexpected error in vector search: {e}')
            raise OpenSearchError(f'Unexpected error in vector search: {e}')

    def retrieve_vector(self, place_id: str) -> Optional[List[float]]:
        """
        Get the stored embedding of a place.

        Args:
            place_id: Place identifier

        Returns:
            Embedding if the place is indexed, None otherwise
        """
        try:
            response = self.client.get(index=self.index_name, id=place_id, _source_includes=['embedding'])
            return response.get('_source', {}).get('embedding')

        except NotFoundError:
            logger.debug(f'Place {place_id} not found in {self.index_name}')
            return None
        except OpenSearchException as e:
            logger.error(f'Error retrieving vector for {place_id}: {e}')
            raise OpenSearchError(f'Failed to retrieve vector: {e}')
        except Exception as e:
            logger.error(f'Unexpected error retrieving vector for {place_id}: {e}')
            raise OpenSearchError(f'Unexpected error retrieving vector: {e}')

    def delete(self, place_id: str) -> bool:
        """
        Delete a place document from the index.

        Args:
            place_id: Place identifier

        Returns:
            True if deletion was successful, False if the place was not indexed
        """
        try:
            response = self.client.delete(index=self.index_name, id=place_id, refresh=True)

            success = response.get('result') == 'deleted'
            if success:
                logger.debug(f'Deleted place {place_id} from {self.index_name}')
            else:
                logger.warning(f'Place {place_id} not found for deletion')

            return success

        except NotFoundError:
            logger.warning(f'Place {place_id} not found for deletion')
            return False
        except OpenSearchException as e:
            logger.error(f'Error deleting place {place_id}: {e}')
            raise OpenSearchError(f'Failed to delete place: {e}')
        except Exception as e:
            logger.error(f'Unexpected error deleting place {place_id}: {e}')
            raise OpenSearchError(f'Unexpected error deleting place: {e}')

    def health_check(self) -> bool:
        """
        Perform a health check on the OpenSearch service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            response = self.client.indices.exists(index=self.index_name)

            return response in [True, False]

        except Exception as e:
            logger.error(f'OpenSearch health check failed: {e}')
            return False
