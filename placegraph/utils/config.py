"""
Configuration management for backend services and application settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class EmbeddingConfig:
    """Configuration for text embedding generation."""
    provider: str  # 'bedrock' or 'hash'
    region: str
    model_id: str
    dimension: int
    retry_attempts: int
    retry_delay: float
    timeout: float


@dataclass
class NeptuneConfig:
    """Configuration for Amazon Neptune graph database."""
    endpoint: str
    port: int
    region: str

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)


@dataclass
class OpenSearchConfig:
    """Configuration for OpenSearch."""
    endpoint: str
    port: int
    region: str
    service: str
    index_name: str
    dimension: int
    timeout: float

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint)


@dataclass
class RetrievalConfig:
    """Configuration for tiered retrieval."""
    user_id: str
    call_timeout: float
    default_radius_meters: float
    score_threshold: float
    similar_score_threshold: float
    nearby_scan_limit: int


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    embedding: EmbeddingConfig
    neptune: NeptuneConfig
    opensearch: OpenSearchConfig
    retrieval: RetrievalConfig
    mcp: MCPConfig


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')
    dimension = int(os.getenv('EMBEDDING_DIMENSION', '1024'))
    call_timeout = float(os.getenv('BACKEND_CALL_TIMEOUT_SECONDS', '10'))

    # Embedding configuration
    embedding_config = EmbeddingConfig(provider=os.getenv('EMBEDDING_PROVIDER', 'hash').lower(),
                                       region=os.getenv('BEDROCK_EMBED_AWS_REGION', 'us-east-1'),
                                       model_id=os.getenv('BEDROCK_EMBED_MODEL_ID', 'amazon.titan-embed-text-v2:0'),
                                       dimension=dimension,
                                       retry_attempts=int(os.getenv('BEDROCK_EMBED_RETRY_ATTEMPTS', '3')),
                                       retry_delay=float(os.getenv('BEDROCK_EMBED_RETRY_DELAY', '1.0')),
                                       timeout=float(os.getenv('BEDROCK_EMBED_TIMEOUT', str(call_timeout))))

    # Neptune configuration, an empty endpoint leaves the graph tier out
    neptune_config = NeptuneConfig(endpoint=os.getenv('NEPTUNE_ENDPOINT', ''),
                                   port=int(os.getenv('NEPTUNE_PORT', '8182')),
                                   region=os.getenv('NEPTUNE_AWS_REGION', 'us-east-1'))

    # Vector search configuration, an empty endpoint leaves the vector tier out
    opensearch_config = OpenSearchConfig(endpoint=os.getenv('OPENSEARCH_ENDPOINT', ''),
                                         port=int(os.getenv('OPENSEARCH_PORT', '443')),
                                         region=os.getenv('OPENSEARCH_AWS_REGION', 'us-east-1'),
                                         service=os.getenv('OPENSEARCH_SERVICE', 'es'),
                                         index_name=os.getenv('OPENSEARCH_INDEX', 'places'),
                                         dimension=dimension,
                                         timeout=call_timeout)

    # Retrieval configuration
    retrieval_config = RetrievalConfig(user_id=os.getenv('PLACES_USER_ID', 'default-user'),
                                       call_timeout=call_timeout,
                                       default_radius_meters=float(os.getenv('DEFAULT_RADIUS_METERS', '5000')),
                                       score_threshold=float(os.getenv('VECTOR_SCORE_THRESHOLD', '0.3')),
                                       similar_score_threshold=float(os.getenv('SIMILAR_SCORE_THRESHOLD', '0.5')),
                                       nearby_scan_limit=int(os.getenv('NEARBY_SCAN_LIMIT', '1000')))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'stdio'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     embedding=embedding_config,
                     neptune=neptune_config,
                     opensearch=opensearch_config,
                     retrieval=retrieval_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
