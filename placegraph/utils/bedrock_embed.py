"""
Amazon Bedrock embedding client wrapper with retry logic and error handling.
"""

import json
import random
import time
from typing import List

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import EmbeddingConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class BedrockEmbedError(Exception):
    """Custom exception for Bedrock embedding errors."""
    pass


class BedrockEmbed:
    """Amazon Bedrock embedding client with retry logic and error handling."""

    def __init__(self, config: EmbeddingConfig):
        """
        Initialize Bedrock embedding client.

        Args:
            config: EmbeddingConfig instance with connection parameters
        """
        self.config = config
        self.model_id = config.model_id
        self.output_embedding_length = config.dimension

        # Bound every call; retries are handled below
        client_config = Config(connect_timeout=config.timeout, read_timeout=config.timeout, retries={'max_attempts': 0})
        self.bedrock = boto3.client(service_name='bedrock-runtime', region_name=config.region, config=client_config)

        logger.info(f'Initialized Bedrock Embed client with model: {self.model_id}')

    def _call_with_retry(self, data: dict) -> dict:
        """
        Make a Bedrock API call with retry logic.

        Args:
            data: Request data dictionary

        Returns:
            Response dictionary from Bedrock API

        Raises:
            BedrockEmbedError: If all retry attempts fail
        """
        body = json.dumps(data)

        for attempt in range(self.config.retry_attempts):
            try:
                logger.debug(f'Bedrock Embed request attempt {attempt + 1}/{self.config.retry_attempts}')

                response = self.bedrock.invoke_model(body=body,
                                                     modelId=self.model_id,
                                                     accept='application/json',
                                                     contentType='application/json')

                result = json.loads(response.get('body').read())
                logger.debug('Bedrock Embed request successful')
                return result

            except (ClientError, BotoCoreError) as e:
                logger.warning(f'Bedrock Embed attempt {attempt + 1}/{self.config.retry_attempts} failed: {e}')

                if attempt < self.config.retry_attempts - 1:
                    # Exponential backoff with jitter
                    delay = self.config.retry_delay * (2**attempt) + random.uniform(0, 1)
                    time.sleep(delay)
                else:
                    raise BedrockEmbedError(f'Bedrock Embed failed after {self.config.retry_attempts} attempts: {e}')

            except Exception as e:
                logger.error(f'Unexpected error in Bedrock Embed: {e}')
                raise BedrockEmbedError(f'Unexpected Bedrock Embed error: {e}')

        raise BedrockEmbedError(f'Bedrock Embed failed after {self.config.retry_attempts} attempts')

    def embed(self, text: str, input_type: str = 'search_document') -> List[float]:
        """
        Generate an embedding for place or query text.

        Args:
            text: Text to embed
            input_type: 'search_document' for places, 'search_query' for queries (Cohere only)

        Returns:
            List of embedding values with the configured dimension

        Raises:
            BedrockEmbedError: If embedding generation fails or the response is malformed
        """
        try:
            if 'titan' in self.model_id.lower():
                data = {'inputText': text, 'dimensions': self.output_embedding_length}
                response = self._call_with_retry(data)
                embedding = response.get('embedding')

            elif 'cohere' in self.model_id.lower():
                if self.output_embedding_length != 1024:
                    raise BedrockEmbedError(f'Cohere models only support 1024 dimensions, got {self.output_embedding_length}')

                data = {'input_type': input_type, 'texts': [text]}
                response = self._call_with_retry(data)
                embeddings = response.get('embeddings') or []
                embedding = embeddings[0] if embeddings else None

            else:
                raise BedrockEmbedError(f'Unsupported model for embedding: {self.model_id}')

        except BedrockEmbedError:
            raise
        except Exception as e:
            logger.error(f'Error generating embedding: {e}')
            raise BedrockEmbedError(f'Embedding failed: {e}')

        if not isinstance(embedding, list) or len(embedding) != self.output_embedding_length:
            raise BedrockEmbedError(f'Malformed embedding response from {self.model_id}')
        return [float(v) for v in embedding]

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock embedding service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            test_embedding = self.embed('test')
            return len(test_embedding) == self.output_embedding_length

        except Exception as e:
            logger.error(f'Bedrock Embed health check failed: {e}')
            return False
