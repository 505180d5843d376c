"""
Embedding Provider

Turns knowledge text into a fixed-dimension vector through the gen_ai_hub proxy.
One call per write; callers decide whether a failure is fatal.
"""

import logging
from typing import List, Optional

from gen_ai_hub.proxy.langchain.openai import OpenAIEmbeddings
from gen_ai_hub.proxy.core.proxy_clients import get_proxy_client

from app.config import get_settings
from app.utils import clean_embedding_text

logger = logging.getLogger(__name__)


class EmbeddingProviderError(Exception):
    """
    Raised when an embedding cannot be generated.
    Non-fatal for upserts - the record is stored without a fresh embedding.
    """

    pass


class EmbeddingProvider:
    """
    Generates embeddings for knowledge content.
    """

    def __init__(self, embeddings: Optional[OpenAIEmbeddings] = None):
        """
        Args:
            embeddings: Pre-built langchain embeddings client (tests inject a mock).
                Defaults to gen_ai_hub OpenAIEmbeddings for the configured model.
        """
        config = get_settings()
        self.model = config.embedding_model

        if embeddings is None:
            self.proxy_client = get_proxy_client("gen-ai-hub")
            embeddings = OpenAIEmbeddings(
                proxy_model_name=config.embedding_model,
                proxy_client=self.proxy_client,
            )
        self.embeddings = embeddings

        logger.info(f"EmbeddingProvider initialized with model {self.model}")

    async def embed(self, text: str) -> List[float]:
        """
        Generate an embedding for a single text.

        Args:
            text: Text to embed; newlines are collapsed before sending

        Returns:
            Embedding vector

        Raises:
            EmbeddingProviderError: If the text is empty or the model call fails
        """
        clean_text = clean_embedding_text(text or "")
        if not clean_text:
            raise EmbeddingProviderError("Cannot embed empty text")

        try:
            embedding = await self.embeddings.aembed_query(clean_text)
        except Exception as e:
            logger.error(f"Embedding generation failed: {e}", exc_info=True)
            raise EmbeddingProviderError(f"Failed to generate embedding: {e}") from e

        if not embedding:
            raise EmbeddingProviderError("Embedding model returned an empty vector")

        logger.debug(f"Generated embedding, dimension: {len(embedding)}")
        return list(embedding)
