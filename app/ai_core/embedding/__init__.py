from app.ai_core.embedding.embedding_provider import (
    EmbeddingProvider,
    EmbeddingProviderError,
)

__all__ = ["EmbeddingProvider", "EmbeddingProviderError"]
