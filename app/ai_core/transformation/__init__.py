from app.ai_core.transformation.knowledge_transformer import (
    KnowledgeTransformer,
    TransformationError,
)

__all__ = ["KnowledgeTransformer", "TransformationError"]
