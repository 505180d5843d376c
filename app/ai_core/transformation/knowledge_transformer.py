"""
Knowledge Transformer

LLM passes that run before a knowledge item is written:
- transform: restructure submitted text for update/merge recommendations
- generate_preview: 2-3 sentence summary for the curate screen
"""

import logging
from typing import List, Optional

from gen_ai_hub.proxy.langchain.openai import ChatOpenAI
from gen_ai_hub.proxy.core.proxy_clients import get_proxy_client
from langchain_core.prompts import ChatPromptTemplate

from app.ai_core.prompts import (
    TRANSFORMATION_SYSTEM_PROMPT,
    TRANSFORMATION_USER_PROMPT,
    PREVIEW_SYSTEM_PROMPT,
    PREVIEW_USER_PROMPT,
)
from app.config import get_settings
from app.models.knowledge import ActionType

logger = logging.getLogger(__name__)


class TransformationError(Exception):
    """
    Raised when the LLM fails to transform or summarize text.
    This is an upstream error (502) - nothing was saved.
    """

    pass


class KnowledgeTransformer:
    """
    Runs the text transformation and preview prompts.
    """

    def __init__(
        self,
        llm: Optional[ChatOpenAI] = None,
        preview_llm: Optional[ChatOpenAI] = None,
    ):
        """
        Args:
            llm: Chat model for transformations (tests inject a mock)
            preview_llm: Chat model for previews; defaults to a lower-temperature model
        """
        config = get_settings()

        if llm is None or preview_llm is None:
            self.proxy_client = get_proxy_client("gen-ai-hub")

        self.llm = llm or ChatOpenAI(
            proxy_model_name=config.openai_model,
            proxy_client=self.proxy_client,
            temperature=config.transformation_temperature,
        )
        self.preview_llm = preview_llm or ChatOpenAI(
            proxy_model_name=config.openai_model,
            proxy_client=self.proxy_client,
            temperature=config.temperature,
            max_tokens=150,
        )

        self.transformation_prompt = ChatPromptTemplate.from_messages(
            [
                ("system", TRANSFORMATION_SYSTEM_PROMPT),
                ("human", TRANSFORMATION_USER_PROMPT),
            ]
        )
        self.preview_prompt = ChatPromptTemplate.from_messages(
            [
                ("system", PREVIEW_SYSTEM_PROMPT),
                ("human", PREVIEW_USER_PROMPT),
            ]
        )

    async def transform(
        self,
        instructions: str,
        input_text: str,
        action_type: ActionType,
        main_category: str,
        sub_category: str,
        tags: List[str],
        similar_knowledge: Optional[str] = None,
        existing_content: Optional[str] = None,
    ) -> str:
        """
        Transform submitted text according to recommendation instructions.

        create_new returns the input unchanged. update and merge go through
        the LLM; see app.ai_core.prompts.transformation for what each expects.

        Args:
            instructions: Transformation steps from the recommendation
            input_text: Text submitted by the user
            action_type: Action hint from the recommendation
            main_category: Target main category
            sub_category: Target sub-category
            tags: Target tags
            similar_knowledge: Category path of the most similar record, if any
            existing_content: Stored content for this sub-category, if any

        Returns:
            Transformed text

        Raises:
            TransformationError: If the LLM call fails or returns nothing
        """
        action_type = ActionType(action_type)
        if action_type == ActionType.CREATE_NEW:
            return input_text

        logger.info(
            f"Transforming text for {main_category} → {sub_category} ({action_type.value})"
        )

        messages = self.transformation_prompt.format_messages(
            instructions=instructions,
            action_type=action_type.value,
            main_category=main_category,
            sub_category=sub_category,
            tags=", ".join(tags),
            similar_knowledge=similar_knowledge or "None provided",
            existing_content=existing_content or "None",
            input_text=input_text,
        )

        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"Error transforming text with LLM: {e}", exc_info=True)
            raise TransformationError(f"Failed to transform text: {e}") from e

        transformed = (response.content or "").strip()
        if not transformed:
            raise TransformationError("LLM returned an empty transformation")

        logger.info(f"Transformation complete ({len(transformed)} chars)")
        return transformed

    async def generate_preview(self, input_text: str) -> str:
        """
        Summarize the main ideas of a text in 2-3 sentences.

        Raises:
            TransformationError: If the LLM call fails
        """
        messages = self.preview_prompt.format_messages(input_text=input_text)

        try:
            response = await self.preview_llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"Error generating preview: {e}", exc_info=True)
            raise TransformationError(f"Failed to generate preview: {e}") from e

        return (response.content or "").strip()
