"""
Recommendation Models

Shapes returned by the external recommendation service, which classifies raw
text and runs the similarity search against existing knowledge.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from app.models.knowledge import ActionType, DEFAULT_MAIN_CATEGORY


class Recommendation(BaseModel):
    """One candidate classification for the submitted text."""

    option_number: int = Field(0, description="Position in the recommendation list")
    main_category: str = Field(DEFAULT_MAIN_CATEGORY, description="Main category")
    sub_category: str = Field("General", description="Sub-category")
    tags: List[str] = Field(default_factory=list, description="Suggested tags")
    instructions: str = Field(
        "", description="Transformation steps for the LLM pass"
    )
    change: str = Field("", description="Human-readable summary of the change")
    action_type: ActionType = Field(
        ActionType.CREATE_NEW, description="create_new, update or merge"
    )


class RecommendationResponse(BaseModel):
    """Full response from the recommendation service."""

    status: str = Field("success", description="Status reported by the service")
    recommendations: List[Recommendation] = Field(default_factory=list)
    similar_main_category: Optional[str] = Field(
        None, description="Main category of the closest existing record"
    )
    similar_sub_category: Optional[str] = Field(
        None, description="Sub-category of the closest existing record"
    )
    similarity_score: Optional[float] = Field(
        None, description="Cosine similarity to the closest existing record"
    )
    goal_provided: bool = Field(False, description="Whether a learning goal was sent")
    goal_relevance_score: Optional[float] = Field(
        None, description="Relevance of the text to the goal (0-10)"
    )
    goal_relevance_explanation: Optional[str] = Field(
        None, description="Why the text is (not) relevant to the goal"
    )

    @property
    def similar_knowledge(self) -> Optional[str]:
        """Category path of the closest existing record, if any."""
        if not self.similar_main_category:
            return None
        return f"{self.similar_main_category} → {self.similar_sub_category}"
