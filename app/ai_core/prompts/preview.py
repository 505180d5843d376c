"""
Prompt: Curate Preview

Short main-ideas summary shown next to the recommendations.
"""

PREVIEW_SYSTEM_PROMPT = (
    "You are a content summarizer. Extract and present main ideas from text "
    "in 2-3 concise sentences."
)

PREVIEW_USER_PROMPT = """Extract the main ideas and key concepts from the following text. Present them in 2-3 concise sentences that capture the core content.

Text: {input_text}

Main ideas:"""

PREVIEW_FALLBACK = "Preview generation failed - processing continues..."
