# AI Core module

"""
AI Core Module - LLM and embedding calls around a knowledge write.

Key responsibilities:
- Embedding generation for stored content
- Text transformation for update/merge recommendations
- Preview summaries for the curate screen
"""
