from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Curator"
    debug: bool = False

    # Supabase (Postgres + pgvector)
    supabase_url: str = ""
    supabase_key: str = ""  # service_role key for server-side writes
    knowledge_table: str = "knowledge_items"
    record_store_backend: str = "supabase"  # "supabase" or "memory"

    # LLM + embeddings (via gen_ai_hub proxy)
    # No API key needed - uses gen_ai_hub proxy
    openai_model: str = "gpt-4o"
    embedding_model: str = "text-embedding-ada-002"
    temperature: float = 0.2
    transformation_temperature: float = 0.3

    # Recommendation backend (classification + similarity search)
    recommendation_api_url: str = "http://localhost:8001"
    recommendation_timeout: int = 60  # Seconds
    similarity_threshold: float = 0.8

    # Upsert behaviour
    merge_separator: str = "\n\n---\n\n"

    model_config = ConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
