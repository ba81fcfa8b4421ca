"""
Centralized configuration for the order support chatbot.

All settings are loaded from environment variables via .env file.
The resulting object is immutable and handed to components at construction.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    # LLM provider selection
    llm_provider: str = Field(default="openai", env="LLM_PROVIDER")  # openai | bedrock
    max_tokens: int = Field(default=300, env="MAX_TOKENS")
    temperature: float = Field(default=0.3, env="TEMPERATURE")
    generation_timeout_seconds: float = Field(default=10.0, env="GENERATION_TIMEOUT_SECONDS")
    embedding_timeout_seconds: float = Field(default=8.0, env="EMBEDDING_TIMEOUT_SECONDS")

    # OpenAI-compatible endpoint (OpenAI, Azure, GitHub Models)
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, env="OPENAI_BASE_URL")
    openai_llm_model: str = Field(default="gpt-4o-mini", env="OPENAI_LLM_MODEL")
    openai_embed_model: str = Field(default="text-embedding-3-small", env="OPENAI_EMBED_MODEL")

    # AWS / Bedrock
    aws_region: str = Field(default="us-east-1", env="AWS_REGION")
    bedrock_llm_model_id: str = Field(
        default="us.anthropic.claude-sonnet-4-20250514-v1:0", env="BEDROCK_LLM_MODEL_ID"
    )
    bedrock_embed_model_id: str = Field(
        default="amazon.titan-embed-text-v2:0", env="BEDROCK_EMBED_MODEL_ID"
    )

    # Knowledge base
    pinecone_api_key: str = Field(default="", env="PINECONE_API_KEY")
    pinecone_index_name: str = Field(default="support-faqs", env="PINECONE_INDEX_NAME")
    pinecone_namespace: str = Field(default="faq", env="PINECONE_NAMESPACE")
    faq_min_similarity: float = Field(default=0.0, env="FAQ_MIN_SIMILARITY")
    embedding_cache_size: int = Field(default=0, env="EMBEDDING_CACHE_SIZE")

    # Order-status fallback provider
    order_status_url: str = Field(default="http://localhost:8000/api", env="ORDER_STATUS_URL")
    order_status_timeout_seconds: float = Field(default=5.0, env="ORDER_STATUS_TIMEOUT_SECONDS")

    # Behaviour engine
    behavior_window_minutes: int = Field(default=10, env="BEHAVIOR_WINDOW_MINUTES")
    behavior_event_limit: int = Field(default=200, env="BEHAVIOR_EVENT_LIMIT")
    prompt_dedupe: bool = Field(default=False, env="PROMPT_DEDUPE")

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./support.db", env="DATABASE_URL")

    # API
    api_host: str = Field(default="0.0.0.0", env="API_HOST")
    api_port: int = Field(default=8000, env="API_PORT")
    api_prefix: str = Field(default="/api", env="API_PREFIX")
    api_title: str = Field(default="Order Support Chatbot API", env="API_TITLE")
    api_version: str = Field(default="1.0.0", env="API_VERSION")
    cors_origins: str = Field(default="http://localhost:5173", env="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
        frozen = True

    @property
    def is_bedrock(self) -> bool:
        return self.llm_provider.lower() == "bedrock"

    @property
    def is_openai(self) -> bool:
        return self.llm_provider.lower() == "openai"

    @property
    def embed_model_id(self) -> str:
        if self.is_bedrock:
            return self.bedrock_embed_model_id
        return self.openai_embed_model

    @property
    def llm_model_id(self) -> str:
        if self.is_bedrock:
            return self.bedrock_llm_model_id
        return self.openai_llm_model

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
