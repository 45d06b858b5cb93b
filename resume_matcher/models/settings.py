"""
Matching configuration, populated from environment variables
"""
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, validator


class MatchingSettings(BaseModel):
    """Runtime configuration for the matching pipeline and its collaborators"""

    # LLM completion endpoint
    llm_api_key: Optional[str] = Field(default=None, description="Bearer token for the completion endpoint")
    llm_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI-compatible API base URL")
    llm_model: str = Field(default="gpt-4o-mini", description="Chat completion model name")
    llm_temperature: float = Field(default=0.1, ge=0.0, le=2.0, description="Generation temperature")
    llm_max_tokens: int = Field(default=2000, ge=1, description="Maximum tokens in the scoring response")
    llm_timeout: float = Field(default=60.0, gt=0, le=600, description="Per-call timeout in seconds")

    # Recruiter chat assistant
    chat_temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="Temperature for message classification")
    chat_max_tokens: int = Field(default=1500, ge=1, description="Maximum tokens in the assistant response")

    # Candidate store
    mongo_details: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    db_name: str = Field(default="resume_matcher_db", description="MongoDB database name")

    # Pipeline tuning
    batch_size: int = Field(default=5, ge=1, le=50, description="Concurrent scorer calls per batch")
    batch_delay_seconds: float = Field(default=0.5, ge=0.0, description="Pause between batches")
    qualify_threshold: float = Field(default=50.0, ge=0.0, le=100.0, description="Minimum match score to report")
    prescreen_threshold: float = Field(default=0.15, ge=0.0, le=1.0, description="Minimum keyword coverage")
    max_retries: int = Field(default=2, ge=0, le=10, description="Extra scorer attempts per candidate")
    max_resume_chars: int = Field(default=8000, ge=100, description="Résumé characters sent to the LLM")

    @validator('llm_base_url')
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @validator('llm_api_key')
    def blank_key_is_missing(cls, v):
        if v is not None and not v.strip():
            return None
        return v


_ENV_FIELDS = {
    "llm_base_url": "LLM_BASE_URL",
    "llm_model": "LLM_MODEL",
    "llm_temperature": "LLM_TEMPERATURE",
    "llm_max_tokens": "LLM_MAX_TOKENS",
    "llm_timeout": "LLM_TIMEOUT",
    "chat_temperature": "CHAT_TEMPERATURE",
    "chat_max_tokens": "CHAT_MAX_TOKENS",
    "mongo_details": "MONGO_DETAILS",
    "db_name": "DB_NAME",
    "batch_size": "BATCH_SIZE",
    "batch_delay_seconds": "BATCH_DELAY_SECONDS",
    "qualify_threshold": "QUALIFY_THRESHOLD",
    "prescreen_threshold": "PRESCREEN_THRESHOLD",
    "max_retries": "MAX_RETRIES",
    "max_resume_chars": "MAX_RESUME_CHARS",
}


def load_settings() -> MatchingSettings:
    """Build settings from the process environment (and a local .env file)."""
    load_dotenv()

    values = {
        field: os.environ[env_name]
        for field, env_name in _ENV_FIELDS.items()
        if os.getenv(env_name) not in (None, "")
    }
    values["llm_api_key"] = os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY")
    return MatchingSettings(**values)


@lru_cache()
def get_settings() -> MatchingSettings:
    return load_settings()
