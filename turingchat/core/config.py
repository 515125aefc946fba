"""
Central configuration. All API keys and settings in one place.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Environment ---
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG")

    # --- Matching ---
    # Session ids starting with this marker wait for a second human.
    human_session_prefix: str = Field(default="human", alias="HUMAN_SESSION_PREFIX")
    # Reserved prefix for synthesized automated participants.
    bot_id_prefix: str = Field(default="bot_", alias="BOT_ID_PREFIX")

    # --- Messages ---
    max_message_length: int = Field(default=2000, alias="MAX_MESSAGE_LENGTH")
    reply_timeout_seconds: float = Field(default=20.0, alias="REPLY_TIMEOUT_SECONDS")
    fallback_reply: str = Field(
        default="Sorry, I didn't catch that. Could you say it again?",
        alias="FALLBACK_REPLY",
    )

    # --- LLM ---
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    aiml_api_key: str = Field(default="", alias="AIML_API_KEY")
    aiml_base_url: str = Field(default="https://api.aimlapi.com/v1", alias="AIML_BASE_URL")
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    default_llm_model: str = Field(default="gemini-2.5-flash", alias="DEFAULT_LLM_MODEL")
    default_llm_temperature: float = Field(default=0.9, alias="DEFAULT_LLM_TEMPERATURE")
    default_llm_max_tokens: int = Field(default=256, alias="DEFAULT_LLM_MAX_TOKENS")
    bot_persona_prompt: str = Field(default="", alias="BOT_PERSONA_PROMPT")

    # --- API ---
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")


@lru_cache
def get_settings() -> Settings:
    return Settings()
