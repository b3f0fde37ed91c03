"""Configuration module for the EduRAG bot.

Manages environment variables and validation using Pydantic.
All secrets (API keys, tokens) are loaded from .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from edurag.models import ModelConfig


class Settings(BaseSettings):
    """Application configuration from environment variables.

    Attributes:
        TG_BOT_TOKEN: Telegram Bot API token
        LLM_PROVIDER: Provider name (informational, e.g. openai)
        LLM_API_KEY: Provider API key
        LLM_BASE_URL: OpenAI-compatible API root
        LLM_MODEL: Chat model id
        SUPERPROMPT: Operator prefix for the system prompt (optional)
        SYSTEM_PROMPT: The chatbot's own system prompt
        COLLECTION_ID: Knowledge base the bot answers from
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        LOG_DIR: Directory for log files (optional)
        MAX_FILE_SIZE: Maximum upload size in bytes (20MB default)
        TEMP_DIR: Temporary directory for uploads
        VECTOR_DB_PATH: ChromaDB data directory

    Example:
        >>> config = get_settings()
        >>> print(config.LLM_MODEL)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    TG_BOT_TOKEN: str = ""
    LLM_PROVIDER: str = "openai"
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL: str = "gpt-4o-mini"
    SUPERPROMPT: Optional[str] = None
    SYSTEM_PROMPT: str = (
        "Ты учебный ассистент. Объясняй понятно, задавай наводящие вопросы "
        "и опирайся на материалы курса."
    )
    COLLECTION_ID: str = "default"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    MAX_FILE_SIZE: int = 20 * 1024 * 1024  # 20MB
    TEMP_DIR: str = "./temp"
    VECTOR_DB_PATH: str = "./data/chroma"

    def validate_llm_config(self) -> bool:
        """Validate that the language model is configured.

        Raises:
            ValueError: If the API key, base URL or model is missing
        """
        if not self.LLM_API_KEY:
            raise ValueError("LLM_API_KEY must be configured")
        if not self.LLM_BASE_URL:
            raise ValueError("LLM_BASE_URL must be configured")
        if not self.LLM_MODEL:
            raise ValueError("LLM_MODEL must be configured")
        return True

    def to_model_config(self) -> ModelConfig:
        return ModelConfig(
            provider=self.LLM_PROVIDER,
            model=self.LLM_MODEL,
            api_key=self.LLM_API_KEY,
            base_url=self.LLM_BASE_URL,
            superprompt=self.SUPERPROMPT or None,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application configuration

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


class EnvSettingsStore:
    """SettingsStore backed by the bot's environment settings."""

    async def get_config(self) -> ModelConfig:
        return get_settings().to_model_config()
