from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Provider selection (default: openai; qwen/openrouter/fireworks share the chat-completions wire format)
    env: str = "development"
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]
    ai_provider: Literal["openai", "gemini", "qwen", "openrouter", "fireworks"] = "openai"
    ai_request_timeout_sec: int = 60
    ai_max_concurrency: int = 4
    ai_backpressure_acquire_timeout_ms: int = 200
    ai_temperature: float = 0.5

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"

    # Accept both the short and the Google-prefixed key names
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"),
    )
    gemini_model: str = "gemini-2.0-flash"

    qwen_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("QWEN_API_KEY", "DASHSCOPE_API_KEY"),
    )
    qwen_model: str = "qwen-plus"
    qwen_base_url: str = "https://dashscope-intl.aliyuncs.com/compatible-mode/v1"

    openrouter_api_key: str = ""
    openrouter_model: str = "google/gemini-2.5-flash"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"

    fireworks_api_key: str = ""
    fireworks_model: str = "accounts/fireworks/models/llama-v3p1-70b-instruct"
    fireworks_base_url: str = "https://api.fireworks.ai/inference/v1"

    lesson_max_attempts: int = Field(default=3, ge=1, le=3)
    lesson_accept_substandard: bool = True
    reading_target_paragraphs: int = Field(default=5, ge=1)
    reading_min_sentences: int = Field(default=3, ge=1)

    image_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("IMAGE_API_KEY", "OPENROUTER_API_KEY"),
    )
    image_base_url: str = "https://openrouter.ai/api/v1"
    image_model: str = "fireworks/stable-diffusion-xl-1024-v1-0"
    image_timeout_sec: int = 30
    image_max_workers: int = 4

    model_config = SettingsConfigDict(env_file="../../.env", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
