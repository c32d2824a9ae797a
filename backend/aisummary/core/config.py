# Environment variables and configuration
# pydantic-settings reads .env = core/config.py

from typing import List, Optional
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Only used when running uvicorn/celery directly (outside Docker):
# model_config.env_file=".env" then reads backend/.env

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # ========= project config =========
    PROJECT_NAME: str = "AI Product Summary"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = Field("INFO", alias="LOG_LEVEL")

    # ========= CORS =========
    # admin dashboard origins, comma separated
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"
    # storefront widget calls /product-summary from any shop domain
    STOREFRONT_CORS_ALLOW_ALL: bool = Field(True, alias="STOREFRONT_CORS_ALLOW_ALL")


    # ========= Database =========
    DATABASE_URL: str = Field(
        default="postgresql+psycopg://summary_user:summary_pass@db:5432/ai_summary",
        alias="DATABASE_URL",
    )
    DATABASE_ECHO: bool = Field(False, alias="DATABASE_ECHO")


    # ========= celery config =========
    CELERY_BROKER_URL: Optional[str] = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: Optional[str] = "redis://redis:6379/1"
    CELERY_TIMEZONE: str = "UTC"
    SYNC_QUEUE: str = Field("sync", alias="SYNC_QUEUE")
    # True: run the full sync in the calling process (local debugging, tests)
    SYNC_TASKS_INLINE: bool = Field(default=False, alias="SYNC_TASKS_INLINE")
    # broker publish retry (enqueue side), exponential backoff
    SYNC_ENQUEUE_RETRIES: int = Field(3, ge=0, alias="SYNC_ENQUEUE_RETRIES")
    SYNC_ENQUEUE_BACKOFF_SEC: float = Field(2.0, ge=0, alias="SYNC_ENQUEUE_BACKOFF_SEC")


    # ========= Shopify API Config =========
    SHOPIFY_API_VERSION: str = Field("2026-01", alias="SHOPIFY_API_VERSION")
    SHOPIFY_API_SECRET: Optional[SecretStr] = Field(None, alias="SHOPIFY_API_SECRET")      # webhook HMAC key
    # custom (single store) apps: offline Admin token; OAuth apps pass tokens explicitly
    SHOPIFY_ADMIN_TOKEN: Optional[SecretStr] = Field(None, alias="SHOPIFY_ADMIN_TOKEN")
    SHOPIFY_APP_URL: Optional[str] = Field(None, alias="SHOPIFY_APP_URL")                  # public base URL for webhook callbacks

    # network / HTTP layer
    SHOPIFY_HTTP_TIMEOUT: int = Field(30, alias="SHOPIFY_HTTP_TIMEOUT")
    SHOPIFY_HTTP_RETRIES: int = Field(3, alias="SHOPIFY_HTTP_RETRIES")
    SHOPIFY_HTTP_BACKOFF_MS: int = Field(200, alias="SHOPIFY_HTTP_BACKOFF_MS")

    # catalog paging
    CATALOG_PAGE_SIZE: int = Field(250, ge=1, le=250, alias="CATALOG_PAGE_SIZE")
    CATALOG_VARIANTS_FIRST: int = Field(100, ge=1, le=250, alias="CATALOG_VARIANTS_FIRST")
    CATALOG_IMAGES_FIRST: int = Field(250, ge=1, le=250, alias="CATALOG_IMAGES_FIRST")
    # above this many products the pass streams page by page instead of buffering
    CATALOG_BUFFER_LIMIT: int = Field(5000, ge=1, alias="CATALOG_BUFFER_LIMIT")


    # ========= Groq (generation service) =========
    GROQ_API_KEY: Optional[SecretStr] = Field(None, alias="GROQ_API_KEY")
    GROQ_BASE_URL: str = Field("https://api.groq.com/openai/v1", alias="GROQ_BASE_URL")
    GROQ_MODEL: str = Field("meta-llama/llama-4-scout-17b-16e-instruct", alias="GROQ_MODEL")
    GROQ_TEMPERATURE: float = Field(0.7, ge=0, le=2, alias="GROQ_TEMPERATURE")
    GROQ_MAX_TOKENS: int = Field(200, ge=16, alias="GROQ_MAX_TOKENS")
    GROQ_CONNECT_TIMEOUT: int = Field(10, ge=1, alias="GROQ_CONNECT_TIMEOUT")
    GROQ_READ_TIMEOUT: int = Field(60, ge=1, alias="GROQ_READ_TIMEOUT")

    # output contract
    GENERATION_MAX_WORDS: int = Field(60, ge=10, alias="GENERATION_MAX_WORDS")
    GENERATION_SENTENCES: int = Field(2, ge=1, alias="GENERATION_SENTENCES")
    # courtesy pause between consecutive generation calls in a loop
    GENERATION_DELAY_MS: int = Field(500, ge=0, alias="GENERATION_DELAY_MS")

    # ========= global rate limit for the generation service =========
    GENERATION_RL_ENABLED: bool = Field(False, alias="GENERATION_RL_ENABLED")
    GENERATION_RL_REDIS_URL: str = Field("redis://redis:6379/2", alias="GENERATION_RL_REDIS_URL")
    GENERATION_RL_MAX_RPM: int = Field(30, ge=1, alias="GENERATION_RL_MAX_RPM")
    GENERATION_RL_BURST: int = Field(2, ge=1, alias="GENERATION_RL_BURST")
    GENERATION_RL_MAX_WAIT_MS: int = Field(5000, ge=0, alias="GENERATION_RL_MAX_WAIT_MS")
    GENERATION_RL_KEY_PREFIX: str = Field("groq:rl", alias="GENERATION_RL_KEY_PREFIX")


    # ========= lifecycle =========
    PURGE_ON_UNINSTALL: bool = Field(False, alias="PURGE_ON_UNINSTALL")


    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.BACKEND_CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()  # environment only (including .env)
