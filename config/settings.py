"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 8020
    cors_origins: list[str] = ["*"]
    debug: bool = False
    log_level: str = "INFO"

    # ── Metadata store (flags, ledgers, document records) ────
    metadata_store_type: str = "memory"  # "memory" or "mongo"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "TLEF-ENGEAI-DB"
    course_list_collection: str = "active-course-list"
    documents_collection: str = "course-documents"

    # ── Vector index ─────────────────────────────────────────
    vector_store_type: str = "memory"  # "memory" or "chroma"
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    vector_collection: str = "course-materials"

    # ── Embeddings ───────────────────────────────────────────
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = 1536
    embedding_api_base: str = "https://api.openai.com/v1"
    embedding_api_key: str = ""
    embedding_timeout: int = 60  # seconds
    embedding_batch_size: int = 64

    # ── Chunking / uploads ───────────────────────────────────
    chunk_size: int = 1024
    chunk_overlap: int = 200
    max_upload_bytes: int = 10 * 1024 * 1024

    # ── Struggle-topic labelling (LiteLLM model string) ──────
    label_model: str = "openai/gpt-4o-mini"
    label_max_tokens: int = 256
    label_timeout: int = 60


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
