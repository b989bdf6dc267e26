from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Incident Hybrid Retrieval"
    environment: str = "development"
    log_config_path: Optional[Path] = None  # defaults to the packaged logging.yaml
    log_level: str = "INFO"
    log_dir: Path = Path("backend/logs")
    enable_file_logging: bool = True
    enable_json_logs: bool = True

    # OpenAI embeddings
    openai_api_key: Optional[str] = None
    embedding_model_openai: str = "text-embedding-3-large"
    embedding_dimensions: int = 3072  # text-embedding-3-large

    # Chroma (vector index)
    chroma_server_host: Optional[str] = None
    chroma_server_port: Optional[int] = None
    chroma_server_ssl: bool = False
    chroma_server_api_key: Optional[str] = None
    chroma_persist_directory: Optional[Path] = Path("backend/storage/chromadb")
    chroma_collection: str = "incidents"

    # Keyword index corpus (JSON list of incident records)
    incident_corpus_path: Optional[Path] = Path("backend/storage/incidents.json")

    # Search
    default_top_k: int = 5
    max_top_k: int = 50
    hybrid_vector_weight: float = 0.6
    hybrid_keyword_weight: float = 0.4
    hybrid_pool_multiplier: int = 3  # candidates fetched per engine = multiplier * top_k
    fuzzy_max_edits: int = 1
    search_timeout_seconds: float = 10.0

    # Redis query-embedding cache
    redis_url: str = "redis://localhost:6379/0"
    embedding_cache_enabled: bool = False
    embedding_cache_ttl: int = 60 * 60 * 24  # 1 day

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
