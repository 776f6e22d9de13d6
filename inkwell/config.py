"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Content store (Sanity) ─────────────────────────────────────────────
    sanity_project_id: str = "local"
    sanity_dataset: str = "production"
    sanity_api_version: str = "2021-10-21"
    sanity_token: str = ""               # write token, needed for comments
    sanity_use_cdn: bool = False         # reads via apicdn.sanity.io
    store_timeout: float = 10.0          # transport-boundary timeout (s)

    # ── Incremental regeneration ───────────────────────────────────────────
    stale_window: float = 60.0           # seconds a detail snapshot is fresh
    prerender_on_startup: bool = True

    # ── Snapshot backend ───────────────────────────────────────────────────
    snapshot_backend: str = "memory"     # 'memory' | 'redis'
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_snapshot_prefix: str = "page:"
    rebuild_lock_ttl: int = 30           # max seconds a rebuild lock is held

    # ── Presentation ───────────────────────────────────────────────────────
    site_title: str = "Medium 2.0"

    # ── Observability ──────────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "inkwell"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
