from pydantic_settings import BaseSettings
from typing import List, Optional
import os


class Settings(BaseSettings):
    # Database (PostgreSQL in production, SQLite for local development)
    database_url: str = "sqlite+aiosqlite:///./content_admin.db"
    db_echo: bool = False

    # Redis Configuration
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 600
    enable_cache: bool = True

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    # CORS Configuration
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Mutating routes require X-Admin-Key when this is set
    admin_api_key: Optional[str] = None

    # Object storage for diagram images and template PDFs
    storage_backend: str = "local"  # "local" or "s3"
    local_media_root: str = "./media"
    local_media_url: str = "/media"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Expand ~ in local_media_root
        if self.local_media_root and self.local_media_root.startswith("~"):
            self.local_media_root = os.path.expanduser(self.local_media_root)

    # S3 Configuration
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "me-south-1"
    s3_bucket_name: Optional[str] = None
    s3_public_base_url: Optional[str] = None  # e.g. a CDN in front of the bucket

    # Upload limits (bytes)
    max_image_size: int = 10 * 1024 * 1024
    max_pdf_size: int = 25 * 1024 * 1024

    # Optimistic concurrency
    transaction_max_attempts: int = 5
    transaction_retry_backoff: float = 0.05  # seconds, doubled on each retry

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
