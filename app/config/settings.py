from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docscan"
    db_username: str = "docscan"
    db_password: str = "secret"

    upload_dir: str = "/app/uploads"

    pdf_engine: str = "pymupdf"
    raster_dpi: int = 300

    ocr_engine: str = "tesseract"
    tesseract_cmd: str = ""
    default_language: str = "eng"

    page_max_attempts: int = 2
    page_retry_delay_seconds: float = 1.0

    max_concurrent_documents: int = 2
    queue_poll_interval_seconds: int = 5
    queue_batch_size: int = 10
