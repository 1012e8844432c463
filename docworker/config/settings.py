from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docworker"
    db_username: str = "docworker"
    db_password: str = "secret"
    db_apply_schema: bool = False

    worker_concurrency: int = 1
    job_poll_interval_seconds: int = 5
    stale_job_check_interval_seconds: int = 60

    max_dispatch_attempts: int = 3
    dispatch_claim_timeout_seconds: int = 300
    ocr_job_max_attempts: int = 2
    nlp_job_max_attempts: int = 2
    ocr_job_timeout_seconds: int = 600
    nlp_job_timeout_seconds: int = 300
    stale_job_grace_seconds: int = 60

    large_pdf_threshold_bytes: int = 5 * 1024 * 1024

    aws_region: str = "us-east-1"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_endpoint_url: str = ""

    storage_backend: str = "s3"
    storage_bucket: str = "docworker-documents"
    storage_local_root: str = "/app/files"
    storage_signed_url_ttl_seconds: int = 3600

    ocr_provider: str = "textract"
    ocr_poll_interval_seconds: int = 5
    textract_notification_role_arn: str = ""
    textract_sns_topic_arn: str = ""
    pdf_engine: str = "pdfplumber"

    nlp_provider: str = "comprehend"
    nlp_default_language: str = "en"

    nlp_openai_api_key: str = ""
    nlp_openai_model_name: str = "gpt-4o-mini"
    nlp_openai_timeout_seconds: int = 30
    nlp_openai_compatible_base_url: str = ""
    nlp_openai_compatible_api_key: str = ""
    nlp_openai_compatible_model_name: str = ""

    notifier: str = "log"
    notify_channel: str = "document_status"
