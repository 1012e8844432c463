import pytest
from pydantic import ValidationError

from docworker.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_job_poll_interval(self) -> None:
        s = Settings()
        assert s.job_poll_interval_seconds == 5

    def test_default_attempt_caps(self) -> None:
        s = Settings()
        assert s.ocr_job_max_attempts == 2
        assert s.nlp_job_max_attempts == 2
        assert s.max_dispatch_attempts == 3

    def test_default_job_timeouts(self) -> None:
        s = Settings()
        assert s.ocr_job_timeout_seconds == 600
        assert s.nlp_job_timeout_seconds == 300
        assert s.stale_job_grace_seconds == 60

    def test_default_large_pdf_threshold_is_five_mebibytes(self) -> None:
        s = Settings()
        assert s.large_pdf_threshold_bytes == 5_242_880

    def test_default_providers(self) -> None:
        s = Settings()
        assert s.storage_backend == "s3"
        assert s.ocr_provider == "textract"
        assert s.nlp_provider == "comprehend"
        assert s.notifier == "log"

    def test_default_pdf_engine(self) -> None:
        s = Settings()
        assert s.pdf_engine == "pdfplumber"


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings()
        assert s.app_env == "production"

    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings()
        assert s.log_level == "DEBUG"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_worker_concurrency(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WORKER_CONCURRENCY", "4")
        s = Settings()
        assert s.worker_concurrency == 4

    def test_loads_ocr_provider(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OCR_PROVIDER", "pdf_text")
        s = Settings()
        assert s.ocr_provider == "pdf_text"

    def test_loads_apply_schema_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_APPLY_SCHEMA", "true")
        s = Settings()
        assert s.db_apply_schema is True


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_timeout_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OCR_JOB_TIMEOUT_SECONDS", "abc")
        with pytest.raises(ValidationError):
            Settings()
