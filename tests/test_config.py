"""Tests for environment overrides in figgytales.config and the logger sinks."""

from loguru import logger

from figgytales.config import Settings, _settings_from_env, get_settings, settings
from figgytales.utils import logger as logger_module


class TestSettingsFromEnv:
    def test_model_overrides_are_typed(self, monkeypatch):
        monkeypatch.setenv("FIGGYTALES_MODEL_PROVIDER", "gemini")
        monkeypatch.setenv("FIGGYTALES_MODEL_TEMPERATURE", "0.7")
        monkeypatch.setenv("FIGGYTALES_MODEL_MAX_OUTPUT_TOKENS", "1024")
        overrides = _settings_from_env()
        assert overrides["model"]["provider"] == "gemini"
        assert overrides["model"]["temperature"] == 0.7
        assert overrides["model"]["max_output_tokens"] == 1024

    def test_google_key_fallback(self, monkeypatch):
        monkeypatch.delenv("FIGGYTALES_GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("GOOGLE_AI_API_KEY", "fallback-key")
        assert _settings_from_env()["model"]["gemini_api_key"] == "fallback-key"

    def test_app_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FIGGYTALES_BACKEND_URL", "http://localhost:8002")
        monkeypatch.setenv("FIGGYTALES_DEBUG", "yes")
        monkeypatch.setenv("FIGGYTALES_STORAGE_DIR", str(tmp_path))
        monkeypatch.setenv("FIGGYTALES_LOG_FILE", str(tmp_path / "app.log"))
        monkeypatch.setenv("FIGGYTALES_LOG_LEVEL", "debug")
        app_settings = Settings(**_settings_from_env()).app
        assert app_settings.backend_url == "http://localhost:8002"
        assert app_settings.debug is True
        assert app_settings.storage_dir == tmp_path
        assert app_settings.log_file == str(tmp_path / "app.log")
        assert app_settings.log_level == "debug"

    def test_defaults(self):
        defaults = Settings()
        assert defaults.model.gemini_model_name == "gemini-2.5-flash"
        assert defaults.model.request_timeout is None
        assert defaults.uploads.max_files == 5
        assert defaults.uploads.max_file_size == 10 * 1024 * 1024


def test_get_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("FIGGYTALES_GEMINI_MODEL", "gemini-from-env")
    get_settings.cache_clear()
    try:
        assert get_settings().model.gemini_model_name == "gemini-from-env"
    finally:
        get_settings.cache_clear()


class TestLoggerSinks:
    def test_file_sink_comes_from_settings(self, monkeypatch, tmp_path):
        log_path = tmp_path / "figgytales.log"
        monkeypatch.setattr(settings.app, "log_file", str(log_path))
        monkeypatch.setattr(settings.app, "log_level", "debug")
        try:
            logger_module.configure_from_settings()
            logger.debug("session mirror written")
            logger.complete()
            assert "session mirror written" in log_path.read_text(encoding="utf-8")
        finally:
            logger_module.configure_logger()
