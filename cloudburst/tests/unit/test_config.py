"""
Unit tests for YAML configuration loading and validation
"""
import pytest
import yaml

from cloudburst.config.app_config import AppConfig, AppConfigLoader, SMSConfig, StoreConfig

ENV_VARS = (
    "CLOUDBURST_CONFIG",
    "CLOUDBURST_DB_PATH",
    "TWILIO_ENABLED",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_PHONE_NUMBER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    def write(data):
        path = tmp_path / "cloudburst.yaml"
        path.write_text(yaml.safe_dump(data) if data is not None else "")
        return str(path)
    return write


class TestLoad:

    @pytest.mark.unit
    def test_missing_file_uses_defaults(self, tmp_path):
        config = AppConfigLoader.load(str(tmp_path / "absent.yaml"))

        assert config.store.backend == "sqlite"
        assert config.sms.enabled is False
        assert config.prediction.max_rows == 10
        assert config.log_page_size == 100

    @pytest.mark.unit
    def test_empty_file_uses_defaults(self, config_file):
        config = AppConfigLoader.load(config_file(None))
        assert config.store.db_path == "data/cloudburst.db"

    @pytest.mark.unit
    def test_sections_parsed(self, config_file):
        path = config_file({
            "store": {"backend": "memory"},
            "sms": {"enabled": True, "provider": "http", "api_url": "https://sms.example.org", "api_key": "k"},
            "prediction": {"max_rows": 5, "forecast_date": "2025-11-01"},
            "logging": {"level": "DEBUG", "file": None},
            "log_page_size": 50,
            "simulator_interval_seconds": 30,
        })

        config = AppConfigLoader.load(path)

        assert config.store.backend == "memory"
        assert config.sms.provider == "http"
        assert config.sms.api_url == "https://sms.example.org"
        assert config.prediction.max_rows == 5
        assert config.prediction.forecast_date == "2025-11-01"
        assert config.prediction.default_location == "Jaynagar"
        assert config.logging.level == "DEBUG"
        assert config.logging.file is None
        assert config.log_page_size == 50
        assert config.simulator_interval_seconds == 30

    @pytest.mark.unit
    def test_path_from_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("CLOUDBURST_CONFIG", config_file({"log_page_size": 25}))
        assert AppConfigLoader.load().log_page_size == 25

    @pytest.mark.unit
    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("store: [unclosed")
        with pytest.raises(yaml.YAMLError):
            AppConfigLoader.load(str(path))


class TestEnvironmentOverrides:

    @pytest.mark.unit
    def test_twilio_credentials(self, config_file, monkeypatch):
        monkeypatch.setenv("TWILIO_ENABLED", "true")
        monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setenv("TWILIO_AUTH_TOKEN", "secret")
        monkeypatch.setenv("TWILIO_PHONE_NUMBER", "+15005550006")
        monkeypatch.setenv("CLOUDBURST_DB_PATH", "/tmp/cb.db")

        config = AppConfigLoader.load(config_file({"sms": {"enabled": False}}))

        assert config.sms.enabled is True
        assert config.sms.account_sid == "AC123"
        assert config.sms.from_number == "+15005550006"
        assert config.store.db_path == "/tmp/cb.db"
        assert AppConfigLoader.validate(config) == (True, [])

    @pytest.mark.unit
    def test_disable_via_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("TWILIO_ENABLED", "no")
        config = AppConfigLoader.load(config_file({"sms": {"enabled": True}}))
        assert config.sms.enabled is False


class TestValidate:

    @pytest.mark.unit
    def test_defaults_are_valid(self):
        assert AppConfigLoader.validate(AppConfig()) == (True, [])

    @pytest.mark.unit
    def test_errors_collected(self):
        config = AppConfig(
            store=StoreConfig(backend="redis"),
            sms=SMSConfig(enabled=True, provider="twilio"),
            log_page_size=0,
        )

        is_valid, errors = AppConfigLoader.validate(config)

        assert is_valid is False
        assert "Unknown store backend: redis" in errors
        assert "Twilio account_sid is required" in errors
        assert "Twilio from_number is required" in errors
        assert "log_page_size must be >= 1" in errors

    @pytest.mark.unit
    def test_http_provider_needs_url(self):
        config = AppConfig(sms=SMSConfig(enabled=True, provider="http"))
        assert AppConfigLoader.validate(config) == (False, ["HTTP API URL is required"])


class TestSave:

    @pytest.mark.unit
    def test_save_and_reload(self, tmp_path):
        path = str(tmp_path / "nested" / "saved.yaml")
        config = AppConfig(store=StoreConfig(backend="memory"), log_page_size=42)

        AppConfigLoader.save(config, path)
        reloaded = AppConfigLoader.load(path)

        assert reloaded.store.backend == "memory"
        assert reloaded.log_page_size == 42
