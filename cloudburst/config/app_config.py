"""
Application Configuration Loader
Loads and parses cloudburst.yaml configuration file
"""
import logging
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "cloudburst/config/cloudburst.yaml"

_TRUE_VALUES = ("1", "true", "yes")


@dataclass
class StoreConfig:
    """Realtime store backend configuration"""
    backend: str = "sqlite"  # sqlite, memory
    db_path: str = "data/cloudburst.db"


@dataclass
class SMSConfig:
    """SMS notification provider configuration"""
    enabled: bool = False
    provider: str = "twilio"  # twilio, http
    account_sid: Optional[str] = None
    auth_token: Optional[str] = None
    from_number: Optional[str] = None
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: int = 10


@dataclass
class PredictionConfig:
    """CSV-backed prediction view configuration"""
    csv_path: str = "cloudburst/data/cloudburst_cleaned.csv"
    max_rows: int = 10
    forecast_date: str = "2025-10-05"
    default_location: str = "Jaynagar"


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = "logs/cloudburst.log"
    json_format: bool = False
    console: bool = True


@dataclass
class AppConfig:
    """Complete service configuration"""
    store: StoreConfig = field(default_factory=StoreConfig)
    sms: SMSConfig = field(default_factory=SMSConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    log_page_size: int = 100
    simulator_interval_seconds: int = 10


class AppConfigLoader:
    """
    Load service configuration from YAML file

    Usage:
        config = AppConfigLoader.load("cloudburst/config/cloudburst.yaml")

        print(config.store.db_path)
        print(config.sms.enabled)
    """

    @staticmethod
    def load(config_path: Optional[str] = None) -> AppConfig:
        """
        Load configuration from YAML file, then apply environment overrides

        Args:
            config_path: Path to YAML file (defaults to $CLOUDBURST_CONFIG)

        Returns:
            AppConfig object

        Raises:
            yaml.YAMLError: If YAML parsing fails
        """
        config_path = config_path or os.getenv("CLOUDBURST_CONFIG", DEFAULT_CONFIG_PATH)
        path = Path(config_path)

        config = AppConfig()

        if not path.exists():
            logger.warning(
                f"Config file not found: {config_path}, using default configuration"
            )
            return AppConfigLoader.apply_env_overrides(config)

        try:
            with open(path, 'r') as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse config file {config_path}: {e}")
            raise

        if not raw_config:
            logger.warning("Empty config file, using defaults")
            return AppConfigLoader.apply_env_overrides(config)

        if "store" in raw_config:
            store_data = raw_config["store"] or {}
            config.store = StoreConfig(
                backend=store_data.get("backend", "sqlite"),
                db_path=store_data.get("db_path", "data/cloudburst.db")
            )

        if "sms" in raw_config:
            sms_data = raw_config["sms"] or {}
            config.sms = SMSConfig(
                enabled=sms_data.get("enabled", False),
                provider=sms_data.get("provider", "twilio"),
                account_sid=sms_data.get("account_sid"),
                auth_token=sms_data.get("auth_token"),
                from_number=sms_data.get("from_number"),
                api_url=sms_data.get("api_url"),
                api_key=sms_data.get("api_key"),
                timeout=sms_data.get("timeout", 10)
            )

        if "prediction" in raw_config:
            prediction_data = raw_config["prediction"] or {}
            defaults = PredictionConfig()
            config.prediction = PredictionConfig(
                csv_path=prediction_data.get("csv_path", defaults.csv_path),
                max_rows=prediction_data.get("max_rows", defaults.max_rows),
                forecast_date=str(prediction_data.get("forecast_date", defaults.forecast_date)),
                default_location=prediction_data.get("default_location", defaults.default_location)
            )

        if "logging" in raw_config:
            logging_data = raw_config["logging"] or {}
            config.logging = LoggingConfig(
                level=logging_data.get("level", "INFO"),
                file=logging_data.get("file", "logs/cloudburst.log"),
                json_format=logging_data.get("json_format", False),
                console=logging_data.get("console", True)
            )

        config.log_page_size = raw_config.get("log_page_size", config.log_page_size)
        config.simulator_interval_seconds = raw_config.get(
            "simulator_interval_seconds", config.simulator_interval_seconds
        )

        logger.info(f"Configuration loaded from {config_path}")
        return AppConfigLoader.apply_env_overrides(config)

    @staticmethod
    def apply_env_overrides(config: AppConfig) -> AppConfig:
        """Apply TWILIO_* and CLOUDBURST_DB_PATH environment variables"""
        enabled = os.getenv("TWILIO_ENABLED")
        if enabled is not None:
            config.sms.enabled = enabled.lower() in _TRUE_VALUES

        config.sms.account_sid = os.getenv("TWILIO_ACCOUNT_SID", config.sms.account_sid)
        config.sms.auth_token = os.getenv("TWILIO_AUTH_TOKEN", config.sms.auth_token)
        config.sms.from_number = os.getenv("TWILIO_PHONE_NUMBER", config.sms.from_number)
        config.store.db_path = os.getenv("CLOUDBURST_DB_PATH", config.store.db_path)

        return config

    @staticmethod
    def validate(config: AppConfig) -> tuple[bool, list]:
        """
        Validate configuration

        Args:
            config: AppConfig to validate

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []

        if config.store.backend not in ("sqlite", "memory"):
            errors.append(f"Unknown store backend: {config.store.backend}")
        if config.store.backend == "sqlite" and not config.store.db_path:
            errors.append("Store db_path is required for the sqlite backend")

        if config.sms.enabled:
            if config.sms.provider == "twilio":
                if not config.sms.account_sid:
                    errors.append("Twilio account_sid is required")
                if not config.sms.auth_token:
                    errors.append("Twilio auth_token is required")
                if not config.sms.from_number:
                    errors.append("Twilio from_number is required")
            elif config.sms.provider == "http":
                if not config.sms.api_url:
                    errors.append("HTTP API URL is required")
            else:
                errors.append(f"Unsupported SMS provider: {config.sms.provider}")

        if config.prediction.max_rows < 1:
            errors.append("Prediction max_rows must be >= 1")
        if config.log_page_size < 1:
            errors.append("log_page_size must be >= 1")

        return len(errors) == 0, errors

    @staticmethod
    def save(config: AppConfig, config_path: str = DEFAULT_CONFIG_PATH):
        """
        Save configuration to YAML file

        Args:
            config: AppConfig to save
            config_path: Path to save to
        """
        config_dict: Dict[str, Any] = asdict(config)

        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")
