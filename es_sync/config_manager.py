"""
Configuration Management for es-sync

Process-level settings (logging, HTTP transport, AWS defaults) read from the
environment. The per-deployment resource configuration lives in the
deployment descriptor, see ``config_loader``.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .logging_config import LOG_FORMATS, configure_logging

# Load environment variables
load_dotenv(override=False)


def _set_http_log_level(log_level: str) -> None:
    """Set log levels for HTTP-related loggers to reduce noise."""
    http_loggers = [
        "botocore",
        "boto3",
        "urllib3",
        "urllib3.connectionpool",
        "httpx",
        "httpcore",
    ]
    # HTTP logging should only appear at DEBUG level
    target_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in http_loggers:
        logging.getLogger(name).setLevel(target_level)


logger = logging.getLogger(__name__)


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(
        default_factory=lambda: os.getenv(
            "ES_SYNC_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")
        )
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))
    format: str = field(
        default_factory=lambda: os.getenv("ES_SYNC_LOG_FORMAT", "json").lower()
    )

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()
        if self.format not in LOG_FORMATS:
            raise ValueError(f"Log format must be one of: {list(LOG_FORMATS)}")

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        level_attr = getattr(logging, self.level, None)
        if level_attr is None:
            raise ValueError(f"Invalid log level: {self.level}")
        return int(level_attr)


@dataclass
class HttpConfig:
    """Configuration for the HTTP transport used to talk to the cluster."""

    timeout: float = field(
        default_factory=lambda: float(os.getenv("ES_SYNC_HTTP_TIMEOUT", "60"))
    )

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("HTTP timeout must be positive")


@dataclass
class AwsConfig:
    """Fallback AWS settings used when the deployment descriptor omits them."""

    profile: Optional[str] = field(default_factory=lambda: os.getenv("AWS_PROFILE"))
    region: str = field(
        default_factory=lambda: os.getenv(
            "AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )
    )


@dataclass
class EsSyncConfig:
    """Main configuration class that aggregates all configuration sections."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    aws: AwsConfig = field(default_factory=AwsConfig)

    @classmethod
    def from_environment(
        cls,
        log_level: Optional[str] = None,
        http_timeout: Optional[float] = None,
    ) -> "EsSyncConfig":
        """
        Create configuration from environment variables.

        Args:
            log_level: Optional override for the log level
            http_timeout: Optional override for the HTTP timeout in seconds

        Returns:
            EsSyncConfig: Configured instance
        """
        config = cls()
        if log_level is not None:
            config.logging.level = log_level
        if http_timeout is not None:
            config.http.timeout = http_timeout
        return config

    def validate_all(self) -> None:
        """Validate all configuration sections."""
        try:
            self.logging.__post_init__()
            self.http.__post_init__()
        except Exception as e:
            logger.exception(f"Configuration validation failed: {e}")
            raise

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        return {
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
                "format": self.logging.format,
            },
            "http": {"timeout": self.http.timeout},
            "aws": {"profile": self.aws.profile, "region": self.aws.region},
        }


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration based on config.
    """
    configure_logging(config.get_log_level(), config.format)

    root_logger = logging.getLogger()
    root_logger.setLevel(config.get_log_level())

    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s:%(name)s:%(message)s")
        )
        root_logger.addHandler(file_handler)

    _set_http_log_level(config.level)

    logger.debug(
        f"Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )


def create_config_from_env(
    log_level: Optional[str] = None, http_timeout: Optional[float] = None
) -> EsSyncConfig:
    """
    Factory function to create and validate configuration from environment.

    Raises:
        ValueError: If configuration is invalid
    """
    config = EsSyncConfig.from_environment(log_level, http_timeout)
    config.validate_all()
    return config
