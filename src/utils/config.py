"""
Configuration Management Module
Handles loading and validation of environment variables and settings
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv


DEFAULT_GMAIL_QUERY = 'subject:(interview OR "call letter" OR shortlist OR test) newer_than:3m'
LOG_FORMATS = ("text", "json")


class ConfigurationError(ValueError):
    """Raised when the loaded configuration cannot be used"""


@dataclass
class GmailConfig:
    """Configuration for the mail provider API"""
    access_token: Optional[str]
    api_base_url: str
    query: str
    max_results: int
    request_timeout: int


@dataclass
class RulesConfig:
    """Where user rules are persisted"""
    rules_file: str


@dataclass
class ParsingConfig:
    """Policies applied while turning raw messages into ParsedEmail records"""
    # When internalDate is missing, use the processing time (True) or leave
    # the received date empty (False)
    missing_date_fallback_to_now: bool


@dataclass
class SystemConfig:
    """Configuration for system settings"""
    log_level: str
    log_file: str
    log_format: str
    max_workers: int
    check_interval: int


class Config:
    """Main configuration class"""

    def __init__(self, env_file: str = ".env"):
        """
        Initialize configuration from environment file

        Args:
            env_file: Path to environment file (default: .env)
        """
        load_dotenv(env_file)
        self.logger = logging.getLogger("Config")

        self.gmail = self._load_gmail_config()
        self.rules = self._load_rules_config()
        self.parsing = self._load_parsing_config()
        self.system = self._load_system_config()

    def _load_gmail_config(self) -> GmailConfig:
        """Load mail provider configuration"""
        return GmailConfig(
            access_token=os.getenv("GMAIL_ACCESS_TOKEN") or None,
            api_base_url=os.getenv(
                "GMAIL_API_BASE_URL", "https://gmail.googleapis.com/gmail/v1"
            ).rstrip("/"),
            query=os.getenv("GMAIL_QUERY", DEFAULT_GMAIL_QUERY),
            max_results=self._get_int("GMAIL_MAX_RESULTS", 15),
            request_timeout=self._get_int("GMAIL_REQUEST_TIMEOUT", 10),
        )

    def _load_rules_config(self) -> RulesConfig:
        return RulesConfig(rules_file=os.getenv("RULES_FILE", "data/rules.json"))

    def _load_parsing_config(self) -> ParsingConfig:
        return ParsingConfig(
            missing_date_fallback_to_now=self._get_bool("MISSING_DATE_FALLBACK_TO_NOW", True)
        )

    def _load_system_config(self) -> SystemConfig:
        """Load system configuration"""
        return SystemConfig(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/admission_mail.log"),
            log_format=os.getenv("LOG_FORMAT", "text").strip().lower(),
            max_workers=self._get_int("MAX_WORKERS", 8),
            check_interval=self._get_int("CHECK_INTERVAL", 300),
        )

    @staticmethod
    def _get_bool(key: str, default: bool = False) -> bool:
        """Convert environment variable to boolean"""
        value = os.getenv(key, str(default)).lower()
        return value in ('true', '1', 'yes', 'on')

    def _get_int(self, key: str, default: int) -> int:
        """Read an integer variable, keeping the default on garbage input"""
        raw = os.getenv(key)
        if raw is None or not raw.strip():
            return default
        try:
            return int(raw.strip())
        except ValueError:
            self.logger.warning(f"Invalid integer for {key}: {raw!r}; using {default}")
            return default

    def validate(self) -> bool:
        """
        Validate configuration

        Returns:
            True if configuration is valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.gmail.access_token:
            raise ConfigurationError("GMAIL_ACCESS_TOKEN is not set")

        if self.gmail.max_results <= 0:
            raise ConfigurationError("GMAIL_MAX_RESULTS must be a positive integer")

        if self.gmail.request_timeout <= 0:
            raise ConfigurationError("GMAIL_REQUEST_TIMEOUT must be a positive integer")

        if self.system.max_workers <= 0:
            raise ConfigurationError("MAX_WORKERS must be a positive integer")

        if self.system.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}, got {self.system.log_format!r}"
            )

        return True
