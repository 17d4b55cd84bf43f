"""Configuration management with Pydantic Settings.

Senders are initialized from a flat string mapping supplied by the host
(validated by ``SmsSenderConfig`` and ``MailSenderConfig``). For standalone
use the same mappings can be produced from environment variables through
``Settings``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import lru_cache
from typing import Literal, Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kontur_senders.composer.mail import DEFAULT_DATE_TIME_FORMAT

DEFAULT_TIMEOUT = 10.0
DEFAULT_TIMEZONE = "UTC"
DEFAULT_SOURCE_ADDRESS = "kontur"


def _validate_http_url(v: str | None) -> str | None:
    if v is None:
        return v
    if not v.startswith(("http://", "https://")):
        raise ValueError("URL must be an HTTP(S) endpoint")
    return v


def _validate_timezone(v: str) -> str:
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"unknown time zone: {v}") from e
    return v


class _SenderConfig(BaseModel):
    """Settings shared by both gateway senders."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    url: str
    login: str = ""
    password: SecretStr = SecretStr("")
    front_uri: str = ""
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate gateway URL format."""
        return _validate_http_url(v) or v

    @field_validator("front_uri")
    @classmethod
    def strip_front_uri(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_mapping(cls, settings: Mapping[str, str]) -> Self:
        """Build the config from the host's flat settings mapping.

        Empty strings are treated as missing values.

        Raises:
            pydantic.ValidationError: If required keys are missing or invalid.
        """
        return cls.model_validate({k: v for k, v in settings.items() if v != ""})


class SmsSenderConfig(_SenderConfig):
    """Settings of the SMS gateway sender."""

    shortener_url: str | None = None
    shortener_key: SecretStr | None = None
    source_address: str = DEFAULT_SOURCE_ADDRESS

    @field_validator("shortener_url")
    @classmethod
    def validate_shortener_url(cls, v: str | None) -> str | None:
        """Validate shortener URL format."""
        return _validate_http_url(v)


class MailSenderConfig(_SenderConfig):
    """Settings of the mail gateway sender."""

    channel: str = ""
    template: str = ""
    timezone: str = DEFAULT_TIMEZONE
    date_time_format: str = DEFAULT_DATE_TIME_FORMAT

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate that the time zone is known."""
        return _validate_timezone(v)

    @property
    def location(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class SmsSettings(BaseSettings):
    """SMS gateway settings."""

    model_config = SettingsConfigDict(env_prefix="KONTUR_SMS_")

    url: str | None = Field(
        default=None,
        alias="KONTUR_SMS_URL",
        description="SMS gateway endpoint",
    )
    login: str = Field(default="", alias="KONTUR_SMS_LOGIN")
    password: SecretStr | None = Field(default=None, alias="KONTUR_SMS_PASSWORD")
    source_address: str = Field(
        default=DEFAULT_SOURCE_ADDRESS,
        alias="KONTUR_SMS_SOURCE_ADDRESS",
        description="Sender name shown to the recipient",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate gateway URL format."""
        return _validate_http_url(v)

    @property
    def enabled(self) -> bool:
        """Check if SMS notifications are enabled."""
        return self.url is not None


class MailSettings(BaseSettings):
    """Mail gateway settings."""

    model_config = SettingsConfigDict(env_prefix="KONTUR_MAIL_")

    url: str | None = Field(
        default=None,
        alias="KONTUR_MAIL_URL",
        description="Mail gateway endpoint",
    )
    login: str = Field(default="", alias="KONTUR_MAIL_LOGIN")
    password: SecretStr | None = Field(default=None, alias="KONTUR_MAIL_PASSWORD")
    channel: str = Field(default="", alias="KONTUR_MAIL_CHANNEL")
    template: str = Field(default="", alias="KONTUR_MAIL_TEMPLATE")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate gateway URL format."""
        return _validate_http_url(v)

    @property
    def enabled(self) -> bool:
        """Check if email notifications are enabled."""
        return self.url is not None


class ShortenerSettings(BaseSettings):
    """URL shortener settings."""

    model_config = SettingsConfigDict(env_prefix="SHORTENER_")

    url: str | None = Field(
        default=None,
        alias="SHORTENER_URL",
        description="URL shortener API endpoint",
    )
    api_key: SecretStr | None = Field(
        default=None,
        alias="SHORTENER_API_KEY",
        description="URL shortener API key",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate shortener URL format."""
        return _validate_http_url(v)

    @property
    def enabled(self) -> bool:
        """Check if link shortening is enabled."""
        return self.url is not None and self.api_key is not None


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from kontur_senders.config import get_settings

        settings = get_settings()
        sender = SmsSender()
        sender.initialize(settings.sms_sender_config())
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    sms: SmsSettings = Field(default_factory=SmsSettings)
    mail: MailSettings = Field(default_factory=MailSettings)
    shortener: ShortenerSettings = Field(default_factory=ShortenerSettings)

    front_uri: str = Field(
        default="http://localhost",
        alias="FRONT_URI",
        description="Base URL of the alerting front-end",
    )
    timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        alias="TIMEZONE",
        description="Time zone of timestamps in emails",
    )
    date_time_format: str = Field(
        default=DEFAULT_DATE_TIME_FORMAT,
        alias="DATE_TIME_FORMAT",
        description="strftime format of timestamps in emails",
    )
    request_timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        alias="REQUEST_TIMEOUT",
        description="HTTP request timeout in seconds",
        gt=0,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Compose notifications without sending them",
    )

    @field_validator("front_uri")
    @classmethod
    def validate_front_uri(cls, v: str) -> str:
        """Validate front-end URL format."""
        return (_validate_http_url(v) or v).rstrip("/")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate that the time zone is known."""
        return _validate_timezone(v)

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def sms_sender_config(self) -> dict[str, str]:
        """Get the flat settings mapping for ``SmsSender.initialize``."""
        config = {
            "url": self.sms.url or "",
            "login": self.sms.login,
            "password": self.sms.password.get_secret_value() if self.sms.password else "",
            "front_uri": self.front_uri,
            "source_address": self.sms.source_address,
            "timeout": str(self.request_timeout),
        }
        if self.shortener.enabled:
            config["shortener_url"] = self.shortener.url or ""
            config["shortener_key"] = (
                self.shortener.api_key.get_secret_value() if self.shortener.api_key else ""
            )
        return config

    def mail_sender_config(self) -> dict[str, str]:
        """Get the flat settings mapping for ``MailSender.initialize``."""
        return {
            "url": self.mail.url or "",
            "login": self.mail.login,
            "password": self.mail.password.get_secret_value() if self.mail.password else "",
            "channel": self.mail.channel,
            "template": self.mail.template,
            "front_uri": self.front_uri,
            "timezone": self.timezone,
            "date_time_format": self.date_time_format,
            "timeout": str(self.request_timeout),
        }

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "sms": {
                "url": self.sms.url or "(not set)",
                "login": self.sms.login or "(not set)",
                "password": "(set)" if self.sms.password else "(not set)",
            },
            "mail": {
                "url": self.mail.url or "(not set)",
                "login": self.mail.login or "(not set)",
                "password": "(set)" if self.mail.password else "(not set)",
                "channel": self.mail.channel or "(not set)",
                "template": self.mail.template or "(not set)",
            },
            "shortener": {
                "url": self.shortener.url or "(not set)",
                "api_key": "(set)" if self.shortener.api_key else "(not set)",
            },
            "sms_enabled": str(self.sms.enabled),
            "mail_enabled": str(self.mail.enabled),
            "shortener_enabled": str(self.shortener.enabled),
            "front_uri": self.front_uri,
            "timezone": self.timezone,
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Uses LRU cache to ensure settings are loaded only once and
    reused across the application.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
