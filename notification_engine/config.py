"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./notifications.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    app_timezone: str = Field(
        default="America/New_York",
        description="Timezone used to timestamp persisted notification rows",
    )

    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending notification emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )

    twilio_account_sid: str | None = Field(
        default=None, description="Twilio account SID used to send SMS messages"
    )
    twilio_auth_token: str | None = Field(
        default=None, description="Twilio auth token paired with the account SID"
    )
    twilio_from_number: str | None = Field(
        default=None, description="E.164 sender number registered with Twilio"
    )

    notification_batch_size: int = Field(
        default=50, gt=0, description="Recipients sent concurrently per bulk batch"
    )
    notification_batch_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Pause between bulk batches, in milliseconds",
    )
    email_batch_size: int | None = Field(
        default=None, gt=0, description="Email specific override of the batch size"
    )
    email_batch_delay_ms: int | None = Field(
        default=None, ge=0, description="Email specific override of the batch delay"
    )
    sms_batch_size: int | None = Field(
        default=None, gt=0, description="SMS specific override of the batch size"
    )
    sms_batch_delay_ms: int | None = Field(
        default=None, ge=0, description="SMS specific override of the batch delay"
    )
    dispatch_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Upper bound for a single channel dispatch; unset means no limit",
    )

    default_expiration_days: int = Field(
        default=30, ge=0, description="Days before an in-app notification expires"
    )
    claim_status_expiration_days: int | None = Field(default=None, ge=0)
    payment_received_expiration_days: int | None = Field(default=None, ge=0)
    auth_expiry_expiration_days: int | None = Field(default=None, ge=0)
    filing_deadline_expiration_days: int | None = Field(default=None, ge=0)

    enable_email_by_default: bool = Field(
        default=False,
        description="Whether email delivery is enabled for users without stored preferences",
    )
    enable_sms_by_default: bool = Field(
        default=False,
        description="Whether SMS delivery is enabled for users without stored preferences",
    )
    default_quiet_hours_timezone: str = Field(
        default="America/New_York",
        description="Timezone assigned to the quiet hours of default preferences",
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self

    @model_validator(mode="after")
    def _validate_twilio_credentials(self) -> "Settings":
        provided = [
            bool(self.twilio_account_sid),
            bool(self.twilio_auth_token),
            bool(self.twilio_from_number),
        ]
        if any(provided) and not all(provided):
            raise ValueError(
                "TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER must all be "
                "provided to enable SMS"
            )
        if self.twilio_from_number and not self.twilio_from_number.startswith("+"):
            raise ValueError("TWILIO_FROM_NUMBER must be in E.164 format")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
