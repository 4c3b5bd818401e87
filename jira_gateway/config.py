"""Application configuration via pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:3001"]
    # API key (optional): if set, required on all routes except /health and the Jira webhook
    api_key: str = ""

    # Jira Cloud
    jira_url: str = ""  # e.g. https://your-domain.atlassian.net
    jira_email: str = ""
    jira_api_token: str = ""
    jira_timeout_seconds: float = 30.0

    # Inbound webhooks (signature checking is skipped when the secret is empty)
    jira_webhook_secret: str = ""
    # Per remote address; over the limit the webhook answers 429
    webhook_rate_limit: str = "1000/minute"

    # Field mapping refresh
    field_refresh_interval_minutes: int = 60
    scheduler_enabled: bool = True

    # Optional Postgres for the field-mapping KV entry (in-memory when unset)
    database_url: str = ""

    # Outbound event delivery to subscriber callbacks
    delivery_timeout_seconds: float = 5.0
    delivery_max_attempts: int = 5
    delivery_backoff_seconds: float = 0.5
    recent_events_limit: int = 50

    @property
    def jira_configured(self) -> bool:
        return bool(self.jira_url and self.jira_email and self.jira_api_token)


settings = Settings()
