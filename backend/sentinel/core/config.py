from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "audit-sentinel"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "auditsentinel"
    POSTGRES_USER: str = "auditsentinel"
    POSTGRES_PASSWORD: str = "changeme"

    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts
    DATABASE_URL_OVERRIDE: str | None = None

    # Scaleway API
    SCALEWAY_API_KEY: str | None = None
    SCALEWAY_PROJECT_ID: str | None = None
    SCALEWAY_ORG_ID: str | None = None
    SCALEWAY_API_URL: str = "https://api.scaleway.com"

    # Ingestion
    POLL_INTERVAL_SECONDS: int = 300
    INGESTION_ENABLED: bool = True

    # Detection
    FAILED_LOGIN_WINDOW_MINUTES: int = 15
    FAILED_LOGIN_THRESHOLD: int = 5
    FAILED_LOGIN_COOLDOWN_MINUTES: int = 0

    # API / remediation
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_AUTH_TOKEN: str | None = None
    REMEDIATION_ACTOR: str = "system"

    # Alerting / Webhooks
    SLACK_ALERT_WEBHOOK_URL: str | None = None
    GENERIC_ALERT_WEBHOOK_URL: str | None = None

    # Construct SQLAlchemy URL
    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
