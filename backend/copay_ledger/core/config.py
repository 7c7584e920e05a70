from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "copay-ledger"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DOMAIN: str = "example.com"
    LOG_LEVEL: str = "INFO"
    APP_DATABASE_DSN: str = "sqlite:////tmp/copay_ledger.db"
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Business rules
    OVERPAYMENT_MULTIPLIER: int = 5
    DEFAULT_CURRENCY: str = "USD"

    # Simulated payment processor
    PROCESSOR_WEBHOOK_URL: str = "http://localhost:8000/v1/webhooks/processor"
    PROCESSOR_MIN_DELAY_SECONDS: float = 2.0
    PROCESSOR_MAX_DELAY_SECONDS: float = 5.0
    PROCESSOR_SUCCESS_RATE: float = 0.8
    PROCESSOR_CALLBACKS_ENABLED: bool = True

    # PENDING payments older than this are reported by the worker
    STALE_PAYMENT_MINUTES: int = 60

    # Copay summary (OpenRouter chat completions)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_MODEL: str = "openai/gpt-4o-mini"
    SUMMARY_TIMEOUT_SECONDS: float = 10.0

    @property
    def summary_ai_enabled(self) -> bool:
        return bool(self.OPENROUTER_API_KEY)


settings = Settings()
