from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = "dev"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./tenant_portal.db"

    # Billing rules
    DEFAULT_CURRENCY: str = "USD"
    LATE_FEE_RATE: float = 0.05
    LATE_FEE_CAP_RATE: float = 0.10
    LATE_FEE_PERIOD_DAYS: int = 30
    MAX_OVERPAYMENT_RATIO: float = 1.5

    # Gateway selection (only "mock" ships with the portal)
    PAYMENT_GATEWAY: str = "mock"
    MOCK_GATEWAY_SUCCESS_RATE: float = 0.95

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
