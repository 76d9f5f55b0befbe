from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str

    # CORS origins, JSON list or comma-separated
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Calendar dates in reports are Philippine business days (UTC+8)
    REPORT_TIMEZONE: str = "Asia/Manila"

    # Transaction resolver, last-resort in-memory scan
    MANUAL_SCAN_PAGE_SIZE: int = 100
    MANUAL_SCAN_MAX_ROWS: int = 5000

    TOP_PRODUCTS_LIMIT: int = 10
    LOW_STOCK_DEFAULT_THRESHOLD: int = 10

    # BIR readings
    DEFAULT_TERMINAL_ID: str = "TERMINAL-01"


settings = Settings()  # type: ignore[call-arg]
