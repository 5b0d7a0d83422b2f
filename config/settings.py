from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Remote auction API (defaults match the hosted backend)
    API_BASE_URL: str = "https://voiceagent-omnidim.onrender.com"
    API_TIMEOUT_SECONDS: float = 10.0
    USER_AGENT: str = "AuctionClient/0.1"

    # Countdown ticker cadence
    TICK_INTERVAL_SECONDS: float = 1.0

    # App
    APP_NAME: str = "Auction Client"
    DEBUG: bool = False


settings = Settings()
