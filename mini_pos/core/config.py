from pydantic_settings import BaseSettings, SettingsConfigDict

from mini_pos.models.enums import StockCheck


class Settings(BaseSettings):
    PROJECT_NAME: str = "Mini POS"

    # Database configuration
    DATABASE_URL: str = "sqlite:///./mini_pos.db"
    DATABASE_ECHO: bool = False

    # "live" re-reads stock inside the commit, "snapshot" trusts the cart
    STOCK_CHECK_MODE: StockCheck = StockCheck.LIVE

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )


def get_settings() -> Settings:
    return Settings()
