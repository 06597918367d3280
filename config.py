from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "Ledger Reconciliation Engine"
    app_version: str = "1.0.0"
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    # Input settings
    input_encoding: str = "utf-8-sig"  # tolerates the BOM spreadsheet exports prepend
    input_errors: str = "replace"  # undecodable bytes become U+FFFD and fail row validation

    # Dispute policy
    allow_redispute: bool = False  # resolved transactions may be disputed again
    enforce_client_match: bool = True  # dispute-chain events must come from the owning client


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Environment-specific configurations
class DevelopmentSettings(Settings):
    debug: bool = True
    log_level: str = "DEBUG"
    log_format: Literal["json", "text"] = "text"


class ProductionSettings(Settings):
    debug: bool = False
    log_level: str = "INFO"


class TestingSettings(Settings):
    debug: bool = True
    log_level: str = "WARNING"  # Reduce noise in tests


def get_settings_for_environment(env: str = "development") -> Settings:
    """Get settings for specific environment."""
    settings_map = {
        "development": DevelopmentSettings,
        "production": ProductionSettings,
        "testing": TestingSettings,
    }

    settings_class = settings_map.get(env.lower(), Settings)
    return settings_class()
