from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from BOOKER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BOOKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite:///./data/karaoke_booking.db"
    log_level: str = "INFO"

    # JWT configuration
    secret_key: str = "secure-secret-key-1234567890"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Booking policy
    min_booking_minutes: int = 15
    slot_minutes: int = 60
    placement_attempts: int = 2


settings = Settings()
