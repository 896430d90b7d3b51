from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Learning Tracker API"
    app_version: str = "0.1.0"

    # sqlite:// keeps everything in memory for the life of the process
    database_url: str = "sqlite://"
    seed_on_startup: bool = True

    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    bcrypt_rounds: int = 12

    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    level_points: int = 100
    auto_unlock_progress_achievements: bool = True


settings = Settings()
