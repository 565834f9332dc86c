from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://narrata:narrata@db:5432/narrata"
    APP_ENV: str = "development"
    SECRET_KEY: str = "changeme-secret-key"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://narrata.app,https://api.narrata.app"
    CORS_ORIGINS: str = "*"

    # Leaderboard listing
    LEADERBOARD_DEFAULT_PAGE_SIZE: int = 10
    LEADERBOARD_MAX_PAGE_SIZE: int = 50

    # Trailing windows for weekly_score / monthly_score
    LEADERBOARD_WEEKLY_WINDOW_DAYS: int = 7
    LEADERBOARD_MONTHLY_WINDOW_DAYS: int = 30

    DEFAULT_BADGE_ICON: str = "🏆"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
