from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://momentum:momentum@db:5432/momentum"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    # Calendar used for date keys ("today" is the local date in this zone).
    TIMEZONE: str = "UTC"

    # Weekly coaching narrative generator (external collaborator).
    COACHING_ENDPOINT_URL: str = "http://localhost:3000/api/generate-weekly-coaching"
    COACHING_TIMEOUT_SECONDS: float = 10.0

    # --- Unlock ramp (first 14 days) ---
    # Days 1-3: 20 + (age-1)*5, days 4-7: 35 + (age-4)*5, days 8-14: table.
    RAMP_EARLY_BASE: int = 20
    RAMP_MID_BASE: int = 35
    RAMP_STEP: int = 5
    UNLOCK_RAMP_TABLE: dict[int, int] = {
        8: 55, 9: 57, 10: 59, 11: 61, 12: 63, 13: 64, 14: 65,
    }
    NEW_USER_DAYS: int = 14

    # Trend: |delta| <= TREND_DEADBAND reads as "stable".
    TREND_DEADBAND: int = 2

    # --- Streaks & consistency ---
    STREAK_SAVER_INTERVAL: int = 7
    MAX_STREAK_SAVERS: int = 3
    CONSISTENCY_MIN_AGE: int = 7
    CONSISTENCY_MAX_WINDOW: int = 30
    GAP_LOOKBACK_DAYS: int = 30
    GAP_RESET_DAYS: int = 7

    # --- Habit progression ---
    COMMITMENT_DAYS: int = 7
    LEVEL_UP_MIN_ACCOUNT_AGE: int = 7
    LEVEL_UP_WINDOW_DAYS: int = 7
    LEVEL_UP_REQUIRED_HITS: int = 5
    LEVEL_UP_COOLDOWN_DAYS: int = 7
    DEFAULT_MOVEMENT_MINUTES: int = 10

    # --- Rewards ---
    RETURN_FROM_BREAK_DAYS: int = 7

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
