from pydantic_settings import BaseSettings, SettingsConfigDict

_LEVELS_BY_ENVIRONMENT = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}


class Settings(BaseSettings):
    database_url: str
    environment: str = "development"
    log_level: str | None = None
    log_dir: str | None = None
    order_number_prefix: str = "ORD"
    order_commit_max_attempts: int = 3
    order_commit_retry_backoff: float = 0.05
    amount_tolerance: float = 0.01
    create_tables_on_startup: bool = True
    cors_allow_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return _LEVELS_BY_ENVIRONMENT.get(self.environment.lower(), "INFO")


settings = Settings()
