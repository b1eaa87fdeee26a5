from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "DNA ERP"
    debug: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Database
    database_url: str = "sqlite:///./dna_erp.db"
    database_echo: bool = False

    # DNA rule document (markdown or YAML); built-in defaults when missing
    dna_path: Optional[str] = "dna-repo/rules/approval-thresholds.md"

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None  # console only when unset

    # Demo data
    seed_demo_data: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ERP_",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
