from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    PROJECT_NAME: str = "Survey Aggregator"
    API_V1_STR: str = "/api/v1"

    # Database
    POSTGRES_SERVER: str = "db"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "survey_aggregator"
    DATABASE_URL: Optional[str] = None  # e.g. "sqlite:///./survey_aggregator.db"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]  # Frontend URL

    # Analytics
    VARIABLE_CACHE_TTL_SECONDS: int = 30 * 60  # 30 minutes
    MAX_SELECTED_VARIABLES: int = 5
    DISCOVERY_SAMPLE_SIZE: int = 100  # rows inspected per survey during variable discovery

    # Startup
    SEED_DEFAULT_MAPPINGS: bool = True
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
