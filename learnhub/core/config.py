from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "LearnHub"
    VERSION: str = "1.0.0"
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Canonical relational store
    DATABASE_URL: str = "sqlite:///./learnhub.db"
    AUTO_CREATE_TABLES: bool = False

    # auto | relational | local
    STORAGE_BACKEND: str = "auto"

    # Local fallback store
    LOCAL_STORE_PATH: Optional[str] = ".learnhub-store"
    LOCAL_STORE_PREFIX: str = "learnhub"
    SEED_DEMO_COURSES: bool = True

    INITIAL_ADMIN_EMAIL: Optional[str] = None

    # Rendering flag for clients, reported by /utility/storage only
    LIGHTWEIGHT_MODE: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = "logs"

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
