from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # MongoDB (override via env)
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "hunterx"  # used when the URI carries no database
    MONGO_COLLECTION: str = "characters"
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # API
    UNIQUE_NAMES: bool = False  # reject case-insensitive duplicate names on create
    CORS_ALLOW_ORIGINS: List[str] = ["*"]
    API_SERVER_URL: Optional[str] = None  # advertised in the OpenAPI "servers" list

    class Config:
        env_file = ".env"


settings = Settings()
