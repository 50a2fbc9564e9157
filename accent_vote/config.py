from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Accent Vote API"
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "accent_vote"
    SECRET_KEY: str = ""

    # API Settings
    API_V1_STR: str = "/api/v1"

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # CORS Settings (for frontend)
    BACKEND_CORS_ORIGINS: list = ["http://localhost:3000"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Prefectures below this many votes are hidden on the map
    MIN_PREFECTURE_VOTES: int = 10

    model_config = ConfigDict(env_file=".env", extra="ignore")

settings = Settings()
