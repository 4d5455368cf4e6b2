import os
from dotenv import load_dotenv
from backend.app.utils.logger import create_logger

from pathlib import Path

# Load environment variables from .env file
load_dotenv()

BASE_DIR = Path(__file__).resolve().parents[3]  # repository root
DEFAULT_JWT_SECRET = "your-super-secret-key-change-in-production"

logger = create_logger(__name__, level=os.environ.get("LOG_LEVEL", "debug"))


class Config:
    # Runtime
    ENVIRONMENT = os.environ.get("APP_ENV", "production").lower()
    HOST = os.environ.get("HOST", "0.0.0.0")
    PORT = int(os.environ.get("PORT", 8000))

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "debug")
    LOG_FILE = os.environ.get("LOG_FILE")

    # Uploads
    UPLOAD_ROOT = Path(os.environ.get("UPLOAD_ROOT", BASE_DIR / "uploads")).resolve()

    # CORS
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]

    # JWT Settings
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", DEFAULT_JWT_SECRET)
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRATION_HOURS = int(os.environ.get("JWT_EXPIRATION_HOURS", 24))

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == "development"

    # Validation
    @classmethod
    def validate(cls):
        if cls.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
            logger.warning("JWT_SECRET_KEY is not set; using the insecure default.")


# Run validation on import
Config.validate()
