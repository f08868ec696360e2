import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    generation_model: str = os.getenv("GENERATION_MODEL", "google-genai:gemini-2.0-flash")
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    google_places_api_key: str = os.getenv("GOOGLE_PLACES_API_KEY", "")
    mongodb_uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    database_name: str = os.getenv("DATABASE_NAME", "trip_planner")
    default_country: str = os.getenv("DEFAULT_COUNTRY", "India")
    # Places text-search timeout per candidate
    places_timeout_seconds: float = float(os.getenv("PLACES_TIMEOUT_SECONDS", "8"))
    rate_limit_delay_seconds: float = float(os.getenv("RATE_LIMIT_DELAY_SECONDS", "8"))
    rate_limit_retries: int = int(os.getenv("RATE_LIMIT_RETRIES", "2"))
    photo_max_width: int = int(os.getenv("PHOTO_MAX_WIDTH", "800"))
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "")


def get_settings() -> Settings:
    return Settings()
