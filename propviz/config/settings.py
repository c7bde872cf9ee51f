import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

class Settings:
    """Application configuration settings"""

    # Google Maps (browser map + server-side geocoding)
    GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    GEOCODE_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"
    GEOCODE_CACHE_TTL: int = int(os.getenv("GEOCODE_CACHE_TTL", "3600"))  # 1 hour

    # Supabase (auth, users table, storage)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL") or None
    DATABASE_POOL_SIZE: int = int(os.getenv("DATABASE_POOL_SIZE", "5"))
    STORAGE_BUCKET: str = os.getenv("STORAGE_BUCKET", "visualizer-images")

    # Image generation vendors
    VISUALIZER_PROVIDERS: list = [
        p.strip() for p in os.getenv("VISUALIZER_PROVIDERS", "huggingface,openai").split(",") if p.strip()
    ]
    HUGGINGFACE_API_TOKEN: str = os.getenv("HUGGINGFACE_API_TOKEN", "")
    HUGGINGFACE_MODEL: str = os.getenv("HUGGINGFACE_MODEL", "timbrooks/instruct-pix2pix")
    HUGGINGFACE_BASE_URL: str = "https://api-inference.huggingface.co/models"
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_VISION_MODEL: str = os.getenv("OPENAI_VISION_MODEL", "gpt-4o")
    OPENAI_IMAGE_MODEL: str = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")
    GOOGLE_CLOUD_PROJECT: Optional[str] = os.getenv("GOOGLE_CLOUD_PROJECT") or None
    GOOGLE_CLOUD_LOCATION: str = os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1")
    VERTEX_IMAGE_MODEL: str = os.getenv("VERTEX_IMAGE_MODEL", "gemini-2.5-flash-image")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "120"))

    # Visualizer
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))  # 10MB
    HISTORY_PATH: str = os.getenv("HISTORY_PATH", "visualization_history.json")
    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "20"))

    # Flask
    DEBUG: bool = os.getenv("DEBUG", "true").lower() == "true"
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key")
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("PORT", os.getenv("API_PORT", "3000")))
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))
    RATE_LIMIT_PER_HOUR: int = int(os.getenv("RATE_LIMIT_PER_HOUR", "7200"))  # 120 * 60

    # Security
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")
    ALLOWED_ORIGINS: list = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")

    KNOWN_PROVIDERS = ("huggingface", "openai", "vertex")

    @classmethod
    def validate(cls) -> None:
        """Validate required settings"""
        if not cls.GOOGLE_MAPS_API_KEY:
            raise ValueError("GOOGLE_MAPS_API_KEY is required")

        if not cls.SUPABASE_URL or not cls.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")

        unknown = [p for p in cls.VISUALIZER_PROVIDERS if p not in cls.KNOWN_PROVIDERS]
        if unknown:
            raise ValueError(f"Invalid VISUALIZER_PROVIDERS: {', '.join(unknown)}")

        if cls.HISTORY_LIMIT < 1:
            raise ValueError(f"Invalid HISTORY_LIMIT: {cls.HISTORY_LIMIT}")

# Create singleton instance
settings = Settings()
