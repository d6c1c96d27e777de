import os
from pydantic import BaseModel


class Settings(BaseModel):
    api_key: str = os.getenv("API_KEY", "change-me")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")

    # Pose estimation
    pose_provider: str = os.getenv("POSE_PROVIDER", "mock")
    pose_api_base: str = os.getenv("POSE_API_BASE", "http://localhost:8003/api/v1")
    pose_timeout_seconds: float = float(os.getenv("POSE_TIMEOUT_SECONDS", "30"))

    # Measurement calibration
    default_reference_height_cm: float = float(os.getenv("DEFAULT_REFERENCE_HEIGHT_CM", "170"))
    low_confidence_threshold: float = float(os.getenv("LOW_CONFIDENCE_THRESHOLD", "0.6"))

    # JWT
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    jwt_audience: str | None = os.getenv("JWT_AUDIENCE")
    jwt_issuer: str | None = os.getenv("JWT_ISSUER")
    jwt_ttl_seconds: int = int(os.getenv("JWT_TTL_SECONDS", "3600"))

    # Rate limit (token bucket)
    rate_limit_per_min: int = int(os.getenv("RATE_LIMIT_PER_MIN", "60"))
    rate_limit_burst: int = int(os.getenv("RATE_LIMIT_BURST", "30"))

    # Cache
    cache_ttl_seconds: int = int(os.getenv("CACHE_TTL_SECONDS", "600"))
    cache_max_items: int = int(os.getenv("CACHE_MAX_ITEMS", "256"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
