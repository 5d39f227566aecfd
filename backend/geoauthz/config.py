from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    debug: bool = True
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Persistence ("memory" or "redis")
    store_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "geoauthz"

    # Region lookup
    region_lookup_timeout: float = 3.0  # seconds
    region_fail_open: bool = True
    nearest_region_fallback_km: float = 50.0  # 0 disables
    boundary_geojson_path: str = ""
    geocoder_url: str = "https://api.openrouteservice.org/geocode/reverse"
    geocoder_api_key: str = ""  # empty disables reverse geocoding

    # Housekeeping
    housekeeping_interval_seconds: int = 300
    expiring_soon_hours: int = 24

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
