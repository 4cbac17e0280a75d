"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings pulled from GEOMINES_* environment variables."""

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # Sphere Configuration
    sphere_radius: float = Field(default=2.0, gt=0, description="Radius of the level 1 sphere")
    radius_step: float = Field(default=0.5, ge=0, description="Radius added per level")
    max_subdivisions: int = Field(default=6, ge=1, le=8, description="Largest accepted subdivision tier")

    # Difficulty Configuration
    base_mine_percentage: float = Field(default=0.15, gt=0, lt=1, description="Mine density at level 1")
    difficulty_step: float = Field(default=0.2, ge=0, description="Relative density increase per level")
    max_mine_percentage: float = Field(default=0.5, gt=0, lt=1, description="Density cap")
    safe_first_click: bool = Field(
        default=True, description="Place mines on the first reveal, away from the clicked cell"
    )

    class Config:
        env_prefix = "GEOMINES_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instantiate singleton settings object
settings = Settings()
