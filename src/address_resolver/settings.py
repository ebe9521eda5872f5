from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

from .geocoding.geocoders import DEFAULT_USER_AGENT, GOVMAP_URL, NOMINATIM_URL
from .geocoding.policy import (
    ClassificationPolicy,
    EnsemblePolicy,
    MunicipalityProfile,
    SpatialMatchPolicy,
)


class Settings(BaseSettings):
    address_points_path: Optional[Path] = None
    street_names_path: Optional[Path] = None
    cache_db_path: Optional[Path] = None

    govmap_url: str = GOVMAP_URL
    nominatim_url: str = NOMINATIM_URL
    user_agent: str = DEFAULT_USER_AGENT

    workers: int = 3
    provider_timeout_s: float = 8.0
    provider_min_delay_s: float = 1.0

    ingest_url: Optional[str] = None
    ingest_enabled: bool = False

    profile: MunicipalityProfile = MunicipalityProfile()
    spatial_policy: SpatialMatchPolicy = SpatialMatchPolicy()
    ensemble_policy: EnsemblePolicy = EnsemblePolicy()
    classification_policy: ClassificationPolicy = ClassificationPolicy()

    class Config:
        env_prefix = "RESOLVER_"
        env_file = ".env"
        env_nested_delimiter = "__"
        extra = "ignore"


settings = Settings()
