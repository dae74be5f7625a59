from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "LIVEABILITY_"}

    # Inputs / outputs
    data_dir: str = "data"
    output_path: str = "data/processed/data.json"

    # Boundary source (ArcGIS REST, Ottawa Neighbourhoods layer)
    fetch_boundaries: bool = False
    boundary_api_url: str = "https://maps.ottawa.ca/arcgis/rest/services/Neighbourhoods/MapServer/0/query"
    fetch_concurrency: int = 4
    fetch_timeout_seconds: float = 15.0
    boundary_cache_path: str = "data/boundary_cache.db"
    boundary_cache_days: int = 90

    # Number of years covered by each multi-year source (rates are annualized)
    crime_years: int = 2  # 2023-2024
    collision_years: int = 3  # 2022-2024
    service_request_years: int = 1
    overdose_years: int = 1

    # Random sample health data, only generated when a seed is set
    health_sample_seed: int | None = None

    # App
    log_level: str = "INFO"


settings = Settings()
