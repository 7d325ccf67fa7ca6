"""Application configuration via environment variables."""
from pathlib import Path
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    app_name: str = "ChainViz"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    catalog_file: Path = Path(__file__).resolve().parent / "catalog" / "architecture.json"
    scenarios_dir: Path | None = PROJECT_ROOT / "data" / "scenarios"
    default_speed: float = 1.0
    speed_options: list[float] = [0.25, 0.5, 1.0, 1.5, 2.0, 3.0]
    max_sessions: int = 100
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = {"env_prefix": "CHAINVIZ_"}


settings = Settings()
