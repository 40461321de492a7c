import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Project root is always the parent of the insightboard/ package.
repo_root = Path(__file__).resolve().parent.parent

# Load local environment variables (do NOT commit secrets).
load_dotenv(repo_root / ".env", override=False)


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    app_name: str = os.getenv("APP_NAME", "Insight Summary Backend")
    env: str = os.getenv("APP_ENV", os.getenv("ENV", "local"))

    cors_origins: str = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./insightboard.db")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Default size of the "top keywords" projection (the dashboard shows 10).
    top_keywords_default: int = int(os.getenv("TOP_KEYWORDS_DEFAULT", "10"))

    # Older exports carry Indonesian labels (positif/negatif/netral). When enabled they are
    # mapped onto the canonical classes; any other label still fails the run.
    accept_label_aliases: bool = _get_bool("ACCEPT_LABEL_ALIASES", "true")

    # Seeding
    seed_sample_data: bool = _get_bool("SEED_SAMPLE_DATA", "false")
    sample_data_path: str = os.getenv("SAMPLE_DATA_PATH", str((repo_root / "data/sample_insights.csv").resolve()))

    recompute_on_startup: bool = _get_bool("RECOMPUTE_ON_STARTUP", "false")
    recreate_db_on_startup: bool = _get_bool("RECREATE_DB_ON_STARTUP", "false")


settings = Settings()
