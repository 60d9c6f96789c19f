"""Prahari — Application Configuration."""

import json
import logging
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Optional

_cfg_logger = logging.getLogger("prahari.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    app_name: str = "Prahari"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Rolling window (days)
    rolling_window_days: int = 7

    # Scoring model
    base_weight: float = 2.0
    new_signal_rate: float = 0.5
    accel_weight: float = 0.3
    accel_max_boost: float = 0.30
    accel_max_penalty: float = -0.15
    direction_threshold_pct: float = 10.0

    # Level thresholds (score >= value)
    level_critical: float = 80.0
    level_high: float = 40.0
    level_elevated: float = 15.0

    # Conflict-state thresholds (score >= value)
    state_active: float = 10.0
    state_escalating: float = 3.0

    # Seed decay
    decay_rate: float = 0.97
    decay_interval_hours: int = 24
    seed_initial_score: float = 25.0
    seed_entity_ids: list[str] = [
        "ukraine", "sudan", "palestine", "yemen", "myanmar", "dr-congo",
        "syria", "haiti", "somalia", "ethiopia", "mali", "burkina-faso",
    ]

    # Result cache (seconds); GDELT refreshes every 15 min
    cache_ttl_seconds: int = 900
    fallback_ttl_seconds: int = 60

    # Stories newer than this flag a record as hasNew
    new_story_hours: int = 24

    # Per-adapter timeout (seconds)
    adapter_timeout_seconds: float = 10.0

    # Secondary-source precedence (applied first → last)
    hint_source_order: list[str] = ["crisis_watch", "reliefweb"]

    # Provider endpoints
    acled_api_url: str = "https://api.acleddata.com/acled/read"
    gdelt_doc_url: str = "https://api.gdeltproject.org/api/v2/doc/doc"
    conflict_feed_url: str = "https://www.aljazeera.com/xml/rss/subjects/conflict.xml"
    crisis_watch_feeds: list[str] = [
        "https://www.crisisgroup.org/rss-0",
        "https://www.armyrecognition.com/focus-analysis-conflicts/army/conflicts-in-the-world/feed/rss",
    ]
    reliefweb_url: str = "https://api.reliefweb.int/v1/reports"
    reliefweb_appname: str = "prahari"

    # API Keys (optional, ACLED is skipped without them)
    acled_api_key: Optional[str] = None
    acled_email: Optional[str] = None

    model_config = {"env_file": ".env", "env_prefix": "PRAHARI_"}


def _load_settings() -> Settings:
    """Load settings, supplementing with credentials.json for ACLED keys."""
    s = Settings()

    # Auto-load credentials from credentials.json if not set via env
    creds_path = Path(__file__).resolve().parent.parent / "credentials.json"
    if creds_path.exists():
        try:
            creds = json.loads(creds_path.read_text(encoding="utf-8"))

            if not s.acled_api_key:
                s.acled_api_key = creds.get("acled_api_key", "")
                s.acled_email = creds.get("acled_email", "")
                if s.acled_api_key:
                    _cfg_logger.info("ACLED credentials loaded from %s", creds_path.name)
        except Exception as e:
            _cfg_logger.warning("Failed to read credentials.json: %s", e)

    return s


settings = _load_settings()
