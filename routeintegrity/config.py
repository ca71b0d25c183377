"""
Configuration module for the Route Integrity Registry.

Centralizes all configuration with environment variable support.
Values are read once at import.
"""

import os
from pathlib import Path
from typing import Dict, List

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("ROUTEINTEGRITY_ENV", "dev")  # dev|stage|prod

# Storage
DB_PATH = os.getenv("ROUTEINTEGRITY_DB_PATH", "data/routeintegrity.db")

# Committer identity
COMMITTER_MODE = os.getenv("ROUTEINTEGRITY_COMMITTER_MODE", "registry")  # registry|caller
REGISTRY_IDENTITY = os.getenv("ROUTEINTEGRITY_IDENTITY", "route-integrity-registry")
IDENTITY_KEY_PATH = os.getenv("ROUTEINTEGRITY_IDENTITY_KEY_PATH", "secrets/registry_identity_key.json")
IDENTITY_KID = os.getenv("ROUTEINTEGRITY_IDENTITY_KID", "registry-identity-01")

# Event sinks (comma separated: memory, log, sqlite, s3_object_lock, webhook)
EVENT_SINKS = os.getenv("ROUTEINTEGRITY_EVENT_SINKS", "log,sqlite")
SIGN_EVENTS = os.getenv("ROUTEINTEGRITY_SIGN_EVENTS", "true").lower() in ("1", "true", "yes")

S3_BUCKET = os.getenv("S3_BUCKET", "")
S3_PREFIX = os.getenv("S3_PREFIX", "routeintegrity/events/")
S3_RETENTION_DAYS = int(os.getenv("S3_RETENTION_DAYS", "365"))
S3_LEGAL_HOLD = os.getenv("S3_LEGAL_HOLD", "OFF")

INDEXER_WEBHOOK_URL = os.getenv("INDEXER_WEBHOOK_URL", "")
INDEXER_WEBHOOK_TIMEOUT = float(os.getenv("INDEXER_WEBHOOK_TIMEOUT", "3"))

# Rate limits (requests per minute)
COMMIT_RPM = int(os.getenv("COMMIT_RPM", "120"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("LOG_FILE", "")


def event_sink_names() -> List[str]:
    """Configured event sink names, in order."""
    return [name.strip() for name in EVENT_SINKS.split(",") if name.strip()]


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Validate configuration values and files.
    Returns dict of check name -> ok.
    """
    return {
        "committer_mode": COMMITTER_MODE in ("registry", "caller"),
        "identity_key": Path(IDENTITY_KEY_PATH).exists(),
        "db_dir": Path(DB_PATH).parent.exists(),
        "s3_bucket": bool(S3_BUCKET) or "s3_object_lock" not in event_sink_names(),
        "webhook_url": bool(INDEXER_WEBHOOK_URL) or "webhook" not in event_sink_names(),
    }


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("ROUTEINTEGRITY_DEBUG", "").lower() in ("1", "true", "yes")
