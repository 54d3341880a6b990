"""
Feature flags, paths, and centralized configuration.
All resolution relative to the backend directory; values read lazily from env.
"""
import os
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Repo root: backend/regcheck/config.py -> parent=regcheck, parent.parent=backend, parent.parent.parent=repo
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_REPO_ROOT = _BACKEND_DIR.parent

VOCABULARY_IDS = ("gras", "ndi", "odi", "allergens")

DEFAULT_CACHE_TTL_HOURS = 24.0
DEFAULT_STORE_TIMEOUT = 15.0
DEFAULT_STORE_PAGE_SIZE = 1000


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("CONFIG invalid float %s=%r; using default %s", name, raw, default)
        return default


# --- Reference store ---
def get_store_backend() -> str:
    return os.environ.get("REGCHECK_STORE", "json").strip().lower() or "json"

def get_data_dir() -> Path:
    override = os.environ.get("REGCHECK_DATA_DIR", "").strip()
    return Path(override) if override else _REPO_ROOT / "data"

def get_vocabulary_path(vocabulary_id: str) -> Path:
    return get_data_dir() / f"{vocabulary_id}.json"

def get_supabase_url() -> str:
    return os.environ.get("SUPABASE_URL", "").strip()

def get_supabase_key() -> str:
    return os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()

def get_store_page_size() -> int:
    return int(_env_float("REGCHECK_STORE_PAGE_SIZE", DEFAULT_STORE_PAGE_SIZE))


# --- Vocabulary cache ---
def get_cache_ttl_seconds(vocabulary_id: Optional[str] = None) -> float:
    """Per-vocabulary TTL (REGCHECK_TTL_GRAS_HOURS etc.) falling back to REGCHECK_CACHE_TTL_HOURS."""
    hours = _env_float("REGCHECK_CACHE_TTL_HOURS", DEFAULT_CACHE_TTL_HOURS)
    if vocabulary_id:
        hours = _env_float(f"REGCHECK_TTL_{vocabulary_id.upper()}_HOURS", hours)
    return hours * 3600.0

def get_store_timeout() -> float:
    return _env_float("REGCHECK_STORE_TIMEOUT", DEFAULT_STORE_TIMEOUT)


# --- Normalizer ---
def get_strip_stereo_prefixes() -> bool:
    return _env_flag("REGCHECK_STRIP_STEREO_PREFIXES")


# --- Startup logging ---
def log_config() -> None:
    ttls = {vid: get_cache_ttl_seconds(vid) / 3600.0 for vid in VOCABULARY_IDS}
    logger.info(
        "CONFIG: store=%s data_dir=%s data_dir_exists=%s supabase_url=%s supabase_key=%s "
        "page_size=%d ttl_hours=%s store_timeout=%.1fs strip_stereo_prefixes=%s",
        get_store_backend(), get_data_dir(), get_data_dir().exists(),
        bool(get_supabase_url()), bool(get_supabase_key()),
        get_store_page_size(), ttls, get_store_timeout(), get_strip_stereo_prefixes(),
    )
