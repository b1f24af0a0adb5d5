import os
from pathlib import Path

# Basic settings helper to read environment configuration.

BACKEND_ROOT = Path(__file__).resolve().parent


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.DATA_DIR: Path = Path(os.getenv("SERVICEMAP_DATA_DIR") or BACKEND_ROOT / "data")
        self.FEATURES_JSON_PATH: Path = Path(
            os.getenv("FEATURES_JSON_PATH") or self.DATA_DIR / "features.json"
        )
        self.FEATURES_SAMPLE_PATH: Path = Path(
            os.getenv("FEATURES_SAMPLE_PATH") or self.DATA_DIR / "features.sample.json"
        )
        self.ADDRESS_INDEX_PATH: Path = Path(
            os.getenv("ADDRESS_INDEX_PATH") or self.DATA_DIR / "addressIndex.json"
        )
        self.ADDRESS_INDEX_TTL_SECONDS: float = _as_float(os.getenv("ADDRESS_INDEX_TTL_SECONDS"), 300.0)
        self.FEATURES_TTL_SECONDS: float = _as_float(os.getenv("FEATURES_TTL_SECONDS"), 600.0)
        self.FEATURES_CACHE_ENABLED: bool = _as_bool(os.getenv("FEATURES_CACHE_ENABLED"), True)
        self.CORS_ALLOW_ORIGINS: list[str] = [
            o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
        ]

    @property
    def features_ttl(self) -> float:
        """Effective in-process TTL for the feature collection (0 when caching is off)."""
        return self.FEATURES_TTL_SECONDS if self.FEATURES_CACHE_ENABLED else 0.0


settings = Settings()
