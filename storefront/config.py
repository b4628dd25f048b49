# storefront/config.py
import os
from typing import List

# Settings are read from the environment once, at import time.

DATABASE_URL: str = os.getenv("STORE_DATABASE_URL", "sqlite:///./storefront.db")
TAX_RATE: float = float(os.getenv("STORE_TAX_RATE", "0.1"))
LOG_LEVEL: str = os.getenv("STORE_LOG_LEVEL", "INFO").upper()
SEED_ON_STARTUP: bool = os.getenv("STORE_SEED", "").lower() in ("1", "true", "yes")

BASE_URL: str = os.getenv("STORE_BASE_URL", "http://127.0.0.1:8085")
API_TOKEN: str = os.getenv("STORE_API_TOKEN", "")


def cors_origins() -> List[str]:
    raw = os.getenv("STORE_CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]
