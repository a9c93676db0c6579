import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def is_enabled(flag: str, default: bool = False) -> bool:
    return os.getenv(flag, str(default)).lower() == "true"


def _csv(name: str) -> List[str]:
    raw = os.getenv(name, "") or ""
    return [x.strip() for x in raw.split(",") if x.strip()]


class Settings:
    def __init__(self) -> None:
        self.CLINIC_LOYALTY_VERSION = os.getenv("CLINIC_LOYALTY_VERSION", "0.1.0")
        self.LEDGER_LOG_LEVEL = os.getenv("LEDGER_LOG_LEVEL", "INFO").upper()
        self.LEDGER_SEED_DEMO_DATA = is_enabled("LEDGER_SEED_DEMO_DATA", True)
        self.LEDGER_CURRENCY_SYMBOL = os.getenv("LEDGER_CURRENCY_SYMBOL", "₹")
        self.CORS_MODE = os.getenv("CORS_MODE", "off").lower()
        self.CORS_ALLOW_ORIGINS = _csv("CORS_ALLOW_ORIGINS")
        self.FEATURE_FAMILY_LINKING = is_enabled("FEATURE_FAMILY_LINKING", True)


settings = Settings()
