"""
settings.py - Environment-driven settings

Read once at import time from the process environment, after loading
an optional `.env` file at the project root. `reload_settings()` re-reads.
"""

import os
from pathlib import Path
from dataclasses import dataclass, asdict

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent.parent
LOGS_DIR = ROOT_DIR / "logs"

load_dotenv(ROOT_DIR / ".env")


def _env_float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


@dataclass
class AppSettings:
    # Credentials
    gemini_api_key: str = ""
    supabase_url: str = ""
    supabase_key: str = ""

    # Pricing
    machine_hour_rate: float = 120.0            # laser/CNC R$/h
    default_roll_width_m: float = 1.20          # sticker roll when the product lists none
    quote_save_timeout_seconds: float = 30.0

    # Logistics
    price_per_km: float = 2.0                   # when the financial config has none
    shop_latitude: float = -19.9248
    shop_longitude: float = -44.1485

    # Gemini
    gemini_model: str = "gemini-1.5-flash"
    gemini_temperature: float = 0.4

    approval_base_url: str = "https://orcamento.phoco.com.br/q"
    debug_mode: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppSettings":
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_key=os.getenv("SUPABASE_KEY", ""),
            machine_hour_rate=_env_float("MACHINE_HOUR_RATE", cls.machine_hour_rate),
            default_roll_width_m=_env_float("DEFAULT_ROLL_WIDTH", cls.default_roll_width_m),
            quote_save_timeout_seconds=_env_float("QUOTE_SAVE_TIMEOUT", cls.quote_save_timeout_seconds),
            price_per_km=_env_float("PRICE_PER_KM", cls.price_per_km),
            shop_latitude=_env_float("SHOP_LATITUDE", cls.shop_latitude),
            shop_longitude=_env_float("SHOP_LONGITUDE", cls.shop_longitude),
            gemini_model=os.getenv("GEMINI_MODEL", cls.gemini_model),
            approval_base_url=os.getenv("APPROVAL_BASE_URL", cls.approval_base_url),
            debug_mode=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )

    def validate(self) -> list:
        """Configuration problems, empty when everything is usable"""
        problems = []
        if not (self.supabase_url and self.supabase_key):
            problems.append("SUPABASE_URL / SUPABASE_KEY not set.")
        if not self.gemini_api_key:
            problems.append("GEMINI_API_KEY not set (AI features use fallbacks).")
        if self.machine_hour_rate <= 0:
            problems.append("Machine hour rate must be greater than 0.")
        if self.default_roll_width_m <= 0:
            problems.append("Default roll width must be greater than 0.")
        if self.quote_save_timeout_seconds <= 0:
            problems.append("Quote save timeout must be greater than 0.")
        return problems

    def redacted(self) -> dict:
        """Settings as a dict with credentials masked"""
        data = asdict(self)
        for key in ("gemini_api_key", "supabase_key"):
            if data[key]:
                data[key] = "***"
        return data


settings = AppSettings.from_env()


def get_settings() -> AppSettings:
    return settings


def reload_settings() -> AppSettings:
    global settings
    settings = AppSettings.from_env()
    return settings


if __name__ == "__main__":
    current = get_settings()
    for key, value in current.redacted().items():
        print(f"{key:28} {value}")
    for problem in current.validate():
        print(f"! {problem}")
