"""
Runtime settings.

Read once at startup from environment variables. A `.env` file in the
project root is loaded first (through python-dotenv) so local development
does not need exported variables.

Variables:
- POS_STORE_BACKEND: "memory" (default) or "supabase"
- SUPABASE_URL / SUPABASE_KEY: required when the backend is supabase
- POS_TAX_RATE: fixed sales tax rate, default 0.18
- POS_CREDIT_DAYS: due date offset for credit sales, default 30
- POS_RELEASE_STOCK_ON_FAILURE: restore reserved stock when a sale fails, default false
- POS_STOCK_CAS_ATTEMPTS: conditional-update attempts per stock reservation, default 5
- POS_LOG_LEVEL: logging level name, default INFO
- POS_CORS_ORIGINS: comma separated allowed origins, default "*"
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

_ENV_PATH = Path(__file__).parent.parent / ".env"

_BACKENDS = ("memory", "supabase")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    tax_rate: Decimal = Decimal("0.18")
    credit_days: int = 30
    release_stock_on_failure: bool = False
    stock_cas_attempts: int = 5
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = field(default=("*",))

    def __post_init__(self) -> None:
        if self.store_backend not in _BACKENDS:
            raise ValueError(f"POS_STORE_BACKEND must be one of {_BACKENDS}, got {self.store_backend!r}")
        if not (Decimal("0") <= self.tax_rate < Decimal("1")):
            raise ValueError("POS_TAX_RATE must be in [0, 1)")
        if self.credit_days < 0:
            raise ValueError("POS_CREDIT_DAYS cannot be negative")
        if self.stock_cas_attempts < 1:
            raise ValueError("POS_STOCK_CAS_ATTEMPTS must be >= 1")


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _parse_decimal(name: str, raw: str) -> Decimal:
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env` (defaults to os.environ after loading .env).

    Raises:
        ValueError: if any variable is present but malformed
    """

    if env is None:
        load_dotenv(dotenv_path=_ENV_PATH)
        env = os.environ

    defaults = Settings()
    origins = env.get("POS_CORS_ORIGINS")

    return Settings(
        store_backend=env.get("POS_STORE_BACKEND", defaults.store_backend).strip().lower(),
        supabase_url=env.get("SUPABASE_URL") or None,
        supabase_key=env.get("SUPABASE_KEY") or None,
        tax_rate=_parse_decimal("POS_TAX_RATE", env["POS_TAX_RATE"])
        if "POS_TAX_RATE" in env
        else defaults.tax_rate,
        credit_days=_parse_int("POS_CREDIT_DAYS", env["POS_CREDIT_DAYS"])
        if "POS_CREDIT_DAYS" in env
        else defaults.credit_days,
        release_stock_on_failure=_parse_bool(
            "POS_RELEASE_STOCK_ON_FAILURE", env["POS_RELEASE_STOCK_ON_FAILURE"]
        )
        if "POS_RELEASE_STOCK_ON_FAILURE" in env
        else defaults.release_stock_on_failure,
        stock_cas_attempts=_parse_int("POS_STOCK_CAS_ATTEMPTS", env["POS_STOCK_CAS_ATTEMPTS"])
        if "POS_STOCK_CAS_ATTEMPTS" in env
        else defaults.stock_cas_attempts,
        log_level=env.get("POS_LOG_LEVEL", defaults.log_level).upper(),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip())
        if origins
        else defaults.cors_origins,
    )


__all__ = ["Settings", "load_settings"]
