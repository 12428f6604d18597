"""Application configuration management."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_BALANCE_SYMBOLS = ["ETH", "MTK", "USDC", "DAI", "USDT"]


class Settings(BaseSettings):
    """Runtime configuration loaded from environment or `.env`."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: Optional[int] = Field(default=None, alias="TELEGRAM_CHAT_ID")

    rpc_url: str = Field(..., alias="RPC_URL")
    private_key: str = Field(..., alias="PRIVATE_KEY")
    network_label: str = Field(default="testnet", alias="NETWORK_LABEL")

    gas_limit: int = Field(default=250_000, alias="GAS_LIMIT", ge=21_000)
    confirmation_timeout_seconds: float = Field(
        default=120.0,
        alias="CONFIRMATION_TIMEOUT_SECONDS",
        gt=0,
    )

    tokens_json: Optional[Path] = Field(default=None, alias="TOKENS_JSON")
    default_balance_symbols: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_BALANCE_SYMBOLS),
        alias="DEFAULT_BALANCE_SYMBOLS",
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./.tmp/paybot.db",
        alias="DATABASE_URL",
    )

    rate_limit_per_user_per_min: int = Field(
        default=10,
        alias="RATE_LIMIT_PER_USER_PER_MIN",
        ge=1,
        le=60,
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("default_balance_symbols", mode="before")
    @classmethod
    def _parse_symbols(cls, value: Any) -> List[str]:
        if value in (None, "", []):
            return list(DEFAULT_BALANCE_SYMBOLS)
        if isinstance(value, str):
            return [part.strip().upper() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple)):
            return [str(v).strip().upper() for v in value]
        return [str(value).strip().upper()]


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Return cached Settings instance, raising a helpful message on failure."""
    try:
        return Settings()
    except (
        ValidationError
    ) as exc:  # pragma: no cover - configuration failure visible on boot
        raise RuntimeError(f"Invalid configuration: {exc}") from exc


__all__ = ["DEFAULT_BALANCE_SYMBOLS", "Settings", "load_settings"]
