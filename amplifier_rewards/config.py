"""Runtime settings.

Values come from defaults, then caller overrides (CLI), then environment
variables named ``AMPLIFIER_REWARDS__<FIELD>``. Environment takes
precedence over CLI, as in the validator entrypoints.
"""

from __future__ import annotations

import os
from typing import Any, Mapping

import bittensor as bt
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from amplifier_rewards.chain.deployment import MAINNET_CONFIG_URL
from amplifier_rewards.errors import ConfigurationError

ENV_PREFIX = "AMPLIFIER_REWARDS__"
TEST_MODE_ENV = "AMPLIFIER_REWARDS_TEST_MODE"

DEFAULT_LCD_ENDPOINTS = [
    "https://axelar-lcd.publicnode.com",
    "https://axelar-api.polkachu.com",
    "https://api-axelar.cosmos-spaces.cloud",
    "https://axelar-rest.publicnode.com",
    "https://lcd-axelar.imperator.co",
]

# Blocks per rewards epoch on mainnet; used when a pool omits epoch_duration.
DEFAULT_EPOCH_LENGTH = 47250


class Settings(BaseModel):
    """Immutable settings for one process."""

    model_config = ConfigDict(frozen=True)

    lcd_endpoints: list[str] = Field(default_factory=lambda: list(DEFAULT_LCD_ENDPOINTS), min_length=1)
    request_timeout: float = Field(default=15.0, gt=0)
    probe_timeout: float = Field(default=5.0, gt=0)
    max_retries: int = Field(default=3, ge=1)
    retry_backoff: float = Field(default=1.0, ge=0)
    deployment_config_url: str = MAINNET_CONFIG_URL

    epoch_length: int = Field(default=DEFAULT_EPOCH_LENGTH, gt=0)
    epochs_to_check: int = Field(default=5, ge=1)
    signing_lookback: int = Field(default=5000, gt=0)
    voting_lookback: int = Field(default=2000, gt=0)
    scan_concurrency: int = Field(default=4, ge=1)
    scan_timeout: float | None = Field(default=None, gt=0)

    price_ttl_seconds: float = Field(default=60.0, ge=0)
    default_price_usd: float = Field(default=0.5, ge=0)

    def lookback_for(self, kind: str) -> int:
        return self.voting_lookback if kind == "voting" else self.signing_lookback


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name in Settings.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None or raw == "":
            continue
        if name == "lcd_endpoints":
            overrides[name] = [e.strip() for e in raw.split(",") if e.strip()]
        else:
            overrides[name] = raw
    return overrides


def load_settings(
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build Settings from overrides and the environment.

    Raises:
        ConfigurationError: a value fails validation.
    """
    if environ is None:
        if os.environ.get(TEST_MODE_ENV) != "true":
            load_dotenv()
        environ = os.environ

    values = {k: v for k, v in (overrides or {}).items() if v is not None}
    values.update(_env_overrides(environ))
    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e

    bt.logging.debug({"settings": settings.model_dump()})
    return settings


__all__ = [
    "DEFAULT_EPOCH_LENGTH",
    "DEFAULT_LCD_ENDPOINTS",
    "ENV_PREFIX",
    "Settings",
    "load_settings",
]
