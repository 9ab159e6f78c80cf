"""Ledger gateway and contract configuration.

The configuration is a single JSON document validated once at startup.
Anything malformed fails fast with :class:`ConfigError`; the rest of the
code only ever sees a :class:`LedgerConfig` instance.

Example document::

    {
        "source": "base-mainnet",
        "rpc_urls": ["https://gateway-a.example", "https://gateway-b.example"],
        "game_contract": "0x82ca85c51d6018888fD3A9281156E8e358BFcb42",
        "achievement_contract": null,
        "completion_event": "GameCompleted"
    }
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from typerank.core.errors import ConfigError
from typerank.utils.address import is_address


class LedgerConfig(BaseModel):
    """Validated description of where ledger events come from."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str = Field(default="default", min_length=1)
    rpc_urls: list[str] = Field(min_length=1)
    game_contract: str
    achievement_contract: str | None = None
    completion_event: str = Field(default="GameCompleted", min_length=1)
    achievement_count: int = Field(default=6, ge=1)

    @field_validator("rpc_urls")
    @classmethod
    def _check_urls(cls, value: list[str]) -> list[str]:
        for url in value:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"rpc url must be http(s): {url!r}")
        return [url.rstrip("/") for url in value]

    @field_validator("game_contract", "achievement_contract")
    @classmethod
    def _check_address(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not is_address(value):
            raise ValueError(f"not a contract address: {value!r}")
        return value.lower()


def parse_ledger_config(raw: object) -> LedgerConfig:
    """Validate an already-decoded JSON document."""
    try:
        return LedgerConfig.model_validate(raw)
    except ValidationError as err:
        raise ConfigError(f"Invalid ledger configuration: {err}") from err


def load_ledger_config(path: str | Path) -> LedgerConfig:
    """Read and validate the ledger configuration file."""
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as err:
        raise ConfigError(f"Cannot read ledger configuration {config_path}: {err}") from err
    except json.JSONDecodeError as err:
        raise ConfigError(f"Ledger configuration {config_path} is not valid JSON: {err}") from err
    return parse_ledger_config(raw)
