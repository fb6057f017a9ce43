"""
Runtime settings, read from the environment (and a ``.env`` file if present).

Settings are built once by the entry point and handed to whatever needs
them; nothing in the package reads the environment on import.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from .constants import (
    DEFAULT_ALGOD_URL,
    DEFAULT_API_BASE_URL,
    DEFAULT_APP_ID,
    DEFAULT_INDEXER_URL,
    INDEXER_PAGE_LIMIT,
    TRANSACTION_WAIT_ROUNDS,
)

_TRUE = {"1", "true", "yes", "on"}


def _number(env: Mapping[str, str], name: str, default, cast, positive: bool = False):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a {cast.__name__}, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    if positive and value == 0:
        raise ValueError(f"{name} must be greater than zero, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    app_id: int = DEFAULT_APP_ID
    network: str = "testnet"
    algod_url: str = DEFAULT_ALGOD_URL
    algod_token: str = ""
    indexer_url: str = DEFAULT_INDEXER_URL
    indexer_token: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 10.0
    scan_timeout: float = 30.0
    page_limit: int = INDEXER_PAGE_LIMIT
    wait_rounds: int = TRANSACTION_WAIT_ROUNDS
    local_ledger: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, dotenv_path: str | Path | None = None) -> "Settings":
        """Build settings from ``TRUSTCAR_*`` variables.

        When ``env`` is omitted, ``.env`` (or ``dotenv_path``) is loaded into
        ``os.environ`` first; existing variables win.
        """
        if env is None:
            load_dotenv(dotenv_path or Path.cwd() / ".env")
            env = os.environ
        return cls(
            app_id=_number(env, "TRUSTCAR_APP_ID", DEFAULT_APP_ID, int),
            network=env.get("TRUSTCAR_NETWORK", "testnet").strip() or "testnet",
            algod_url=env.get("TRUSTCAR_ALGOD_URL", DEFAULT_ALGOD_URL),
            algod_token=env.get("TRUSTCAR_ALGOD_TOKEN", ""),
            indexer_url=env.get("TRUSTCAR_INDEXER_URL", DEFAULT_INDEXER_URL),
            indexer_token=env.get("TRUSTCAR_INDEXER_TOKEN", ""),
            api_base_url=env.get("TRUSTCAR_API_BASE_URL", DEFAULT_API_BASE_URL),
            request_timeout=_number(env, "TRUSTCAR_REQUEST_TIMEOUT", 10.0, float, positive=True),
            scan_timeout=_number(env, "TRUSTCAR_SCAN_TIMEOUT", 30.0, float, positive=True),
            page_limit=_number(env, "TRUSTCAR_PAGE_LIMIT", INDEXER_PAGE_LIMIT, int, positive=True),
            wait_rounds=_number(env, "TRUSTCAR_WAIT_ROUNDS", TRANSACTION_WAIT_ROUNDS, int),
            local_ledger=env.get("TRUSTCAR_LOCAL_LEDGER", "").strip().lower() in _TRUE,
        )
