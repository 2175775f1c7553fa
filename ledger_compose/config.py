"""Runtime settings resolved from explicit values and the environment.

Environment variables
---------------------
- ``LEDGER_COMPOSE_FILE`` (falls back to ``LEDGER_FILE``): journal to write.
- ``LEDGER_COMPOSE_LEDGER_BIN``: ``ledger`` executable (default ``ledger``).
- ``LEDGER_COMPOSE_HISTORY``: command history file
  (default ``~/.ledger_compose_history``).
- ``LEDGER_COMPOSE_SCAN``: truthy to use the built-in file scanner instead of
  the ``ledger`` binary.

The CLI loads a local ``.env`` (without overriding the real environment)
before calling :func:`load_settings`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_HISTORY_FILE = "~/.ledger_compose_history"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    ledger_file: Path | None = None
    ledger_bin: str = "ledger"
    history_file: Path = Path(DEFAULT_HISTORY_FILE)
    use_scanner: bool = False

    @field_validator("ledger_file", "history_file")
    @classmethod
    def _expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @field_validator("ledger_bin")
    @classmethod
    def _bin_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("ledger_bin must be non-empty")
        return v.strip()


def _env_flag(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    v = raw.strip().lower()
    if v in _TRUTHY:
        return True
    if v in _FALSY:
        return False
    raise ValueError(f"{name} must be one of {sorted(_TRUTHY | _FALSY)}, got {raw!r}")


def load_settings(**overrides: Any) -> Settings:
    """Build :class:`Settings` from the environment, then apply ``overrides``.

    Overrides whose value is ``None`` are ignored so CLI options that were not
    given fall through to the environment.
    """

    values: dict[str, Any] = {}
    ledger_file = os.getenv("LEDGER_COMPOSE_FILE") or os.getenv("LEDGER_FILE")
    if ledger_file:
        values["ledger_file"] = ledger_file
    if os.getenv("LEDGER_COMPOSE_LEDGER_BIN"):
        values["ledger_bin"] = os.environ["LEDGER_COMPOSE_LEDGER_BIN"]
    if os.getenv("LEDGER_COMPOSE_HISTORY"):
        values["history_file"] = os.environ["LEDGER_COMPOSE_HISTORY"]
    scan = _env_flag("LEDGER_COMPOSE_SCAN")
    if scan is not None:
        values["use_scanner"] = scan

    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings.model_validate(values)


__all__ = ["Settings", "load_settings", "DEFAULT_HISTORY_FILE"]
