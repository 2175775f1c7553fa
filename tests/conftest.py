"""Pytest configuration for test isolation.

The CLI and :func:`ledger_compose.config.load_settings` read several
environment variables (``LEDGER_FILE``, ``LEDGER_COMPOSE_*``), and the
interactive loop appends to a history file under the user's home directory by
default. A developer shell with a real ledger configured must never leak into
the tests, so every test starts from a clean environment and a history file in
its own temporary directory.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

_ENV_VARS = (
    "LEDGER_FILE",
    "LEDGER_COMPOSE_FILE",
    "LEDGER_COMPOSE_LEDGER_BIN",
    "LEDGER_COMPOSE_HISTORY",
    "LEDGER_COMPOSE_SCAN",
    "LEDGER_COMPOSE_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear ledger-related variables and point history at ``tmp_path``."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LEDGER_COMPOSE_HISTORY", os.fspath(tmp_path / "history"))


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo ``configure_logging`` so CLI runs don't leave a handler on a closed stream."""

    from ledger_compose import logging_setup

    yield
    logger = logging.getLogger("ledger_compose")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    logging_setup._CONFIGURED = False
