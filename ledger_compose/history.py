"""Command history for the interactive prompts.

History belongs to the interaction loop only; the parser and the transaction
model never see it. Entries are persisted with prompt_toolkit's
``FileHistory`` format. Lines typed with a leading space are kept out of the
history, as in most shells.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from prompt_toolkit.history import FileHistory, History, InMemoryHistory

from .errors import LedgerIOError
from .logging_setup import get_logger

_logger = get_logger("ledger_compose.history")


def _ignored(line: str) -> bool:
    return not line.strip() or line.startswith(" ")


class CommandFileHistory(FileHistory):
    def append_string(self, string: str) -> None:
        if _ignored(string):
            return
        super().append_string(string)


class CommandMemoryHistory(InMemoryHistory):
    def append_string(self, string: str) -> None:
        if _ignored(string):
            return
        super().append_string(string)


def open_history(path: str | PathLike[str] | None) -> History:
    """Return a history that loads from and appends to ``path``.

    ``None`` gives an in-memory history that is discarded on exit.
    """

    if path is None:
        return CommandMemoryHistory()
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LedgerIOError(f"cannot create history directory {p.parent}: {e}") from e
    _logger.debug("history: path=%s", p)
    return CommandFileHistory(p)


__all__ = ["CommandFileHistory", "CommandMemoryHistory", "open_history"]
