"""Oracles: account/commodity completions and per-date file offsets.

The core never inspects the ledger grammar itself; it asks an :class:`Oracle`.
Two implementations are provided:

- :class:`LedgerOracle` shells out to the ``ledger`` command-line tool, which
  understands the full file format (includes, comments, prices...).
- :class:`ScanOracle` reads the file directly and only understands the layout
  this package writes. It is the fallback when no ``ledger`` binary exists.

Both raise :class:`~ledger_compose.errors.CollaboratorError` on failure.
Calls block until the collaborator answers; there is no timeout.
"""

from __future__ import annotations

import datetime as dt
import os
import re
import subprocess
from collections.abc import Sequence
from os import PathLike
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .errors import CollaboratorError
from .insertion import fold_date_offsets, read_ledger, scan_date_offsets
from .logging_setup import get_logger
from .models import DateOffset

_logger = get_logger("ledger_compose.oracle")

# One line per posting: transaction date and the byte offset just past it.
_REGISTER_FORMAT = '%(format_date(xact.date, "%Y-%m-%d")) %(xact.end_pos)\n'

_POSTING_RE = re.compile(r"^[ \t]+([^\s;][^\t]*?)(?:\t+| {2,})(\S+)[ \t]+\S")


class Oracle(Protocol):
    def list_accounts(self, prefix: str) -> list[str]: ...

    def list_commodities(self, prefix: str) -> list[str]: ...

    def date_offsets(self) -> list[DateOffset]: ...


def parse_offset_lines(text: str) -> list[DateOffset]:
    """Parse ``YYYY-MM-DD <offset>`` lines into folded :class:`DateOffset` pairs.

    Pairs are sorted by date (stable, so file order breaks ties) before folding.
    """

    pairs: list[DateOffset] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        fields = line.split()
        if len(fields) != 2:
            raise CollaboratorError(f"unexpected date offset line {lineno}: {line!r}")
        try:
            pairs.append(DateOffset(date=dt.date.fromisoformat(fields[0]), offset=int(fields[1])))
        except (ValueError, ValidationError) as e:
            raise CollaboratorError(f"unexpected date offset line {lineno}: {line!r}") from e
    pairs.sort(key=lambda p: p.date)
    return fold_date_offsets(pairs)


def _non_empty_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


class LedgerOracle:
    """Oracle backed by the ``ledger`` binary run against one journal file."""

    def __init__(self, ledger_file: str | PathLike[str], *, ledger_bin: str = "ledger") -> None:
        self.ledger_file = Path(ledger_file)
        self.ledger_bin = ledger_bin

    def _run(self, *args: str) -> str:
        cmd = [self.ledger_bin, "-f", os.fspath(self.ledger_file), *args]
        _logger.debug("oracle:run cmd=%s", cmd)
        try:
            result = subprocess.run(cmd, capture_output=True, check=False)
        except OSError as e:
            raise CollaboratorError(f"cannot run {self.ledger_bin!r}: {e}") from e
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise CollaboratorError(
                f"{self.ledger_bin} {args[0]} exited with status {result.returncode}: {stderr}"
            )
        try:
            return result.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CollaboratorError(f"{self.ledger_bin} {args[0]} output is not UTF-8") from e

    def list_accounts(self, prefix: str) -> list[str]:
        args = ["accounts"]
        if prefix:
            args.append("^" + re.escape(prefix))
        return _non_empty_lines(self._run(*args))

    def list_commodities(self, prefix: str) -> list[str]:
        return [c for c in _non_empty_lines(self._run("commodities")) if c.startswith(prefix)]

    def date_offsets(self) -> list[DateOffset]:
        if not self.ledger_file.exists():
            return []
        return parse_offset_lines(self._run("register", "--format", _REGISTER_FORMAT))


class ScanOracle:
    """Oracle that reads the journal file directly.

    Only entries in this package's own layout are understood: a date header at
    column 0 followed by indented ``account<TAB>commodity amount`` postings.
    """

    def __init__(self, ledger_file: str | PathLike[str]) -> None:
        self.ledger_file = Path(ledger_file)

    def _text(self) -> str:
        try:
            return read_ledger(self.ledger_file).decode("utf-8")
        except UnicodeDecodeError as e:
            raise CollaboratorError(f"{self.ledger_file} is not valid UTF-8") from e

    def _postings(self) -> list[tuple[str, str]]:
        found: list[tuple[str, str]] = []
        for line in self._text().splitlines():
            m = _POSTING_RE.match(line)
            if m:
                found.append((m.group(1).strip(), m.group(2)))
        return found

    def list_accounts(self, prefix: str) -> list[str]:
        return _matching(sorted({acct for acct, _ in self._postings()}), prefix)

    def list_commodities(self, prefix: str) -> list[str]:
        return _matching(sorted({comm for _, comm in self._postings()}), prefix)

    def date_offsets(self) -> list[DateOffset]:
        return scan_date_offsets(read_ledger(self.ledger_file))


def _matching(names: Sequence[str], prefix: str) -> list[str]:
    return [n for n in names if n.startswith(prefix)]


__all__ = ["Oracle", "LedgerOracle", "ScanOracle", "parse_offset_lines"]
