"""Chronological insertion of a rendered transaction into a ledger file.

Placement is driven by the file's existing per-date offsets: each
:class:`~ledger_compose.models.DateOffset` names the byte offset just past the
last entry for that date. A new entry goes after the last entry of its own
date, or after the last entry of the closest earlier date, or at the very
start of the file when it predates everything.

The rewrite never touches the original in place: the new content is written
to a temporary file in the same directory, flushed and fsynced, then renamed
over the original with ``os.replace``.
"""

from __future__ import annotations

import bisect
import contextlib
import datetime as dt
import os
import re
import stat
import tempfile
from collections.abc import Iterable, Sequence
from os import PathLike
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import CollaboratorError, LedgerIOError
from .logging_setup import get_logger
from .models import DateOffset

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .oracle import Oracle

_logger = get_logger("ledger_compose.insertion")

_NL = b"\n"
_HEADER_RE = re.compile(rb"(\d{4}-\d{2}-\d{2})(?=[ \t\r\n]|$)")


def fold_date_offsets(pairs: Iterable[DateOffset]) -> list[DateOffset]:
    """Deduplicate ``pairs`` so only the last offset per date survives.

    ``pairs`` must already be sorted by date, ties kept in file order. A date
    that goes backwards means the caller broke that contract, and folding would
    silently pick the wrong offset, so it is rejected instead.
    """

    folded: list[DateOffset] = []
    for pair in pairs:
        if folded and pair.date < folded[-1].date:
            raise CollaboratorError(
                f"date offsets are not sorted by date: {pair.date} after {folded[-1].date}"
            )
        if folded and pair.date == folded[-1].date:
            folded[-1] = pair
        else:
            folded.append(pair)
    return folded


def insertion_point(date_offsets: Sequence[DateOffset], date: dt.date) -> int:
    """Return the byte offset where an entry dated ``date`` must be inserted."""

    dates = [d.date for d in date_offsets]
    i = bisect.bisect_left(dates, date)
    if i < len(dates) and dates[i] == date:
        return date_offsets[i].offset
    return date_offsets[i - 1].offset if i > 0 else 0


def splice(data: bytes, position: int, entry: bytes) -> tuple[bytes, int]:
    """Insert ``entry`` into ``data`` at ``position`` with clean newline seams.

    Returns the new content and the offset at which ``entry`` starts in it.
    """

    if not 0 <= position <= len(data):
        raise CollaboratorError(
            f"insertion offset {position} is outside the file (size {len(data)})"
        )
    before, after = data[:position], data[position:]
    parts = [before]
    if (before and not before.endswith(_NL)) or not after:
        parts.append(_NL)
    start = sum(len(p) for p in parts)
    parts.append(entry)
    if not after.startswith(_NL):
        parts.append(_NL)
    parts.append(after)
    return b"".join(parts), start


def insert(
    file_bytes: bytes,
    date_offsets: Sequence[DateOffset],
    date: dt.date,
    rendered_text: str,
) -> bytes:
    """Return ``file_bytes`` with ``rendered_text`` spliced in date order."""

    position = insertion_point(date_offsets, date)
    new_bytes, _ = splice(file_bytes, position, rendered_text.encode("utf-8"))
    return new_bytes


def write_atomic(path: str | PathLike[str], data: bytes) -> None:
    """Replace ``path`` with ``data`` so readers only ever see old or new content."""

    target = Path(path)
    try:
        mode = stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        mode = None
    except OSError as e:
        raise LedgerIOError(f"cannot stat {target}: {e}") from e

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
    except OSError as e:
        raise LedgerIOError(f"cannot create temporary file next to {target}: {e}") from e

    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, target)
    except OSError as e:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise LedgerIOError(f"cannot write {target}: {e}") from e
    _logger.debug("atomic_write: path=%s bytes=%d", os.fspath(target), len(data))


def read_ledger(path: str | PathLike[str]) -> bytes:
    """Return the file's bytes; a file that does not exist yet reads as empty."""

    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        return b""
    except OSError as e:
        raise LedgerIOError(f"cannot read {path}: {e}") from e


def insert_into_file(
    path: str | PathLike[str],
    oracle: Oracle,
    date: dt.date,
    rendered_text: str,
) -> int:
    """Insert an entry dated ``date`` into the ledger at ``path``; return its offset.

    The oracle is consulted before anything is written; when it fails the
    ``CollaboratorError`` propagates and the file is left alone.
    """

    data = read_ledger(path)
    offsets = oracle.date_offsets()
    position = insertion_point(offsets, date)
    new_bytes, start = splice(data, position, rendered_text.encode("utf-8"))
    write_atomic(path, new_bytes)
    _logger.debug(
        "insert: path=%s date=%s position=%d entry_start=%d",
        os.fspath(path),
        date,
        position,
        start,
    )
    return start


def scan_date_offsets(data: bytes) -> list[DateOffset]:
    """Derive folded date offsets from a file laid out the way this tool writes.

    An entry starts with a line beginning ``YYYY-MM-DD`` at column 0 and runs
    through the indented lines that follow it. Its end offset is the position
    just past the newline of its last line. Other top-level lines end the
    current entry. Entries are sorted by date (stable, so file order breaks
    ties) before folding.
    """

    pairs: list[DateOffset] = []
    current: dt.date | None = None
    end = 0
    pos = 0
    for line in data.splitlines(keepends=True):
        line_end = pos + len(line)
        if line[:1] in (b" ", b"\t") and current is not None:
            if line.strip():
                end = line_end
        else:
            if current is not None:
                pairs.append(DateOffset(date=current, offset=end))
                current = None
            m = _HEADER_RE.match(line)
            if m:
                try:
                    current = dt.date.fromisoformat(m.group(1).decode("ascii"))
                except ValueError:
                    current = None
                end = line_end
        pos = line_end
    if current is not None:
        pairs.append(DateOffset(date=current, offset=end))
    pairs.sort(key=lambda p: p.date)
    return fold_date_offsets(pairs)


__all__ = [
    "fold_date_offsets",
    "insertion_point",
    "splice",
    "insert",
    "write_atomic",
    "read_ledger",
    "insert_into_file",
    "scan_date_offsets",
]
