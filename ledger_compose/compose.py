"""Interactive compose loop: header → changes → save, repeated.

The loop is single-threaded and blocking. At most one transaction is pending
at a time: a header line starts one, each change line applies one operation,
and an empty change line renders the transaction and inserts it into the
ledger file. Ctrl-C or Ctrl-D ends the session; a pending transaction is
discarded with a warning.

Line handling is split into small functions (:func:`handle_header_line`,
:func:`handle_change_line`, :func:`commit_transaction`) so the behavior can be
tested without a terminal.
"""

from __future__ import annotations

from collections.abc import Callable
from os import PathLike

from prompt_toolkit import PromptSession

from .errors import CollaboratorError, GrammarError, HeaderError, LedgerIOError
from .insertion import insert_into_file
from .logging_setup import get_logger
from .oracle import Oracle
from .parser import parse_command, parse_header
from .term_ui import CommandCompleter, prompt_change, prompt_header
from .transaction import Transaction

_logger = get_logger("ledger_compose.compose")

type Echo = Callable[[str], object]


def handle_header_line(line: str, *, echo: Echo = print) -> Transaction | None:
    """Start a transaction from ``line``; report and return ``None`` on failure."""

    try:
        return parse_header(line)
    except HeaderError as e:
        echo(f"Error: {e}")
        return None


def handle_change_line(transaction: Transaction, line: str, *, echo: Echo = print) -> bool:
    """Parse ``line`` and apply it to ``transaction``.

    The transaction is only touched after the whole command parsed, so a bad
    command leaves it exactly as it was. Returns whether a change was applied.
    """

    try:
        operation = parse_command(line)
    except GrammarError as e:
        echo(f"Error: {e}")
        return False
    operation.apply(transaction)
    _logger.debug("applied %r", operation)
    return True


def commit_transaction(
    transaction: Transaction,
    *,
    oracle: Oracle,
    ledger_path: str | PathLike[str] | None,
    dry_run: bool = False,
    echo: Echo = print,
) -> bool:
    """Print ``transaction`` and insert it into the ledger file.

    Returns ``False`` when the write was aborted (oracle or I/O failure); the
    caller keeps the transaction pending so the user can retry.
    """

    echo(transaction.render().rstrip("\n"))
    if not transaction.is_balanced():
        unbalanced = ", ".join(str(a) for a in transaction.balance() if a.magnitude != 0)
        echo(f"Warning: transaction does not balance ({unbalanced})")
    if dry_run or ledger_path is None:
        return True
    try:
        start = insert_into_file(ledger_path, oracle, transaction.date, transaction.render())
    except CollaboratorError as e:
        echo(f"Error: cannot determine where to insert the transaction: {e}")
        return False
    except LedgerIOError as e:
        echo(f"Error: ledger file left unchanged: {e}")
        return False
    echo(f"Saved to {ledger_path} at byte {start}.")
    return True


def compose_transactions(
    oracle: Oracle,
    *,
    ledger_path: str | PathLike[str] | None,
    session: PromptSession | None = None,
    dry_run: bool = False,
    echo: Echo = print,
) -> list[Transaction]:
    """Run the interactive loop until EOF/interrupt; return committed transactions."""

    sess: PromptSession = session if session is not None else PromptSession()
    completer = CommandCompleter(oracle)
    committed: list[Transaction] = []
    pending: Transaction | None = None

    while True:
        try:
            if pending is None:
                line = prompt_header(sess)
            else:
                line = prompt_change(sess, completer)
        except (KeyboardInterrupt, EOFError):
            break

        if pending is None:
            pending = handle_header_line(line, echo=echo)
        elif not line.strip():
            if commit_transaction(
                pending, oracle=oracle, ledger_path=ledger_path, dry_run=dry_run, echo=echo
            ):
                committed.append(pending)
                pending = None
        else:
            handle_change_line(pending, line, echo=echo)

    if pending is not None:
        _logger.warning("discarding uncommitted transaction dated %s", pending.date)
        echo(f"Discarded uncommitted transaction: {pending.date} {pending.description}")
    return committed


__all__ = [
    "handle_header_line",
    "handle_change_line",
    "commit_transaction",
    "compose_transactions",
]
