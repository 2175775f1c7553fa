"""CLI for the ``ledger_compose`` package.

Typer-based console interface. Environment variables (see
:mod:`ledger_compose.config`) are loaded from a local ``.env`` using
``python-dotenv`` before settings are resolved. Business logic lives in
:mod:`ledger_compose.compose` and :mod:`ledger_compose.insertion`.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer.models import OptionInfo

from .config import Settings, load_settings
from .errors import LedgerComposeError
from .logging_setup import configure_logging, get_logger
from .oracle import LedgerOracle, Oracle, ScanOracle

_logger = get_logger("ledger_compose.cli")


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Compose double-entry transactions interactively and insert them into a "
        "ledger journal in date order. Loads settings from a local .env first."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
FILE_OPTION: OptionInfo = typer.Option(
    None,
    "--file",
    "-f",
    help="Ledger journal to write (falls back to LEDGER_COMPOSE_FILE / LEDGER_FILE).",
    dir_okay=False,
    file_okay=True,
)
LEDGER_BIN_OPTION: OptionInfo = typer.Option(
    None, "--ledger-bin", help="ledger executable used for completions and offsets."
)
SCAN_OPTION: OptionInfo = typer.Option(
    None,
    "--scan/--ledger",
    help="Read offsets and completions from the file directly instead of running ledger.",
)


def _fail(message: str, code: int = 1) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code)


def _resolve_settings(**overrides: object) -> tuple[Settings, Path]:
    """Return the settings and the ledger file they name; exit when there is none."""

    try:
        settings = load_settings(**overrides)
    except (ValidationError, ValueError) as e:
        raise _fail(f"invalid configuration: {e}", code=2) from e
    if settings.ledger_file is None:
        raise _fail("no ledger file; pass --file or set LEDGER_FILE", code=2)
    return settings, settings.ledger_file


def make_oracle(settings: Settings, ledger_file: Path) -> Oracle:
    if settings.use_scanner:
        return ScanOracle(ledger_file)
    return LedgerOracle(ledger_file, ledger_bin=settings.ledger_bin)


@app.command("compose")
def compose_cmd(
    file: Path | None = FILE_OPTION,
    ledger_bin: str | None = LEDGER_BIN_OPTION,
    scan: bool | None = SCAN_OPTION,
    history: Path | None = typer.Option(
        None, help="Command history file (falls back to LEDGER_COMPOSE_HISTORY)."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print finished transactions without writing the file."
    ),
) -> None:
    """Interactively compose transactions and insert them into the journal.

    Type a header (``YYYY-MM-DD description``), then change commands:

    - ``a ACCOUNT COMMODITY AMOUNT``: add an amount to an account
    - ``s ACCOUNT ACCOUNT COMMODITY AMOUNT``: split an amount between two accounts
    - ``f ACCOUNT``: balance the transaction on an account

    An empty line saves the transaction. Tab completes account names and
    commodities. Ctrl-D quits.
    """

    from prompt_toolkit import PromptSession

    from .compose import compose_transactions
    from .history import open_history

    settings, ledger_file = _resolve_settings(
        ledger_file=file, ledger_bin=ledger_bin, use_scanner=scan, history_file=history
    )
    try:
        session: PromptSession = PromptSession(history=open_history(settings.history_file))
    except LedgerComposeError as e:
        raise _fail(str(e)) from e

    committed = compose_transactions(
        make_oracle(settings, ledger_file),
        ledger_path=ledger_file,
        session=session,
        dry_run=dry_run,
        echo=typer.echo,
    )
    _logger.info("compose finished: %d transaction(s) committed", len(committed))


@app.command("insert")
def insert_cmd(
    file: Path | None = FILE_OPTION,
    ledger_bin: str | None = LEDGER_BIN_OPTION,
    scan: bool | None = SCAN_OPTION,
    entry: str = typer.Option(
        "-", "--entry", help="File holding one rendered entry; '-' reads standard input."
    ),
) -> None:
    """Insert an already rendered entry into the journal in date order."""

    from .insertion import insert_into_file
    from .parser import parse_header

    settings, ledger_file = _resolve_settings(
        ledger_file=file, ledger_bin=ledger_bin, use_scanner=scan
    )

    try:
        text = sys.stdin.read() if entry == "-" else Path(entry).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise _fail(f"cannot read entry {entry}: {e}") from e
    if not text.strip():
        raise _fail("entry is empty")
    text = text.strip("\n") + "\n"

    try:
        header = parse_header(text.splitlines()[0])
        start = insert_into_file(ledger_file, make_oracle(settings, ledger_file), header.date, text)
    except LedgerComposeError as e:
        raise _fail(str(e)) from e
    typer.echo(f"Inserted into {ledger_file} at byte {start}.")


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Logging level (falls back to LEDGER_COMPOSE_LOG_LEVEL)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging once.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m ledger_compose.cli`
    app()
