"""Public interface for the ``ledger_compose`` package.

This module exposes the package's models, parser entry points and insertion
functions as the stable import surface. There is no runtime logic here, only
symbol re-exports. The interactive loop and the CLI live in
:mod:`ledger_compose.compose` and :mod:`ledger_compose.cli`.
"""

from .errors import (
    CollaboratorError,
    GrammarError,
    HeaderError,
    IncompleteCommandError,
    LedgerComposeError,
    LedgerIOError,
)
from .insertion import insert, insert_into_file, insertion_point, write_atomic
from .models import Amount, DateOffset, Finalize, Operation, SimpleChange, SplitChange, apply
from .oracle import LedgerOracle, Oracle, ScanOracle
from .parser import CommandParser, TokenKind, parse_command, parse_header, step
from .transaction import Transaction, render

__all__ = [
    # Models / types
    "Amount",
    "SimpleChange",
    "SplitChange",
    "Finalize",
    "Operation",
    "DateOffset",
    "Transaction",
    # Operations
    "apply",
    "render",
    "step",
    "parse_command",
    "parse_header",
    "CommandParser",
    "TokenKind",
    "insert",
    "insertion_point",
    "insert_into_file",
    "write_atomic",
    # Oracles
    "Oracle",
    "LedgerOracle",
    "ScanOracle",
    # Errors
    "LedgerComposeError",
    "GrammarError",
    "IncompleteCommandError",
    "HeaderError",
    "CollaboratorError",
    "LedgerIOError",
]
