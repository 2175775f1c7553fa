"""Error taxonomy for ``ledger_compose``.

Every failure the package reports derives from :class:`LedgerComposeError`
so callers can tell a user-reportable problem apart from a programming error.
The concrete classes also inherit from the closest builtin (``ValueError`` for
bad input, ``RuntimeError`` for collaborator failures, ``OSError`` for file
I/O) so generic handlers keep working.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .parser import TokenKind


class LedgerComposeError(Exception):
    """Base class for all errors raised by this package."""


class GrammarError(LedgerComposeError, ValueError):
    """A change command word did not fit the grammar.

    ``word`` is the offending token (``None`` when the command ended early)
    and ``expected`` the token kind the parser was waiting for.
    """

    def __init__(
        self,
        message: str,
        *,
        word: str | None = None,
        expected: TokenKind | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.word = word
        self.expected = expected

    def __str__(self) -> str:
        if self.word is None:
            return self.message
        return f"{self.message}: {self.word!r}"


class IncompleteCommandError(GrammarError):
    """The command line ended before the grammar reached its end."""


class HeaderError(LedgerComposeError, ValueError):
    """The transaction header line could not be parsed."""


class CollaboratorError(LedgerComposeError, RuntimeError):
    """The external oracle failed or returned output of an unexpected shape."""


class LedgerIOError(LedgerComposeError, OSError):
    """Reading or rewriting the ledger file failed; the original is untouched."""


__all__ = [
    "LedgerComposeError",
    "GrammarError",
    "IncompleteCommandError",
    "HeaderError",
    "CollaboratorError",
    "LedgerIOError",
]
