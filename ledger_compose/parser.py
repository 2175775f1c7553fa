"""Incremental, word-at-a-time parser for change commands.

Grammar (words separated by single ASCII spaces)::

    line    := op_code account [account] [currency amount] | op_code account
    op_code := "a" (simple change) | "s" (split change) | "f" (finalize)

The parser is a small finite state machine. Each transition is the pure
function :func:`step` from ``(state, word)`` to a new :class:`ParserState`;
:class:`CommandParser` only holds the current state so an interactive caller
can feed words as they are typed and ask :meth:`CommandParser.expected_next`
which kind of token to complete.

The transaction header (``YYYY-MM-DD description``) is not incremental and is
handled by :func:`parse_header`.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from enum import Enum

from .errors import GrammarError, HeaderError, IncompleteCommandError
from .models import MAX_AMOUNT_DIGITS, Amount, Finalize, Operation, SimpleChange, SplitChange
from .transaction import Transaction


class TokenKind(Enum):
    OPERATION = "operation"
    ACCOUNT = "account"
    CURRENCY = "currency"
    AMOUNT = "amount"
    END_OF_LINE = "end of line"

    def __str__(self) -> str:
        return self.value


class OperationKind(Enum):
    SIMPLE = "a"
    SPLIT = "s"
    FINALIZE = "f"


OPERATION_HELP: dict[OperationKind, str] = {
    OperationKind.SIMPLE: "add an amount to one account",
    OperationKind.SPLIT: "split an amount evenly between two accounts",
    OperationKind.FINALIZE: "balance the transaction on one account",
}

# A letter, then letters, digits or the ``:`` separator.
_ACCOUNT_RE = re.compile(r"[^\W\d_](?:[^\W_]|:)*")
_NON_DIGIT_RE = re.compile(r"[^0-9]")
_HEADER_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


@dataclass(frozen=True, slots=True)
class ParserState:
    expected: TokenKind = TokenKind.OPERATION
    kind: OperationKind | None = None
    accounts: tuple[str, ...] = ()
    commodity: str | None = None
    amount: Decimal | None = None


def _parse_operation(state: ParserState, word: str) -> ParserState:
    try:
        kind = OperationKind(word)
    except ValueError:
        raise GrammarError(
            "invalid operation (expected a, s or f)", word=word, expected=state.expected
        ) from None
    return replace(state, kind=kind, expected=TokenKind.ACCOUNT)


def _parse_account(state: ParserState, word: str) -> ParserState:
    if not _ACCOUNT_RE.fullmatch(word):
        raise GrammarError(
            "invalid character in account name", word=word, expected=state.expected
        )
    accounts = state.accounts + (word,)
    if state.kind is OperationKind.SPLIT and len(accounts) == 1:
        expected = TokenKind.ACCOUNT
    elif state.kind is OperationKind.FINALIZE:
        expected = TokenKind.END_OF_LINE
    else:
        expected = TokenKind.CURRENCY
    return replace(state, accounts=accounts, expected=expected)


def _parse_currency(state: ParserState, word: str) -> ParserState:
    # A bare number would be ambiguous with the amount that follows.
    if not _NON_DIGIT_RE.search(word):
        raise GrammarError("invalid currency", word=word, expected=state.expected)
    return replace(state, commodity=word, expected=TokenKind.AMOUNT)


def _fixed_point_digits(value: Decimal) -> int:
    """Digits needed to write ``value`` without an exponent."""

    t = value.as_tuple()
    exponent = int(t.exponent)
    return max(len(t.digits) + exponent, 1) + max(-exponent, 0)


def _parse_amount(state: ParserState, word: str) -> ParserState:
    try:
        value = Decimal(word)
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite():
        raise GrammarError("invalid amount", word=word, expected=state.expected)
    if _fixed_point_digits(value) > MAX_AMOUNT_DIGITS:
        raise GrammarError(
            f"invalid amount (more than {MAX_AMOUNT_DIGITS} digits)",
            word=word,
            expected=state.expected,
        )
    return replace(state, amount=value, expected=TokenKind.END_OF_LINE)


def step(state: ParserState, word: str) -> ParserState:
    """Consume one word and return the next state; raise ``GrammarError`` on misfit."""

    match state.expected:
        case TokenKind.OPERATION:
            return _parse_operation(state, word)
        case TokenKind.ACCOUNT:
            return _parse_account(state, word)
        case TokenKind.CURRENCY:
            return _parse_currency(state, word)
        case TokenKind.AMOUNT:
            return _parse_amount(state, word)
        case TokenKind.END_OF_LINE:
            raise GrammarError(
                "unexpected input after end of command", word=word, expected=state.expected
            )
    raise AssertionError(f"unhandled parser state: {state.expected!r}")  # pragma: no cover


def build_operation(state: ParserState) -> Operation | None:
    """Return the operation described by ``state``, or ``None`` when incomplete."""

    if state.expected is not TokenKind.END_OF_LINE:
        return None
    if state.kind is OperationKind.FINALIZE:
        return Finalize(state.accounts[0])
    if state.commodity is None or state.amount is None:
        return None
    amount = Amount(state.commodity, state.amount)
    if state.kind is OperationKind.SPLIT:
        return SplitChange(state.accounts[0], state.accounts[1], amount)
    return SimpleChange(state.accounts[0], amount)


class CommandParser:
    """Stateful wrapper around :func:`step` for one change command.

    After a failed :meth:`feed` the command is aborted: the state stays where
    it was and further words are refused until :meth:`reset`.
    """

    def __init__(self) -> None:
        self._state = ParserState()
        self._error: GrammarError | None = None

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def error(self) -> GrammarError | None:
        return self._error

    def reset(self) -> None:
        self._state = ParserState()
        self._error = None

    def feed(self, word: str) -> None:
        if self._error is not None:
            raise GrammarError(
                "command aborted after an earlier error; start over",
                word=word,
                expected=self._state.expected,
            )
        try:
            self._state = step(self._state, word)
        except GrammarError as e:
            self._error = e
            raise

    def expected_next(self) -> TokenKind:
        return self._state.expected

    def operation(self) -> Operation | None:
        if self._error is not None:
            return None
        return build_operation(self._state)

    def try_complete(self) -> Operation:
        if self._error is not None:
            raise self._error
        op = build_operation(self._state)
        if op is None:
            raise IncompleteCommandError(
                f"incomplete command, expecting {self._state.expected}",
                expected=self._state.expected,
            )
        return op


def split_words(line: str) -> list[str]:
    """Split a command line into words, ignoring runs of whitespace."""

    return line.split()


def parse_command(line: str) -> Operation:
    """Parse a whole change command line; raise ``GrammarError`` on failure."""

    parser = CommandParser()
    for word in split_words(line.strip()):
        parser.feed(word)
    return parser.try_complete()


def parse_header(line: str) -> Transaction:
    """Parse ``YYYY-MM-DD description`` into an empty :class:`Transaction`."""

    parts = line.strip().split(maxsplit=1)
    if not parts or not _HEADER_DATE_RE.fullmatch(parts[0]):
        raise HeaderError("missing or malformed transaction header")
    try:
        date = dt.date.fromisoformat(parts[0])
    except ValueError as e:
        raise HeaderError(f"missing or malformed transaction header: {e}") from e
    description = parts[1].strip() if len(parts) > 1 else ""
    return Transaction(date, description)


__all__ = [
    "TokenKind",
    "OperationKind",
    "OPERATION_HELP",
    "ParserState",
    "step",
    "build_operation",
    "CommandParser",
    "split_words",
    "parse_command",
    "parse_header",
]
