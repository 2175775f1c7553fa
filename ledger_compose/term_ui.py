"""Terminal UI pieces for the compose prompts (prompt_toolkit-based).

Kept separate from the parsing and transaction logic so each piece can be
exercised headless. The completer asks the command parser which token kind
comes next and only then consults the oracle; oracle failures degrade to "no
completions" instead of interrupting the prompt. Both prompts show the most
recent matching history line as an inline suggestion; the right arrow key
accepts it.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import CompleteEvent, Completer, Completion, DummyCompleter
from prompt_toolkit.document import Document
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .errors import CollaboratorError, GrammarError, HeaderError, LedgerIOError
from .logging_setup import get_logger
from .oracle import Oracle
from .parser import OPERATION_HELP, CommandParser, OperationKind, TokenKind, parse_header

_logger = get_logger("ledger_compose.term_ui")

HEADER_PROMPT = "header> "
CHANGE_PROMPT = "change> "

STYLE = Style.from_dict(
    {
        "prompt": "bold ansigreen",
        "bottom-toolbar": "noreverse fg:#888888",
    }
)


def _split_current_word(text: str) -> tuple[list[str], str]:
    """Return the complete words before the cursor and the word being typed."""

    head, _, current = text.rpartition(" ")
    return [w for w in head.split(" ") if w], current


def expected_after(words: Iterable[str]) -> TokenKind | None:
    """Token kind expected after ``words``, or ``None`` when they do not parse."""

    parser = CommandParser()
    try:
        for word in words:
            parser.feed(word)
    except GrammarError:
        return None
    return parser.expected_next()


class CommandCompleter(Completer):
    """Complete operation codes, account names and commodity symbols."""

    def __init__(self, oracle: Oracle) -> None:
        self._oracle = oracle

    def _lookup(self, fetch: Callable[[str], list[str]], prefix: str) -> list[str]:
        try:
            return list(fetch(prefix))
        except (CollaboratorError, LedgerIOError):
            _logger.debug("completion lookup failed; offering none", exc_info=True)
            return []

    def get_completions(self, document: Document, complete_event: CompleteEvent):
        words, current = _split_current_word(document.text_before_cursor)
        expected = expected_after(words)
        if expected is TokenKind.OPERATION:
            for kind in OperationKind:
                if kind.value.startswith(current):
                    yield Completion(
                        kind.value,
                        start_position=-len(current),
                        display_meta=OPERATION_HELP[kind],
                    )
            return
        if expected is TokenKind.ACCOUNT:
            candidates = self._lookup(self._oracle.list_accounts, current)
        elif expected is TokenKind.CURRENCY:
            candidates = self._lookup(self._oracle.list_commodities, current)
        else:
            return
        for name in candidates:
            yield Completion(name, start_position=-len(current))


class HeaderValidator(Validator):
    def validate(self, document: Document) -> None:
        try:
            parse_header(document.text)
        except HeaderError as e:
            raise ValidationError(message=str(e), cursor_position=0) from e


class CommandValidator(Validator):
    """Reject change commands that do not parse; an empty line is accepted."""

    def validate(self, document: Document) -> None:
        text = document.text
        if not text.strip():
            return
        parser = CommandParser()
        for m in re.finditer(r"\S+", text):
            try:
                parser.feed(m.group())
            except GrammarError as e:
                raise ValidationError(message=str(e), cursor_position=m.start()) from e
        try:
            parser.try_complete()
        except GrammarError as e:
            raise ValidationError(message=str(e), cursor_position=len(text)) from e


def describe_expected(text: str) -> str:
    """One-line hint for the bottom toolbar."""

    words, _ = _split_current_word(text)
    expected = expected_after(words)
    if expected is None:
        return "invalid command; fix it or clear the line"
    if expected is TokenKind.OPERATION:
        return "a: add  s: split  f: finalize  (empty line saves the transaction)"
    return f"expecting {expected}"


def prompt_header(session: PromptSession, *, message: str = HEADER_PROMPT) -> str:
    return session.prompt(
        [("class:prompt", message)],
        validator=HeaderValidator(),
        validate_while_typing=False,
        completer=DummyCompleter(),
        auto_suggest=AutoSuggestFromHistory(),
        bottom_toolbar="YYYY-MM-DD description",
        style=STYLE,
    )


def prompt_change(
    session: PromptSession,
    completer: Completer,
    *,
    message: str = CHANGE_PROMPT,
) -> str:
    return session.prompt(
        [("class:prompt", message)],
        validator=CommandValidator(),
        validate_while_typing=False,
        completer=completer,
        complete_while_typing=False,
        auto_suggest=AutoSuggestFromHistory(),
        bottom_toolbar=lambda: describe_expected(session.default_buffer.text),
        style=STYLE,
    )


__all__ = [
    "HEADER_PROMPT",
    "CHANGE_PROMPT",
    "CommandCompleter",
    "HeaderValidator",
    "CommandValidator",
    "describe_expected",
    "expected_after",
    "prompt_header",
    "prompt_change",
]
