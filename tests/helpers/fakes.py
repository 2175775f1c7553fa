"""Test doubles shared across the suite: a headless prompt session and an oracle."""

from __future__ import annotations

import contextlib

from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from ledger_compose.models import DateOffset


@contextlib.contextmanager
def pipe_session(**session_kwargs):
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput(), **session_kwargs)
        yield pipe, sess


class FakeOracle:
    """In-memory oracle; set ``fail`` to an exception to make every call raise it."""

    def __init__(
        self,
        accounts: list[str] | None = None,
        commodities: list[str] | None = None,
        offsets: list[DateOffset] | None = None,
        fail: Exception | None = None,
    ) -> None:
        self.accounts = accounts or []
        self.commodities = commodities or []
        self.offsets = offsets or []
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    def _record(self, name: str, arg: str = "") -> None:
        self.calls.append((name, arg))
        if self.fail is not None:
            raise self.fail

    def list_accounts(self, prefix: str) -> list[str]:
        self._record("list_accounts", prefix)
        return [a for a in self.accounts if a.startswith(prefix)]

    def list_commodities(self, prefix: str) -> list[str]:
        self._record("list_commodities", prefix)
        return [c for c in self.commodities if c.startswith(prefix)]

    def date_offsets(self) -> list[DateOffset]:
        self._record("date_offsets")
        return list(self.offsets)
