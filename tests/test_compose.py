import datetime as dt
from decimal import Decimal

from ledger_compose.compose import (
    commit_transaction,
    compose_transactions,
    handle_change_line,
    handle_header_line,
)
from ledger_compose.errors import CollaboratorError
from ledger_compose.models import Amount
from ledger_compose.oracle import ScanOracle
from ledger_compose.transaction import Transaction
from tests.helpers.fakes import FakeOracle, pipe_session

GROCERIES = (
    "2020-01-10 Groceries\n"
    "\tExpenses:Food\tCZK 120\n"
    "\tExpenses:Food\t€ 5.95\n"
    "\tAssets:Cash\tCZK -120\n"
    "\tAssets:Cash\t€ -5.95\n"
)


class ScriptedSession:
    """Answers ``prompt`` calls from a list of lines, then raises ``EOFError``."""

    def __init__(self, lines: list[str]) -> None:
        self.lines = list(lines)
        self.messages: list[str] = []

    def prompt(self, message, **kwargs):
        self.messages.append(message[0][1])
        if not self.lines:
            raise EOFError
        line = self.lines.pop(0)
        if line is KeyboardInterrupt:
            raise KeyboardInterrupt
        return line


def test_handle_header_line():
    out: list[str] = []
    tx = handle_header_line("2020-01-10 Groceries", echo=out.append)
    assert tx == Transaction(dt.date(2020, 1, 10), "Groceries")
    assert out == []

    assert handle_header_line("Groceries", echo=out.append) is None
    assert out == ["Error: missing or malformed transaction header"]


def test_handle_change_line_applies_valid_command():
    tx = Transaction(dt.date(2020, 1, 10), "Groceries")
    assert handle_change_line(tx, "a Expenses:Food € 5.95", echo=print)
    assert tx.changes == {"Expenses:Food": [Amount("€", Decimal("5.95"))]}


def test_handle_change_line_error_leaves_transaction_untouched():
    tx = Transaction(dt.date(2020, 1, 10), "Groceries")
    tx.add_change("Expenses:Food", Amount("€", Decimal("1")))
    out: list[str] = []

    assert not handle_change_line(tx, "a Expenses:Food 123 4", echo=out.append)
    assert not handle_change_line(tx, "s Expenses:Food", echo=out.append)

    assert tx.changes == {"Expenses:Food": [Amount("€", Decimal("1"))]}
    assert out == [
        "Error: invalid currency: '123'",
        "Error: incomplete command, expecting account",
    ]


def test_commit_writes_entry(tmp_path):
    ledger = tmp_path / "journal.ledger"
    tx = Transaction(dt.date(2020, 1, 10), "Lunch")
    tx.add_change("Expenses:Food", Amount("€", Decimal("8")))
    tx.finalize("Assets:Cash")
    out: list[str] = []

    assert commit_transaction(tx, oracle=ScanOracle(ledger), ledger_path=ledger, echo=out.append)

    assert ledger.read_text(encoding="utf-8") == "\n" + tx.render() + "\n"
    assert out[0] == tx.render().rstrip("\n")
    assert out[-1] == f"Saved to {ledger} at byte 1."


def test_commit_warns_on_unbalanced_but_still_saves(tmp_path):
    ledger = tmp_path / "journal.ledger"
    tx = Transaction(dt.date(2020, 1, 10), "Lunch")
    tx.add_change("Expenses:Food", Amount("€", Decimal("8")))
    out: list[str] = []

    assert commit_transaction(tx, oracle=ScanOracle(ledger), ledger_path=ledger, echo=out.append)

    assert "Warning: transaction does not balance (€ 8)" in out
    assert ledger.exists()


def test_commit_with_failing_oracle_keeps_file(tmp_path):
    ledger = tmp_path / "journal.ledger"
    ledger.write_text(GROCERIES, encoding="utf-8")
    tx = Transaction(dt.date(2020, 1, 11), "Lunch")
    out: list[str] = []

    ok = commit_transaction(
        tx,
        oracle=FakeOracle(fail=CollaboratorError("ledger exited with status 1")),
        ledger_path=ledger,
        echo=out.append,
    )

    assert not ok
    assert ledger.read_text(encoding="utf-8") == GROCERIES
    assert out[-1].startswith("Error: cannot determine where to insert the transaction")


def test_commit_dry_run_does_not_touch_file(tmp_path):
    ledger = tmp_path / "journal.ledger"
    oracle = FakeOracle()
    tx = Transaction(dt.date(2020, 1, 10), "Lunch")

    assert commit_transaction(tx, oracle=oracle, ledger_path=ledger, dry_run=True, echo=lambda s: None)

    assert not ledger.exists()
    assert oracle.calls == []


def test_compose_loop_groceries(tmp_path):
    ledger = tmp_path / "journal.ledger"
    session = ScriptedSession(
        [
            "2020-01-10 Groceries",
            "a Expenses:Food € 5.95",
            "a Expenses:Food CZK 120",
            "f Assets:Cash",
            "",
        ]
    )
    out: list[str] = []

    committed = compose_transactions(
        ScanOracle(ledger), ledger_path=ledger, session=session, echo=out.append
    )

    assert [tx.description for tx in committed] == ["Groceries"]
    assert ledger.read_text(encoding="utf-8") == "\n" + GROCERIES + "\n"
    assert session.messages == ["header> "] + ["change> "] * 4 + ["header> "]


def test_compose_loop_recovers_from_bad_lines(tmp_path):
    ledger = tmp_path / "journal.ledger"
    session = ScriptedSession(
        [
            "not a header",
            "2020-01-10 Groceries",
            "x Expenses:Food",
            "a Expenses:Food € 5.95",
            "f Assets:Cash",
            "",
        ]
    )
    out: list[str] = []

    committed = compose_transactions(
        ScanOracle(ledger), ledger_path=ledger, session=session, echo=out.append
    )

    assert len(committed) == 1
    assert "Error: missing or malformed transaction header" in out
    assert "Error: invalid operation (expected a, s or f): 'x'" in out


def test_compose_loop_discards_pending_on_interrupt(tmp_path):
    ledger = tmp_path / "journal.ledger"
    session = ScriptedSession(["2020-01-10 Groceries", "a Expenses:Food € 5.95", KeyboardInterrupt])
    out: list[str] = []

    committed = compose_transactions(
        ScanOracle(ledger), ledger_path=ledger, session=session, echo=out.append
    )

    assert committed == []
    assert not ledger.exists()
    assert out[-1] == "Discarded uncommitted transaction: 2020-01-10 Groceries"


def test_failed_commit_keeps_transaction_pending(tmp_path):
    ledger = tmp_path / "journal.ledger"
    oracle = FakeOracle(fail=CollaboratorError("ledger exited with status 1"))
    session = ScriptedSession(["2020-01-10 Groceries", "a Expenses:Food € 5", "", "f Assets:Cash"])
    out: list[str] = []

    committed = compose_transactions(oracle, ledger_path=ledger, session=session, echo=out.append)

    assert committed == []
    assert session.messages[-1] == "change> "
    assert out[-1] == "Discarded uncommitted transaction: 2020-01-10 Groceries"


def test_compose_loop_with_pipe_input(tmp_path):
    ledger = tmp_path / "journal.ledger"
    with pipe_session() as (pipe, sess):
        pipe.send_text("2020-01-10 Lunch\ra Expenses:Food € 8\rf Assets:Cash\r\r\x04")
        committed = compose_transactions(
            ScanOracle(ledger), ledger_path=ledger, session=sess, echo=lambda s: None
        )

    assert len(committed) == 1
    assert ledger.read_text(encoding="utf-8") == (
        "\n2020-01-10 Lunch\n\tExpenses:Food\t€ 8\n\tAssets:Cash\t€ -8\n\n"
    )
