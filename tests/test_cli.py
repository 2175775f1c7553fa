from typer.testing import CliRunner

from ledger_compose.cli import app

runner = CliRunner()

EXISTING = "2020-01-10 Groceries\n\tExpenses:Food\t€ 5\n\tAssets:Cash\t€ -5\n"
EARLIER = "2020-01-05 Coffee\n\tExpenses:Coffee\t€ 3\n\tAssets:Cash\t€ -3\n"


def test_insert_from_stdin_places_entry_by_date(tmp_path):
    ledger = tmp_path / "journal.ledger"
    ledger.write_text(EXISTING, encoding="utf-8")

    result = runner.invoke(app, ["insert", "--file", str(ledger), "--scan"], input=EARLIER)

    assert result.exit_code == 0, result.output
    assert "at byte 0" in result.output
    assert ledger.read_text(encoding="utf-8") == EARLIER + "\n" + EXISTING


def test_insert_from_entry_file_uses_env_ledger(tmp_path, monkeypatch):
    ledger = tmp_path / "journal.ledger"
    ledger.write_text(EARLIER, encoding="utf-8")
    entry = tmp_path / "entry.txt"
    entry.write_text("\n" + EXISTING + "\n\n", encoding="utf-8")
    monkeypatch.setenv("LEDGER_FILE", str(ledger))
    monkeypatch.setenv("LEDGER_COMPOSE_SCAN", "1")

    result = runner.invoke(app, ["insert", "--entry", str(entry)])

    assert result.exit_code == 0, result.output
    assert ledger.read_text(encoding="utf-8") == EARLIER + "\n" + EXISTING + "\n"


def test_insert_rejects_bad_header(tmp_path):
    ledger = tmp_path / "journal.ledger"
    ledger.write_text(EXISTING, encoding="utf-8")

    result = runner.invoke(app, ["insert", "-f", str(ledger), "--scan"], input="Coffee\n\tA\t€ 1\n")

    assert result.exit_code == 1
    assert "Error: missing or malformed transaction header" in result.output
    assert ledger.read_text(encoding="utf-8") == EXISTING


def test_insert_reports_missing_ledger_binary(tmp_path):
    ledger = tmp_path / "journal.ledger"
    ledger.write_text(EXISTING, encoding="utf-8")

    result = runner.invoke(
        app,
        ["insert", "-f", str(ledger), "--ledger-bin", str(tmp_path / "no-such-ledger")],
        input=EARLIER,
    )

    assert result.exit_code == 1
    assert "Error: cannot run" in result.output
    assert ledger.read_text(encoding="utf-8") == EXISTING


def test_insert_without_ledger_file_fails():
    result = runner.invoke(app, ["insert"], input=EARLIER)

    assert result.exit_code == 2
    assert "no ledger file" in result.output


def test_insert_empty_entry_fails(tmp_path):
    result = runner.invoke(app, ["insert", "-f", str(tmp_path / "j.ledger")], input="\n\n")

    assert result.exit_code == 1
    assert "entry is empty" in result.output


def test_compose_without_ledger_file_fails():
    result = runner.invoke(app, ["compose"])

    assert result.exit_code == 2
    assert "no ledger file" in result.output
