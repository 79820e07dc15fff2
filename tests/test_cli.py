import pytest
from typer.testing import CliRunner

from cli import app

runner = CliRunner()


@pytest.fixture
def write_csv(tmp_path):
    def write(*lines):
        path = tmp_path / "transactions.csv"
        path.write_text("\n".join(lines) + "\n")
        return path
    return write


class TestRun:
    """Test the ledger command end to end."""

    def test_dispute_resolve_scenario(self, write_csv):
        path = write_csv(
            "type, client, tx, amount",
            "deposit, 2, 2, 3.0",
            "deposit, 1, 1, 5.0",
            "dispute, 1, 1,",
            "withdrawal, 1, 3, 2.0",
            "resolve, 1, 1,",
        )

        result = runner.invoke(app, [str(path)])

        assert result.exit_code == 0
        assert result.stdout == (
            "client,available,held,total,locked\n"
            "1,5.0,0.0,5.0,false\n"
            "2,3.0,0,3.0,false\n"
        )

    def test_chargeback_scenario(self, write_csv):
        path = write_csv(
            "type,client,tx,amount",
            "deposit,1,1,10.0",
            "dispute,1,1,",
            "chargeback,1,1,",
            "deposit,1,2,50.0",
        )

        result = runner.invoke(app, [str(path)])

        assert result.exit_code == 0
        assert result.stdout.splitlines()[1] == "1,0.0,0.0,0.0,true"

    def test_header_only_input(self, write_csv):
        result = runner.invoke(app, [str(write_csv("type,client,tx,amount"))])

        assert result.exit_code == 0
        assert result.stdout == "client,available,held,total,locked\n"

    def test_enforce_dispute_owner_flag(self, write_csv):
        path = write_csv(
            "type,client,tx,amount",
            "deposit,1,1,10",
            "dispute,2,1,",
        )

        permissive = runner.invoke(app, [str(path)])
        enforced = runner.invoke(app, [str(path), "--enforce-dispute-owner"])

        assert permissive.stdout.splitlines()[2] == "2,-10,10,0,false"
        assert enforced.stdout.splitlines()[1:] == ["1,10,0,10,false", "2,0,0,0,false"]

    def test_byte_order_mark_input(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_text("\ufefftype,client,tx,amount\ndeposit,1,1,1.0\n", encoding="utf-8")

        result = runner.invoke(app, [str(path)])

        assert result.exit_code == 0
        assert result.stdout.splitlines()[1] == "1,1.0,0,1.0,false"

    def test_server_environment_is_ignored(self, write_csv, monkeypatch):
        monkeypatch.setenv("PORT", "tcp://10.0.0.1:8000")
        monkeypatch.setenv("DEBUG", "release")
        monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "lots")
        path = write_csv("type,client,tx,amount", "deposit,1,1,2.5")

        result = runner.invoke(app, [str(path)])

        assert result.exit_code == 0
        assert result.stdout.splitlines()[1] == "1,2.5,0,2.5,false"


class TestFailures:
    """Fatal errors exit non-zero."""

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, [str(tmp_path / "missing.csv")])

        assert result.exit_code == 1
        assert "cannot open" in result.output

    def test_unparseable_client(self, write_csv):
        path = write_csv(
            "type,client,tx,amount",
            "deposit,one,1,1.0",
        )

        result = runner.invoke(app, [str(path)])

        assert result.exit_code == 1
        assert "invalid client" in result.output

    def test_unknown_type(self, write_csv):
        result = runner.invoke(app, [str(write_csv("type,client,tx,amount", "refund,1,1,1.0"))])

        assert result.exit_code == 1

    def test_invalid_setting_exits_cleanly(self, write_csv, monkeypatch):
        monkeypatch.setenv("ENFORCE_DISPUTE_OWNER", "maybe")
        path = write_csv("type,client,tx,amount", "deposit,1,1,2.5")

        result = runner.invoke(app, [str(path)])

        assert result.exit_code == 1
        assert "error: invalid configuration" in result.output

    def test_missing_argument(self):
        result = runner.invoke(app, [])

        assert result.exit_code == 2
