"""Integration tests for the command-line entry point."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from patient_ledger import main as cli
from patient_ledger.models import LedgerRecord
from patient_ledger.services.payment_service import PaymentService


@pytest.fixture
def cli_db(session_factory, monkeypatch):
    """Point the CLI at the test database and keep it off the real log file."""
    monkeypatch.setattr(cli, "SessionLocal", session_factory)
    monkeypatch.setattr(cli, "setup_server_logging", lambda log_file, level=None: None)
    return session_factory


class TestParser:
    def test_close_month_arguments(self):
        args = cli.build_parser().parse_args(["close-month", "--month", "1", "--year", "2025", "--timeout", "30"])

        assert args.command == "close-month"
        assert (args.month, args.year, args.timeout) == (1, 2025, 30.0)

    def test_serve_defaults(self):
        args = cli.build_parser().parse_args(["serve"])

        assert args.host == "0.0.0.0"
        assert args.port == 8000

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestCloseMonthCommand:
    def test_success_exits_zero(self, cli_db, db_session, patient):
        PaymentService(db_session).record_payment(patient.id, Decimal("2000"), date(2025, 1, 15), "Cash")

        exit_code = cli.main(["close-month", "--month", "1", "--year", "2025"])

        assert exit_code == 0
        february = db_session.execute(
            select(LedgerRecord).where(LedgerRecord.month == 2, LedgerRecord.year == 2025)
        ).scalar_one()
        assert february.carry_forward_in == Decimal("3000.00")

    def test_invalid_month_exits_one(self, cli_db):
        assert cli.main(["close-month", "--month", "13", "--year", "2025"]) == 1

    def test_serve_runs_uvicorn(self, cli_db, monkeypatch):
        calls = []
        monkeypatch.setattr(cli, "run_server", lambda host, port: calls.append((host, port)))

        assert cli.main(["serve", "--port", "9001"]) == 0
        assert calls == [("0.0.0.0", 9001)]
