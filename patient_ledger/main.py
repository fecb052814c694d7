"""Main application entry point."""

import argparse
import logging
import sys

import uvicorn
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from patient_ledger.config import settings  # noqa: E402
from patient_ledger.services import SessionLocal  # noqa: E402
from patient_ledger.services.errors import LedgerError  # noqa: E402
from patient_ledger.services.logging import setup_server_logging  # noqa: E402
from patient_ledger.services.month_close_service import MonthCloseService  # noqa: E402

logger = logging.getLogger(__name__)


def run_server(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Run the ledger API under uvicorn."""
    logger.info("Starting Uvicorn server on %s:%d...", host, port)
    config = uvicorn.Config(
        app="patient_ledger.api.app:app",
        host=host,
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    server.run()


def run_close_month(month: int, year: int, timeout: float | None = None) -> int:
    """Close one ledger period; meant for cron.

    Returns:
        Process exit code: 0 on success, 1 on failure
    """
    db = SessionLocal()
    try:
        result = MonthCloseService(db).close_month(
            month,
            year,
            timeout=timeout if timeout is not None else settings.close_month_timeout_seconds,
        )
    except LedgerError as e:
        logger.error("Close of %02d/%d failed (%s): %s", month, year, e.code, e.message)
        return 1
    finally:
        db.close()

    logger.info(
        "Close of %02d/%d done: %d records processed, %d carry-forwards",
        result.month,
        result.year,
        result.records_processed,
        result.carry_forward_propagations,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Patient ledger")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the ledger HTTP API")
    serve.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    serve.add_argument("--port", type=int, default=8000, help="Port to bind to")

    close = subparsers.add_parser("close-month", help="Close a ledger period")
    close.add_argument("--month", type=int, required=True, help="Period month (1-12)")
    close.add_argument("--year", type=int, required=True, help="Period year")
    close.add_argument("--timeout", type=float, default=None, help="Deadline in seconds")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Configure logging (with file logging)
    setup_server_logging(settings.log_file, level=settings.log_level)

    if args.command == "serve":
        run_server(host=args.host, port=args.port)
        return 0
    return run_close_month(args.month, args.year, timeout=args.timeout)


if __name__ == "__main__":
    sys.exit(main())
