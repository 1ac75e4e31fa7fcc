"""Throne CLI entry point."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv(Path.cwd() / ".env")

from throne import __version__
from throne.config import get_settings
from throne.database import close_db, create_tables, get_db_session
from throne.exceptions import ThroneError
from throne.observability import configure_logging
from throne.schemas import ConfirmedPayment
from throne.services import bidder_service, quote_service, settlement_service

logger = logging.getLogger(__name__)


def _run(coro):
    """Run a coroutine and dispose the engine on the same loop."""

    async def runner():
        try:
            return await coro
        finally:
            await close_db()

    return asyncio.run(runner())


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create database tables."""
    try:
        _run(create_tables())
        print("\n✓ Database tables created\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        print(f"\n❌ Database initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Throne Configuration ===\n")
        print(f"Environment: {settings.environment}")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Auction:")
        print(f"  Minimum Overbid: ${settings.auction.epsilon}")
        print(f"  Minimum Payment: ${settings.auction.min_payment}")
        print(f"  Currency: {settings.auction.currency}\n")

        print("Settlement:")
        print(f"  Max Attempts: {settings.settlement.max_attempts}")
        print(f"  Task Queue: {settings.settlement.use_task_queue}\n")

        print("Secrets:")
        print(f"  Payment Secret Key: {'✓ Set' if settings.payments.secret_key else '✗ Not set'}")
        print(f"  Webhook Secret: {'✓ Set' if settings.payments.webhook_secret else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1


def cmd_throne(args: argparse.Namespace) -> int:
    """Display the current throne holder."""

    async def show():
        async with get_db_session() as db:
            return await bidder_service.get_throne(db)

    throne = _run(show())
    print(f"\n👑 {throne.holder_name} holds the throne at ${throne.amount}")
    if throne.crowned_at:
        print(f"   since {throne.crowned_at.isoformat()}")
    print()
    return 0


def cmd_quote(args: argparse.Namespace) -> int:
    """Display the minimum payment for a bidder."""

    async def quote():
        async with get_db_session() as db:
            return await quote_service.get_quote(db, args.bidder_id)

    try:
        result = _run(quote())
    except ThroneError as e:
        print(f"\n❌ {e}\n")
        return 1

    print(f"\nBidder {result.bidder_id}")
    print(f"  Invested: ${result.total_invested}")
    print(f"  Throne: ${result.throne_amount}")
    print(f"  Required payment: ${result.required_payment}\n")
    return 0


def cmd_settle(args: argparse.Namespace) -> int:
    """Settle a confirmed payment from a JSON file (manual redelivery)."""
    try:
        data = json.loads(Path(args.file).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"\n❌ Cannot read {args.file}: {e}\n")
        return 1

    async def settle():
        if isinstance(data, dict) and "data" in data:
            payment = ConfirmedPayment.from_processor_event(data)
        else:
            payment = ConfirmedPayment.parse(data)
        async with get_db_session() as db:
            return await settlement_service.settle_payment(db, payment)

    try:
        outcome = _run(settle())
    except ThroneError as e:
        logger.error(f"Settlement failed: {e}")
        print(f"\n❌ {e}\n")
        return 1

    print(json.dumps(outcome.model_dump(mode="json"), indent=2))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "throne.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="throne",
        description="King of the hill bidding ledger",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    parser_init = subparsers.add_parser("init-db", help="Create database tables")
    parser_init.set_defaults(func=cmd_init_db)

    parser_config = subparsers.add_parser("config", help="Display merged configuration")
    parser_config.set_defaults(func=cmd_config)

    parser_throne = subparsers.add_parser("throne", help="Display the current holder")
    parser_throne.set_defaults(func=cmd_throne)

    parser_quote = subparsers.add_parser("quote", help="Minimum payment for a bidder")
    parser_quote.add_argument("--bidder-id", required=True, help="Bidder ID")
    parser_quote.set_defaults(func=cmd_quote)

    parser_settle = subparsers.add_parser(
        "settle",
        help="Settle a confirmed payment (event or payload JSON)",
    )
    parser_settle.add_argument("--file", required=True, help="Path to JSON document")
    parser_settle.set_defaults(func=cmd_settle)

    parser_serve = subparsers.add_parser("serve", help="Run the API server")
    parser_serve.add_argument("--host", default=None)
    parser_serve.add_argument("--port", type=int, default=None)
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    configure_logging(get_settings().log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
