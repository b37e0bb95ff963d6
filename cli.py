#!/usr/bin/env python3
"""Simple CLI for running burn computations and sweeps locally"""

import argparse
import asyncio

from burnwatch.config import settings
from burnwatch.core.recovery.errors import AggregationFailedError, UnknownTokenError
from burnwatch.logging_config import setup_logging
from burnwatch.providers.rpc import close_rpc_providers
from burnwatch.services.burns.aggregator import BurnAggregator
from burnwatch.services.burns.models import BURN_WINDOWS, tier_for_interval
from burnwatch.workers.refresh_worker import run_refresh_sweep


def print_summary(summary):
    """Pretty print a burn summary"""
    print(f"\n🔥 Burns for {summary.token_name.upper()} ({summary.chain})")
    print("=" * 50)
    print(f"Contract: {summary.token_address}")
    print(f"Last block: {summary.last_processed_block}")
    print(f"Computed in {summary.computation_time_ms}ms")
    print("-" * 50)
    for window in BURN_WINDOWS:
        print(f"{window.label:>6}: {getattr(summary, window.field_name):,}")


async def cli_burns(token: str):
    """Compute burns for one token without touching the cache"""
    print(f"🔍 Scanning burn logs for {token}...")
    try:
        summary, _ = await BurnAggregator().aggregate(token)
        print_summary(summary)
    except UnknownTokenError as e:
        print(f"❌ {e.message}")
    except AggregationFailedError as e:
        print(f"❌ Error: {e.cause}")
    finally:
        await close_rpc_providers()


async def cli_sweep(active_only: bool, interval: str):
    """Run one sweep and print the report"""
    kind = "active" if active_only else "full"
    print(f"🧹 Running {kind} sweep...")
    try:
        report = await run_refresh_sweep(active_only=active_only, tier=tier_for_interval(interval))
    finally:
        await close_rpc_providers()

    print(f"\nProcessed {report.processed}/{report.total} in {report.duration_seconds:.1f}s")
    print(f"✅ {report.successful}  ❌ {report.failed}  ⏭️  {report.skipped}")
    for message in report.errors:
        print(f" - {message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Burnwatch CLI")
    subparsers = parser.add_subparsers(dest="command")

    burns_parser = subparsers.add_parser("burns", help="Compute burn totals for a token")
    burns_parser.add_argument("token", help="Token symbol or contract address")

    sweep_parser = subparsers.add_parser("sweep", help="Run one refresh sweep")
    sweep_parser.add_argument("--active", action="store_true", help="Only refresh recently viewed tokens")
    sweep_parser.add_argument("--interval", default="short", help="Refresh tier or window label (default: short)")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    command = args.command.lower()

    if command == "serve":
        import uvicorn
        uvicorn.run(
            "burnwatch.main:app",
            host=args.host,
            port=args.port,
            log_level=settings.log_level.lower()
        )
        return

    setup_logging()

    if command == "burns":
        asyncio.run(cli_burns(args.token))

    elif command == "sweep":
        try:
            tier_for_interval(args.interval)
        except ValueError as e:
            parser.error(str(e))
        asyncio.run(cli_sweep(args.active, args.interval))

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    main()
