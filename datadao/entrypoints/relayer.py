"""Relayer entrypoint.

Long-running process that sweeps approved submissions into the relay queue
and works the queue against the secondary ledger.
"""

import argparse
import asyncio
import os
import signal
import sys

import bittensor as bt
from dotenv import load_dotenv

# (cli flag, settings section, field, type); env DATADAO_<SECTION>__<FIELD> wins over the flag.
_CLI_OVERRIDES = (
    ("database.url", "database", "url", str),
    ("ledger.secondary_url", "ledger", "secondary_url", str),
    ("relay.concurrency", "relay", "concurrency", int),
    ("relay.sweep_interval", "relay", "sweep_interval_seconds", float),
    ("relay.sweep_batch_size", "relay", "sweep_batch_size", int),
    ("relay.max_attempts", "relay", "max_attempts", int),
    ("relay.call_timeout", "relay", "call_timeout_seconds", float),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DataDAO reputation relayer")
    bt.logging.add_args(parser)
    for flag, _, _, kind in _CLI_OVERRIDES:
        parser.add_argument(f"--{flag}", type=kind, required=False)
    parser.add_argument(
        "--create_schema",
        action="store_true",
        help="Create missing tables on startup (local/dev).",
    )
    return parser


def apply_cli_overrides(settings, args: argparse.Namespace) -> None:
    """Copy CLI values into settings where no env var is set."""
    for flag, section, field, _ in _CLI_OVERRIDES:
        value = getattr(args, flag, None)
        if value is None:
            continue
        env_name = f"DATADAO_{section.upper()}__{field.upper()}"
        if env_name in os.environ:
            continue
        setattr(getattr(settings, section), field, value)


def main() -> None:
    # Load .env if not in test mode
    if os.environ.get("DATADAO_TEST_MODE") != "true":
        load_dotenv()

    bt.logging.info({"relayer": "starting"})

    parser = build_parser()
    args = parser.parse_args()

    from datadao.config.core import load_settings

    settings = load_settings()
    apply_cli_overrides(settings, args)

    if not settings.ledger.secondary_url:
        bt.logging.error("DATADAO_LEDGER__SECONDARY_URL is required")
        sys.exit(1)

    relay_cfg = settings.relay
    bt.logging.info({
        "relayer_config": {
            "database": settings.database.url.split("@")[-1],
            "secondary_url": settings.ledger.secondary_url,
            "concurrency": relay_cfg.concurrency,
            "sweep_interval": relay_cfg.sweep_interval_seconds,
            "max_attempts": relay_cfg.max_attempts,
        }
    })

    from datadao.database import DatabaseManager
    from datadao.ledger import HTTPSecondaryLedger
    from datadao.relay import (
        DiscoverySweep,
        RelayEnqueuer,
        RelayQueue,
        RelayRuntime,
        RelayWorkerPool,
    )
    from datadao.store import SQLSubmissionStore

    database = DatabaseManager(
        settings.database.url,
        echo=settings.database.echo,
        pool_pre_ping=settings.database.pool_pre_ping,
    )
    store = SQLSubmissionStore(database)
    secondary = HTTPSecondaryLedger(
        settings.ledger.secondary_url,
        api_key=settings.ledger.api_key,
        timeout=settings.ledger.timeout_seconds,
        max_retries=settings.ledger.max_retries,
    )
    queue = RelayQueue(
        database,
        max_attempts=relay_cfg.max_attempts,
        backoff_base_seconds=relay_cfg.backoff_base_seconds,
    )
    enqueuer = RelayEnqueuer(store, queue, claim_ttl_seconds=relay_cfg.claim_ttl_seconds)
    sweep = DiscoverySweep(
        store,
        enqueuer,
        interval_seconds=relay_cfg.sweep_interval_seconds,
        batch_size=relay_cfg.sweep_batch_size,
    )
    pool = RelayWorkerPool(
        store,
        queue,
        secondary,
        concurrency=relay_cfg.concurrency,
        reputation_delta=relay_cfg.reputation_delta,
        call_timeout=relay_cfg.call_timeout_seconds,
        poll_interval=relay_cfg.poll_interval_seconds,
    )
    runtime = RelayRuntime(
        sweep,
        pool,
        queue,
        stale_job_seconds=relay_cfg.stale_job_seconds,
        keep_completed=relay_cfg.keep_completed_jobs,
        keep_failed=relay_cfg.keep_failed_jobs,
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    stop_requested = asyncio.Event()

    async def _serve() -> None:
        if args.create_schema:
            await database.create_all()
        await runtime.start()
        await stop_requested.wait()
        clean = await runtime.shutdown(relay_cfg.shutdown_timeout_seconds)
        bt.logging.info({"relayer": {"shutdown_clean": clean}})

    # Graceful shutdown
    def _signal_handler(sig, frame):
        bt.logging.info({"relayer": "shutdown_signal_received"})
        loop.call_soon_threadsafe(stop_requested.set)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        loop.run_until_complete(_serve())
    except KeyboardInterrupt:
        bt.logging.info({"relayer": "keyboard_interrupt"})
    finally:
        loop.run_until_complete(secondary.close())
        loop.run_until_complete(database.dispose())
        loop.close()
        bt.logging.info({"relayer": "stopped"})


if __name__ == "__main__":
    main()
