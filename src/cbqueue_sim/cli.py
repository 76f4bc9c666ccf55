#!/usr/bin/env python3
"""
cbqueue-sim: Interactive simulator for testing cbqueue.

Usage:
    cbqueue-sim --count 100 --latency 50
    cbqueue-sim --count 50 --error-rate 0.1 --retries 2
    cbqueue-sim --count 100 --concurrent 3 --no-tui
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import signal
import sys
from datetime import datetime

from cbqueue_sim.display import SimulationState, SimulatorDisplay, print_final_summary, print_simple_stats
from cbqueue_sim.runner import SimConfig, SimulationRunner


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the simulator."""
    cbqueue_logger = logging.getLogger("cbqueue")
    if verbose:
        cbqueue_logger.setLevel(logging.DEBUG)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        cbqueue_logger.addHandler(handler)
    else:
        # Silence library logs - simulator handles its own display
        cbqueue_logger.setLevel(logging.CRITICAL)


EVENT_SYMBOLS = {
    "completed": "✓",
    "failed": "✗",
    "started": "▶",
    "queued": "+",
    "retrying": "↻",
}


async def run_with_display(config: SimConfig, use_tui: bool = True, verbose: bool = False) -> None:
    """
    Run simulation with visual display.

    Args:
        config: Simulation configuration
        use_tui: Use Rich TUI display (default True)
        verbose: Print event log instead of status updates (implies no-tui)
    """
    state = SimulationState()

    if verbose:
        original_add_event = state.add_event

        def logging_add_event(event_type: str, work_id: str, details: str = "") -> None:
            ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
            symbol = EVENT_SYMBOLS.get(event_type, "·")
            print(f"{ts} {symbol} {event_type:<12} {work_id:<12} {details}")
            original_add_event(event_type, work_id, details)

        state.add_event = logging_add_event  # type: ignore

    runner = SimulationRunner(config, state)

    if verbose:
        print("\ncbqueue-sim [verbose]")
        print(f"   Count: {config.count}, Concurrent: {config.max_concurrent}, Retries: {config.retries}")
        print(f"   Latency: {config.latency_ms}ms ±{int(config.latency_jitter*100)}%, Error: {config.error_rate * 100:.0f}%")
        print()
        print(f"{'TIME':<12} {'':1} {'EVENT':<12} {'WORK_ID':<12} DETAILS")
        print("-" * 64)

        try:
            await runner.run()
        except (KeyboardInterrupt, asyncio.CancelledError):
            runner.stop()
        finally:
            await runner.cleanup()

        print("-" * 64)
        print_final_summary(state)
        return

    if use_tui:
        display = SimulatorDisplay(state)

        async def update_loop():
            while True:
                display.refresh()
                await asyncio.sleep(0.1)
    else:
        print("\ncbqueue-sim")
        print(f"   Count: {config.count}, Latency: {config.latency_ms}ms, Error: {config.error_rate * 100:.0f}%")
        print()

        async def update_loop():
            while True:
                print_simple_stats(state)
                await asyncio.sleep(0.5)

        display = None

    async def run_and_update():
        update_task = asyncio.create_task(update_loop())
        try:
            await runner.run()
        except (KeyboardInterrupt, asyncio.CancelledError):
            runner.stop()
        finally:
            update_task.cancel()
            try:
                await update_task
            except asyncio.CancelledError:
                pass
            await runner.cleanup()

    if display is not None:
        with display:
            await run_and_update()
    else:
        await run_and_update()
        print()  # Newline after progress

    print_final_summary(state)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="cbqueue simulator - watch a callback queue under load",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cbqueue-sim --count 100 --latency 50
  cbqueue-sim --count 1000 --latency 10 --concurrent 10
  cbqueue-sim --count 50 --error-rate 0.2 --retries 3
  cbqueue-sim --count 200 --submit-rate 20 --duration 5
        """,
    )

    parser.add_argument(
        "--count", "-n",
        type=int,
        default=100,
        help="Number of callbacks to enqueue (default: 100)",
    )
    parser.add_argument(
        "--latency", "-l",
        type=int,
        default=100,
        help="Base callback latency in ms (default: 100)",
    )
    parser.add_argument(
        "--jitter", "-j",
        type=float,
        default=0.2,
        help="Latency variance as fraction, e.g. 0.2 = ±20%% (default: 0.2)",
    )
    parser.add_argument(
        "--outliers",
        type=float,
        default=0.0,
        help="Chance of outlier (slow) callback, 0.0-1.0 (default: 0.0)",
    )
    parser.add_argument(
        "--outlier-mult",
        type=float,
        default=5.0,
        help="Outlier latency multiplier (default: 5.0)",
    )
    parser.add_argument(
        "--error-rate", "-e",
        type=float,
        default=0.0,
        help="Fraction of attempts that fail, 0.0-1.0 (default: 0.0)",
    )
    parser.add_argument(
        "--retries", "-R",
        type=int,
        default=0,
        help="Retries per callback (default: 0)",
    )
    parser.add_argument(
        "--duration", "-d",
        type=float,
        default=None,
        help="Maximum duration in seconds (default: run until complete)",
    )
    parser.add_argument(
        "--concurrent", "-c",
        type=int,
        default=5,
        help="Max concurrent callbacks (default: 5)",
    )
    parser.add_argument(
        "--submit-rate", "-s",
        type=float,
        default=None,
        help="Submit rate (callbacks/second), None = batch (default: batch)",
    )
    parser.add_argument(
        "--no-tui",
        action="store_true",
        help="Disable TUI, use simple text output",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print event log instead of status updates (no-tui)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible behavior (default: random)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.concurrent < 1:
        parser.error("--concurrent must be at least 1")
    if args.retries < 0:
        parser.error("--retries must not be negative")

    configure_logging(verbose=args.verbose)

    if args.seed is not None:
        random.seed(args.seed)
        if args.verbose:
            print(f"Random seed: {args.seed}")

    config = SimConfig(
        count=args.count,
        latency_ms=args.latency,
        latency_jitter=args.jitter,
        outlier_chance=args.outliers,
        outlier_multiplier=args.outlier_mult,
        error_rate=args.error_rate,
        retries=args.retries,
        duration=args.duration,
        max_concurrent=args.concurrent,
        submit_rate=args.submit_rate,
    )

    async def run_main():
        """Wrapper to handle signals properly."""
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        main_task = asyncio.create_task(
            run_with_display(config, use_tui=not args.no_tui, verbose=args.verbose)
        )
        stop_task = asyncio.create_task(stop_event.wait())

        done, pending = await asyncio.wait(
            [main_task, stop_task],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if stop_task in done:
            print("\nInterrupted.")
            sys.exit(130)

    try:
        asyncio.run(run_main())
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(130)


if __name__ == "__main__":
    main()
