#!/usr/bin/env python3
"""
Networkquality CLI -- throughput, latency and responsiveness from the terminal.

Usage::

    python networkquality.py                 # standard 10 s test
    python networkquality.py -q              # quick 5 s test
    python networkquality.py -d 30           # 30 s test
    python networkquality.py -c 8 -v         # 8 connections, verbose
    python networkquality.py --json          # JSON to stdout
    python networkquality.py --simple        # plain text summary
"""
from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
import time
from typing import List, Optional

from netquality.config import TestConfiguration, build_configuration
from netquality.constants import (
    MAX_CONNECTIONS,
    MAX_DURATION,
    MIN_CONNECTIONS,
    MIN_DURATION,
    QUICK_DURATION,
    VERSION,
)
from netquality.errors import QualityTestError, StageError, TestCancelled
from netquality.quality import QualityResult, QualityTester
from ui.dashboard import (
    ProgressDisplay,
    configure_logging,
    console,
    print_configuration,
    print_final_results,
    print_header,
)
from ui.output import create_result_json, format_text_result


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(duration: float, connections: int) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_DURATION <= duration <= MAX_DURATION:
        raise ValueError(f"Test duration must be between {MIN_DURATION:g} and {MAX_DURATION:g} s")
    if not MIN_CONNECTIONS <= connections <= MAX_CONNECTIONS:
        raise ValueError(f"Connections must be between {MIN_CONNECTIONS} and {MAX_CONNECTIONS}")


def _build_config(args: argparse.Namespace) -> TestConfiguration:
    duration = QUICK_DURATION if args.quick else args.duration
    return build_configuration(
        {
            "duration": duration,
            "connections": args.connections,
            "download_endpoints": args.download_url,
            "upload_endpoints": args.upload_url,
        }
    )


def _is_cancellation(exc: QualityTestError) -> bool:
    return isinstance(exc, TestCancelled) or (
        isinstance(exc, StageError) and isinstance(exc.cause, TestCancelled)
    )


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def run_networkquality(
    config: TestConfiguration,
    *,
    json_output: bool = False,
    simple: bool = False,
    verbose: bool = False,
) -> QualityResult:
    """Run one quality test and render the result.  Engine errors propagate."""
    show_ui = not json_output and not simple

    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel.set)
        except (NotImplementedError, RuntimeError):
            pass  # e.g. Windows; KeyboardInterrupt still ends the run

    if show_ui:
        print_header()
        if verbose:
            print_configuration(config)

    tester = QualityTester(config)
    progress: Optional[ProgressDisplay] = None
    if show_ui:
        progress = ProgressDisplay()
        tester.on_stage = progress.stage
        progress.start()

    start_time = time.perf_counter()
    try:
        result = await tester.run(cancel)
    except BaseException:
        if progress:
            progress.stop(success=False)
        raise
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass
    elapsed = time.perf_counter() - start_time

    if progress:
        progress.stop(success=True)

    if json_output:
        print(json.dumps(create_result_json(result, config, elapsed), indent=2))
    elif simple:
        print(format_text_result(result))
    else:
        print_final_results(result)
        if verbose:
            console.print(f"[magenta]Test completed in {elapsed:.2f} seconds[/magenta]")

    return result


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="networkquality",
        description="Networkquality -- test network quality and performance",
    )
    # Test parameters
    parser.add_argument("-d", "--duration", type=float, default=None, metavar="SECS", help="Test duration in seconds (default: 10)")
    parser.add_argument("-c", "--connections", type=int, default=None, metavar="N", help="Number of parallel connections (default: 4)")
    parser.add_argument("-q", "--quick", action="store_true", help=f"Quick test ({QUICK_DURATION:g} seconds)")
    parser.add_argument("--download-url", action="append", metavar="URL", help="Download endpoint; repeat to add the latency probe URL")
    parser.add_argument("--upload-url", action="append", metavar="URL", help="Upload endpoint; repeat for round-robin")

    # Output modes
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")
    parser.add_argument("--version", action="version", version=f"networkquality version {VERSION}")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = _parser().parse_args(argv)
    configure_logging(args.verbose)

    # Validate
    try:
        config = _build_config(args)
        _validate(duration=config.test_duration, connections=config.connection_count)
        config.validate()
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    try:
        asyncio.run(
            run_networkquality(
                config,
                json_output=args.json,
                simple=args.simple,
                verbose=args.verbose,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except QualityTestError as exc:
        if _is_cancellation(exc):
            console.print("\n[yellow]Test cancelled by user[/yellow]")
        else:
            console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
