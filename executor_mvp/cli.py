"""Command-line interface for the live executor."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from codegen_mvp.urls import default_base_url
from step_model.models import StepConfigurationError
from testcase_store.store import JsonRecordStore, get_record_store

from .executor import Executor, ExecutorSettings
from .loader import load_steps_file, load_stored_case
from .models import RunStatus
from .window import BrowserSettings, PlaywrightWindowSource


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a step sequence live in a spawned browser window")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--steps", help="JSON file holding a step array or a test case object")
    source.add_argument("--case", help="Id of a stored test case")
    parser.add_argument(
        "--store",
        help="Record store directory (default: env TESTGEN_STORE_DIR or ./data)",
    )
    parser.add_argument(
        "--base-url",
        help="Base URL for relative navigation (default: the case's base URL, then env TESTGEN_BASE_URL)",
    )
    parser.add_argument(
        "--opener-url",
        help="Page the test window is spawned from; pages of its origin stay inspectable (default: base URL)",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run the browser headless (default is headed so the test window can be watched)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=10_000,
        help="Default Playwright timeout in milliseconds",
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for per-run log files",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not append the execution record to the store",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print the full run result as JSON upon completion",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    store = JsonRecordStore(Path(args.store)) if args.store else get_record_store()
    try:
        target = load_stored_case(store, args.case) if args.case else load_steps_file(args.steps)
    except (OSError, ValueError) as exc:
        logging.error("Failed to load steps: %s", exc)
        return 1

    base_url = args.base_url or target.base_url or default_base_url()
    settings = ExecutorSettings(base_url=base_url, log_dir=Path(args.log_dir) if args.log_dir else None)
    executor = Executor(settings=settings, record_store=None if args.no_save else store)
    window_source = PlaywrightWindowSource(
        BrowserSettings(
            headless=args.headless,
            opener_url=args.opener_url or base_url,
            default_timeout_ms=args.timeout,
        )
    )

    try:
        result = executor.run(target.test_case_id, target.sequence, window_source)
    except StepConfigurationError as exc:
        logging.error("Invalid step sequence: %s", exc)
        return 1
    except KeyboardInterrupt:
        executor.stop()
        return 130

    print("")
    print("=" * 80)
    print("Run finished")
    print("=" * 80)
    print(f"Test case: {target.name or target.test_case_id}")
    print(f"Status: {result.status.value}")
    for position, step_result in enumerate(result.results, start=1):
        line = f"  {position:>2}. [{step_result.status.value:<7}] {step_result.step}"
        if step_result.message:
            line += f" - {step_result.message}"
        print(line)
    if result.notice:
        print(result.notice)
    if result.error:
        print(f"Error: {result.error}")
    if result.record is not None:
        print(f"Record saved: {'yes' if result.persisted else 'no'}")
    print("")

    if args.summary:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))

    return 0 if result.status == RunStatus.PASSED else 1


if __name__ == "__main__":
    sys.exit(main())
