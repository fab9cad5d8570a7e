"""Command-line interface for the code emitter."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from dotenv import load_dotenv

from step_model.models import StepConfigurationError
from step_model.sequence import Structured
from step_model.validation import validate_sequence

from .emitter import emit
from .models import FRAMEWORKS, LANGUAGES, CaseDocument, Target
from .templates import build_test_file
from .urls import default_base_url


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Emit framework test code from a step sequence")
    parser.add_argument(
        "--input",
        required=True,
        help="JSON file holding a step array or a test case object",
    )
    parser.add_argument("--framework", choices=FRAMEWORKS, default="playwright")
    parser.add_argument("--language", choices=LANGUAGES, default="typescript")
    parser.add_argument(
        "--base-url",
        help="Base URL for relative navigation (default: env TESTGEN_BASE_URL)",
    )
    parser.add_argument(
        "--file",
        action="store_true",
        help="Render a complete test file instead of the bare step lines",
    )
    parser.add_argument("--output", help="Directory to write the test file into (implies --file)")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on malformed steps instead of emitting comment placeholders",
    )
    return parser


def load_document(raw: Any, base_url: str | None) -> CaseDocument:
    """Build a document from a decoded JSON payload."""
    if isinstance(raw, list):
        return CaseDocument.from_dict({"steps": raw}, base_url)

    if not isinstance(raw, dict):
        raise ValueError("Input must be a JSON array of steps or a test case object")
    return CaseDocument.from_dict(raw, base_url)


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    parser = build_parser()
    args = parser.parse_args(argv)

    target = Target(args.framework, args.language)
    try:
        raw = json.loads(Path(args.input).read_text(encoding="utf-8"))
        document = load_document(raw, args.base_url)
    except (OSError, ValueError) as exc:
        logging.error("Failed to load %s: %s", args.input, exc)
        return 1

    if document.base_url is None:
        document.base_url = default_base_url()

    if args.strict and isinstance(document.sequence, Structured):
        try:
            validate_sequence(document.sequence.steps)
        except StepConfigurationError as exc:
            logging.error("Invalid step sequence: %s", exc)
            return 1

    if not (args.file or args.output):
        if not isinstance(document.sequence, Structured):
            logging.error("Input holds no structured steps; use --file to render textual steps")
            return 1
        print(emit(document.sequence.steps, target, document.base_url))
        return 0

    generated = build_test_file(document, target)
    if args.output:
        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / generated.filename
        path.write_text(generated.content, encoding="utf-8")
        print(f"Test file written to {path}")
    else:
        print(generated.content)
    return 0


if __name__ == "__main__":
    sys.exit(main())
