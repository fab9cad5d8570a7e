"""Flask application serving the test case API."""
from __future__ import annotations

import argparse
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from flask import Flask, jsonify

from generator_mvp.generator import TestCaseGenerator
from testcase_store.store import RecordStore, get_record_store

from .routes.executions import executions_bp
from .routes.cases import test_cases_bp
from .routes.tooling import tooling_bp
from .services.case_files import GENERATOR_EXTENSION, STORE_EXTENSION

DEFAULT_PORT = 5110


def setup_logging(debug: bool = False, log_dir: Path = Path("log")) -> None:
    log_dir.mkdir(exist_ok=True)

    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level)

    file_handler = TimedRotatingFileHandler(
        log_dir / "testgen-web.log",
        when="midnight",
        encoding="utf-8",
        backupCount=7,
    )
    file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
    logging.getLogger().addHandler(file_handler)


def create_app(
    store: Optional[RecordStore] = None,
    generator: Optional[TestCaseGenerator] = None,
    debug: bool = False,
) -> Flask:
    """Create the Flask application.

    ``store`` and ``generator`` default to the JSON store under
    ``TESTGEN_STORE_DIR`` and an OpenAI-backed generator.
    """
    app = Flask(__name__)
    app.config["DEBUG"] = debug

    app.extensions[STORE_EXTENSION] = store if store is not None else get_record_store()
    app.extensions[GENERATOR_EXTENSION] = generator if generator is not None else TestCaseGenerator()

    app.register_blueprint(test_cases_bp, url_prefix="/api")
    app.register_blueprint(executions_bp, url_prefix="/api")
    app.register_blueprint(tooling_bp, url_prefix="/api")

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "service": "testgen-web"})

    return app


def main(argv: Sequence[str] | None = None) -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Serve the test case API")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(args.debug)
    app = create_app(debug=args.debug)

    print(f"Test case API listening on http://localhost:{args.port}")
    print("Press Ctrl+C to stop")

    app.run(host="0.0.0.0", port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
