"""Application entry point for the FocusQuiz session server."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
import socket

from dotenv import load_dotenv

from focus_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from focus_app.core.question_importer import load_questions_from_file
from focus_app.core.services.narrative_report import DEFAULT_MODEL_NAME, NarrativeReportService
from focus_app.core.services.record_store import InMemoryRecordStore
from focus_app.core.session_manager import SessionManager
from focus_app.server.api_server import create_api_app, run_api_server
from focus_app.utils.logging_config import configure_logging


def _determine_server_url(port: int) -> str:
    """Best-effort determination of the local IP for the participant-facing URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a live FocusQuiz session server.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--questions", type=Path, help="Question bank file to preload.")
    return parser.parse_args()


def main() -> None:
    """Initialize logging, open a session and serve the API."""
    load_dotenv()
    args = _parse_args()
    logger = configure_logging()
    logger.info("Starting FocusQuiz server...")

    manager = SessionManager(records=InMemoryRecordStore())
    manager.start_session()
    if args.questions is not None:
        imported = load_questions_from_file(args.questions)
        manager.load_question_bank(imported.questions)
        logger.info("Loaded %d questions from %s", len(imported.questions), imported.source)

    narrative = NarrativeReportService.from_api_key(
        os.getenv("GEMINI_API_KEY"),
        os.getenv("GEMINI_MODEL", DEFAULT_MODEL_NAME),
    )
    app = create_api_app(manager, narrative)
    logger.info("Session server available at %s", _determine_server_url(args.port))
    try:
        run_api_server(app, host=args.host, port=args.port)
    finally:
        manager.end_session()


if __name__ == "__main__":
    main()
