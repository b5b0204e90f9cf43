"""Process entry point for the relay.

Validates configuration, then serves the API and the chat UI either from a
single server (``RUN_MODE=integrated``, default) or as two processes
(``RUN_MODE=separate``).
"""

import logging
import os
import subprocess
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

# Load environment variables before any other imports that might need them
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

HOST = os.getenv("HOST", "0.0.0.0")
API_PORT = int(os.getenv("PORT", "8000"))
UI_PORT = int(os.getenv("UI_PORT", "8080"))


def validate_configuration() -> None:
    """Exit with status 1 if upstream configuration is missing or invalid."""
    from agent_relay.config import get_settings

    try:
        settings = get_settings()
    except ValidationError as e:
        logger.critical(f"Invalid configuration:\n{e}")
        sys.exit(1)
    logger.info(
        f"Upstream {settings.project_endpoint} (api-version {settings.api_version}, "
        f"messages scoped by {settings.message_scope.value})"
    )


def _serve(app) -> None:
    import uvicorn

    uvicorn.run(app, host=HOST, port=API_PORT, log_level=os.getenv("LOG_LEVEL", "info").lower())


def run_integrated() -> None:
    """Serve the API and the NiceGUI page from one server on ``PORT``."""
    from nicegui import ui

    from agent_relay.api.app import create_app
    from agent_relay.api.deps import get_relay_services
    from agent_relay.ui.chat_page import chat_page  # noqa: F401 - Registers the page

    app = create_app(get_relay_services())
    ui.run_with(
        app,
        title="Agent Assistant",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "agent-relay-secret"),
    )

    logger.info(f"Chat UI on http://localhost:{API_PORT}/, API docs on /docs")
    _serve(app)


def run_separate() -> None:
    """Serve the API in this process and the UI in a child process on ``UI_PORT``."""
    from agent_relay.api.app import create_app
    from agent_relay.api.deps import get_relay_services

    env = {**os.environ, "API_BASE_URL": f"http://localhost:{API_PORT}"}
    ui_proc = subprocess.Popen(
        [sys.executable, "-c", "from agent_relay.ui.chat_page import main; main()"],
        env=env,
    )
    logger.info(f"API on http://localhost:{API_PORT}, chat UI on http://localhost:{UI_PORT}")
    try:
        _serve(create_app(get_relay_services()))
    finally:
        logger.info("Stopping chat UI process...")
        ui_proc.terminate()
        ui_proc.wait()


def main() -> None:
    """Application entry point (``agent-relay`` console script)."""
    validate_configuration()

    mode = os.getenv("RUN_MODE", "integrated").lower()
    logger.info(f"Starting Agent Thread Relay in {mode} mode")

    if mode == "separate":
        run_separate()
    else:
        run_integrated()


if __name__ == "__main__":
    main()
