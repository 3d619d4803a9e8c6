"""Logging setup and Logfire cloud observability."""

import logging
from pathlib import Path

import logfire

from touchless import __version__
from touchless.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_dir: Path, debug: bool = False) -> Path:
    """Send full diagnostics to a file and keep the console for progress.

    The console only shows warnings (everything with --debug) so the
    single-line progress display stays readable.

    Returns:
        Path to the diagnostic log file
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "touchless.log"

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers = [file_handler, console_handler]

    # Reduce noise from HTTP libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    return log_path


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire with instrumentation for the fixer.

    Must be called ONCE at startup, BEFORE any agent code runs. Instruments
    pydantic-ai agent runs and the OpenAI SDK, and bridges Python logging
    to Logfire.

    Args:
        settings: Application settings containing Logfire token

    Returns:
        None. Logs success or warning messages.
    """
    if not settings.logfire_token:
        logger.debug("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="touchless",
            service_version=__version__,
            console=False,
        )

        logfire.instrument_pydantic_ai()
        logfire.instrument_openai()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        # Continue running - observability is optional
