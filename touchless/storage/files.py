"""File I/O for the durable deployment log and fix scripts.

The deployment log is append-only: every command's output, every stage
error and every remediation transcript lands here with a timestamp. It is
never rotated or truncated. Fix scripts are kept one per stage next to the
log so operators can inspect the most recent attempt.
"""

import logging
import re
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class DeployLog:
    """Append-only, timestamped text sink."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def directory(self) -> Path:
        return self.path.parent

    def append(self, text: str) -> None:
        """Append one timestamped entry.

        Raises:
            OSError: If the log cannot be written
        """
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(f"{timestamp}: {text}\n")

    def read(self) -> str:
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8")


def fix_script_path(log_dir: Path, stage_name: str, suffix: str) -> Path:
    """Path of the fix script for a stage (fix_{stage}{suffix})."""
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", stage_name)
    return Path(log_dir) / f"fix_{safe_name}{suffix}"


def save_fix_script(log_dir: Path, stage_name: str, suffix: str, script: str) -> Path:
    """Write a stage's fix script, replacing any earlier attempt.

    Returns:
        Path to the written script
    """
    file_path = fix_script_path(log_dir, stage_name, suffix)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(script, encoding="utf-8")
    logger.info(f"Saved fix script for {stage_name} to {file_path}")
    return file_path
