"""Resume point persistence with atomic writes to data/state.txt.

The resume point is the index of the next stage to run. It is written
before a stage starts, so a crash or reboot mid-stage re-runs that stage
on the next launch.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from touchless.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class ResumeStore(Protocol):
    def get_stage(self) -> int: ...

    def set_stage(self, index: int) -> None: ...


class FileResumeStore:
    """Human-readable single-integer resume file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_stage(self) -> int:
        """Return the recorded stage index, or 0 if none exists.

        A missing file is created holding 0. Unparsable content is
        treated as 0 rather than an error.

        Raises:
            PersistenceError: If the file cannot be read or created
        """
        if not self.path.exists():
            logger.info(f"State file not found: {self.path}. Starting from stage 0.")
            self.set_stage(0)
            return 0

        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except OSError as e:
            logger.error(f"Failed to read state: {e}")
            raise PersistenceError(f"Could not read resume point from {self.path}: {e}") from e
        try:
            index = int(raw)
        except ValueError:
            logger.warning(f"Unparsable state file {self.path} ({raw!r}). Starting from stage 0.")
            return 0

        if index < 0:
            logger.warning(f"Negative stage index {index} in {self.path}. Starting from stage 0.")
            return 0

        logger.debug(f"Loaded stage {index} from {self.path}")
        return index

    def set_stage(self, index: int) -> None:
        """Atomically persist the stage index.

        Uses a tempfile -> rename pattern so a crash mid-write leaves the
        previous value intact.
        """
        if index < 0:
            raise PersistenceError(f"Refusing to persist negative stage index {index}")

        temp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.path.parent,
                delete=False,
                suffix=".tmp",
                encoding="utf-8",
            ) as temp_file:
                temp_file.write(str(index))
                temp_path = Path(temp_file.name)

            shutil.move(str(temp_path), str(self.path))
            logger.debug(f"Saved stage {index} to {self.path}")

        except OSError as e:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            logger.error(f"Failed to save state: {e}")
            raise PersistenceError(f"Could not persist stage {index} to {self.path}: {e}") from e


class MemoryResumeStore:
    """In-process resume store; records every write."""

    def __init__(self, initial: int = 0):
        self._index = initial
        self.writes: list[int] = []

    def get_stage(self) -> int:
        return self._index

    def set_stage(self, index: int) -> None:
        if index < 0:
            raise PersistenceError(f"Refusing to persist negative stage index {index}")
        self._index = index
        self.writes.append(index)
