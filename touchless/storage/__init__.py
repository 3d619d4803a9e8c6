"""Storage layer for Touchless - file-based persistence.

This package provides:
- Resume point management (data/state.txt)
- The append-only deployment log and per-stage fix scripts
"""

from .files import DeployLog, fix_script_path, save_fix_script
from .state import FileResumeStore, MemoryResumeStore, ResumeStore

__all__ = [
    "ResumeStore",
    "FileResumeStore",
    "MemoryResumeStore",
    "DeployLog",
    "fix_script_path",
    "save_fix_script",
]
