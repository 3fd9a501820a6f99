"""
Default on-disk locations.

The data directory is owned by ccmonitor; the Claude directory is written by
Claude Code and only ever read here.
"""

from pathlib import Path
from typing import Optional, Union

DEFAULT_DATA_DIR = Path.home() / ".ccmonitor"
DEFAULT_CLAUDE_DIR = Path.home() / ".claude"

STATS_FILENAME = "usage-log.jsonl"
SEEN_IDS_FILENAME = "seen-messages.txt"
CONFIG_FILENAME = "config.yaml"
PROJECTS_DIRNAME = "projects"


def resolve_data_dir(data_dir: Optional[Union[str, Path]] = None) -> Path:
    """Return the data directory, falling back to ~/.ccmonitor."""
    return Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR


def resolve_projects_dir(claude_dir: Optional[Union[str, Path]] = None) -> Path:
    """Return the projects root holding the source logs."""
    root = Path(claude_dir).expanduser() if claude_dir else DEFAULT_CLAUDE_DIR
    return root / PROJECTS_DIRNAME

