"""
Shared fixtures for building Claude Code log trees on disk.
"""

import json
import os
from pathlib import Path

import pytest

SONNET = "claude-sonnet-4-20250514"


def assistant_record(
    message_id,
    timestamp,
    input_tokens=0,
    output_tokens=0,
    cache_creation=0,
    cache_read=0,
    model=SONNET,
):
    """One assistant log line as Claude Code writes it."""
    message = {
        "id": message_id,
        "usage": {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cache_creation_input_tokens": cache_creation,
            "cache_read_input_tokens": cache_read,
        },
    }
    if model is not None:
        message["model"] = model
    return json.dumps({"timestamp": timestamp, "type": "assistant", "message": message})


@pytest.fixture
def record():
    """Factory for assistant log lines."""
    return assistant_record


@pytest.fixture
def claude_dir(tmp_path):
    """Empty Claude directory with a projects/ root."""
    root = tmp_path / "claude"
    (root / "projects").mkdir(parents=True)
    return root


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "ccmonitor-data"


@pytest.fixture
def write_log(claude_dir):
    """Write a log file under projects/<project>/ with an explicit mtime.

    Each call without an mtime gets a strictly increasing one so change
    detection never depends on filesystem timestamp resolution.
    """
    counter = {"mtime": 1_700_000_000_000_000_000}

    def _write(project, name, lines, mtime_ns=None, trailing_newline=True):
        project_dir = claude_dir / "projects" / project
        project_dir.mkdir(parents=True, exist_ok=True)
        path = project_dir / name
        content = "\n".join(lines)
        if trailing_newline and lines:
            content += "\n"
        path.write_text(content, encoding="utf-8")
        if mtime_ns is None:
            counter["mtime"] += 1_000_000_000
            mtime_ns = counter["mtime"]
        os.utime(path, ns=(mtime_ns, mtime_ns))
        return path

    return _write
