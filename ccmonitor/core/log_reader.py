"""
Claude Code log ingestion and validation.

Walks the projects directory, parses each JSONL line independently and turns
well-formed assistant records into priced usage facts. Malformed lines are
skipped; a missing or unreadable tree yields no facts.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional

from .pricing import BASELINE_MODEL, calculate_cost
from .token_counter import TokenUsage
from ccmonitor.storage.models import UsageFact

log = logging.getLogger(__name__)

LOG_SUFFIX = ".jsonl"

_USAGE_FIELDS = {
    "input_tokens": "input_tokens",
    "output_tokens": "output_tokens",
    "cache_creation_input_tokens": "cache_creation_tokens",
    "cache_read_input_tokens": "cache_read_tokens",
}


def parse_timestamp(ts: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp to an aware UTC datetime.

    Naive timestamps are taken to be UTC. Returns None when unparsable.
    """
    if not ts or not isinstance(ts, str):
        return None
    try:
        dt = datetime.fromisoformat(ts.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _token_count(value: Any) -> int:
    if value is None:
        return 0
    # bool is an int subclass but never a token count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"token count must be an integer, got {value!r}")
    return value


def parse_log_line(line: str) -> Optional[UsageFact]:
    """Convert one raw log line into a usage fact.

    Args:
        line: One line of a JSONL log file

    Returns:
        UsageFact, or None if the line is malformed, not an assistant record,
        lacks usage or a message ID, or reports zero tokens
    """
    try:
        entry = json.loads(line)
    except ValueError:
        return None
    if not isinstance(entry, dict) or entry.get("type") != "assistant":
        return None

    timestamp = parse_timestamp(entry.get("timestamp"))
    if timestamp is None:
        return None

    message = entry.get("message")
    if not isinstance(message, dict):
        return None
    usage = message.get("usage")
    message_id = message.get("id")
    if not isinstance(usage, dict) or not usage:
        return None
    if not isinstance(message_id, str) or not message_id:
        return None

    try:
        counts = {
            field: _token_count(usage.get(key))
            for key, field in _USAGE_FIELDS.items()
        }
        tokens = TokenUsage(**counts)
    except ValueError:
        return None
    if tokens.is_empty:
        return None

    model = message.get("model")
    if not isinstance(model, str) or not model:
        model = BASELINE_MODEL.value

    return UsageFact(
        message_id=message_id,
        timestamp=timestamp,
        input_tokens=tokens.input_tokens,
        output_tokens=tokens.output_tokens,
        cache_creation_tokens=tokens.cache_creation_tokens,
        cache_read_tokens=tokens.cache_read_tokens,
        model=model,
        cost=calculate_cost(model, tokens),
    )


def iter_log_files(projects_dir: Path) -> Iterator[Path]:
    """Yield every log file under projects_dir/<project>/, in sorted order.

    A missing or unreadable projects directory yields nothing.
    """
    try:
        projects = sorted(p for p in projects_dir.iterdir() if p.is_dir())
    except OSError as e:
        log.debug("Could not list projects directory %s: %s", projects_dir, e)
        return

    for project in projects:
        try:
            files = sorted(project.iterdir())
        except OSError as e:
            log.debug("Could not list project directory %s: %s", project, e)
            continue
        for path in files:
            if path.name.endswith(LOG_SUFFIX) and path.is_file():
                yield path


def read_log_file(path: Path) -> List[UsageFact]:
    """Read a whole log file and return its candidate facts in file order.

    The file may be mid-write; a partial final line simply fails to parse.
    Candidates are not deduplicated here.
    """
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        log.debug("Could not read log file %s: %s", path, e)
        return []

    facts = []
    skipped = 0
    for line in content.splitlines():
        if not line.strip():
            continue
        fact = parse_log_line(line)
        if fact is None:
            skipped += 1
            continue
        facts.append(fact)
    if skipped:
        log.debug("Skipped %d non-usage line(s) in %s", skipped, path)
    return facts


def load_all_facts(projects_dir: Path) -> List[UsageFact]:
    """Read every log file under projects_dir, without deduplication."""
    facts: List[UsageFact] = []
    for path in iter_log_files(projects_dir):
        facts.extend(read_log_file(path))
    return facts
