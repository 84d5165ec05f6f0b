"""
Build event logging utilities.

Appends machine-readable build events to a JSON Lines file (one JSON object
per line) next to the detailed per-run log. The orchestrator records one
event per state transition, which makes failed builds easy to triage with
grep or jq.

Usage:
    from cvbuild.utils.event_logging import log_build_event, read_build_events

    log_build_event(
        events_file=log_dir / "build_events.jsonl",
        event_type="state_change",
        document="cv",
        old_state="validating",
        new_state="converting",
    )
"""

import json
from pathlib import Path
from typing import List, Optional

from cvbuild.utils.timestamp import now_exact

BUILD_EVENTS_FILENAME = "build_events.jsonl"


def log_build_event(events_file: Path, event_type: str, document: str, **extra_fields) -> None:
    """
    Append an event to a build event log.

    Args:
        events_file: Path to the JSON Lines file (parent directories are created)
        event_type: Type of event (e.g., "state_change", "build_completed")
        document: Document identifier (file stem)
        **extra_fields: Additional event-specific fields (must be JSON serializable)
    """
    events_file.parent.mkdir(parents=True, exist_ok=True)

    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "document": document,
        **extra_fields,
    }

    with open(events_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(event) + "\n")


def read_build_events(events_file: Path, event_type: Optional[str] = None) -> List[dict]:
    """
    Read events from a build event log, optionally filtered by type.

    Returns an empty list when the file does not exist.
    """
    if not events_file.exists():
        return []

    events = []
    with open(events_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            event = json.loads(line)
            if event_type is None or event.get("event_type") == event_type:
                events.append(event)

    return events
