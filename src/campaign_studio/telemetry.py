"""In-process campaign event log.

Every event is tagged with the run generation it belongs to (``None`` for
actions outside a run), so a consumer can tell late completions from a
superseded run apart from the current one. ``CAMPAIGN_STUDIO_TELEMETRY_LOG``
mirrors events to a JSON-lines file.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

from typing_extensions import TypedDict

LOG = logging.getLogger(__name__)

_LOCK = threading.Lock()
_EVENTS: List["CampaignEvent"] = []


class CampaignEvent(TypedDict):
    name: str
    generation: Optional[int]
    payload: Dict[str, Any]


def emit_event(name: str, payload: Optional[Dict[str, Any]] = None, *, generation: Optional[int] = None) -> None:
    event: CampaignEvent = {"name": name, "generation": generation, "payload": dict(payload or {})}
    with _LOCK:
        _EVENTS.append(event)
    LOG.debug("event %s generation=%s %s", name, generation, event["payload"])
    sink = os.environ.get("CAMPAIGN_STUDIO_TELEMETRY_LOG")
    if sink:
        _append_line(sink, event)


def _append_line(path: str, event: CampaignEvent) -> None:
    try:
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(event, default=str) + "\n")
    except OSError:
        LOG.warning("Telemetry sink %s not writable", path, exc_info=True)


def get_events(prefix: Optional[str] = None, *, generation: Optional[int] = None) -> List[CampaignEvent]:
    """Recorded events, optionally narrowed to a name prefix and/or one run."""
    with _LOCK:
        events = list(_EVENTS)
    if prefix is not None:
        events = [event for event in events if event["name"].startswith(prefix)]
    if generation is not None:
        events = [event for event in events if event["generation"] == generation]
    return events


def clear_events() -> None:
    with _LOCK:
        _EVENTS.clear()


__all__ = ["CampaignEvent", "emit_event", "get_events", "clear_events"]
