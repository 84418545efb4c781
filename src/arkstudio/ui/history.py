"""Locally persisted generation history.

History lives in the browser (``gr.BrowserState`` under
:data:`~arkstudio.ui.models.HISTORY_KEY`) as a JSON list of
``{"id", "url", "ts"}`` objects.  It is read once when the page loads and
rewritten after every change.

Rules enforced here:

- newest entries first
- at most :data:`~arkstudio.ui.models.HISTORY_MAX` entries
- no two entries share a URL
"""

import logging
import time
from typing import Any

from .models import HISTORY_MAX, HistoryEntry, new_id

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def merge_history(
    history: list[HistoryEntry], urls: list[str], ts: int | None = None
) -> list[HistoryEntry]:
    """Prepend newly generated URLs that are not already remembered.

    Args:
        history: Existing entries, newest first.
        urls: URLs from the latest generation, in result order.
        ts: Timestamp for the new entries (defaults to now).

    Returns:
        New history list, truncated to HISTORY_MAX entries.
    """
    ts = now_ms() if ts is None else ts
    seen = {entry.url for entry in history}
    added = []
    for url in urls:
        if not url or url in seen:
            continue
        seen.add(url)
        added.append(HistoryEntry(url=url, ts=ts, id=new_id()))

    return [*added, *history][:HISTORY_MAX]


def remove_history_entry(history: list[HistoryEntry], entry_id: str) -> list[HistoryEntry]:
    """Drop the entry with *entry_id*; unknown ids leave the list unchanged."""
    return [entry for entry in history if entry.id != entry_id]


def clear_history() -> list[HistoryEntry]:
    return []


def load_history(raw: Any) -> list[HistoryEntry]:
    """Parse stored history, skipping anything malformed.

    Stored data comes from the browser and may be missing, stale or
    hand-edited, so invalid entries and duplicate URLs are dropped instead of
    failing the page load.
    """
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning(f"Ignoring stored history of type {type(raw).__name__}")
        return []

    entries: list[HistoryEntry] = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict):
            continue
        url = item.get("url")
        if not isinstance(url, str) or not url or url in seen:
            continue
        ts = item.get("ts")
        seen.add(url)
        entries.append(
            HistoryEntry(
                url=url,
                ts=int(ts) if isinstance(ts, (int, float)) else 0,
                id=str(item.get("id") or new_id()),
            )
        )
        if len(entries) == HISTORY_MAX:
            break
    return entries


def dump_history(history: list[HistoryEntry]) -> list[dict]:
    """Serialise history for browser storage, capped at HISTORY_MAX."""
    return [{"id": e.id, "url": e.url, "ts": e.ts} for e in history[:HISTORY_MAX]]
