"""Bounded recency collections: generation history and recent prompts.

Both collections follow the same rules:

- newest first
- bounded by a configured cap; the oldest items fall off the end
- never mutated in place; every update builds a new list and swaps it in

History entries are prepended and truncated; delete-by-id and clear are the
only other updates.  Recent-prompt lists additionally deduplicate: inserting a
prompt removes any earlier exact copy before prepending, so a resubmitted
prompt moves to the front instead of appearing twice.

The store is shared by every session (composition and direct modes write
history independently), so each update is a read-modify-write performed under
a lock.  When paths are given, both collections are persisted as JSON after
each update and reloaded on start-up: unreadable files start empty and
malformed entries are dropped.  Files are replaced atomically.  A failed write
is logged and the in-memory collections stay authoritative, so a full disk
never turns a successful generation into an error.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class HistoryKind(str, Enum):
    """Which generation produced a history entry."""

    TEMPLATE = "template"
    FINAL = "final"
    DIRECT = "direct"


class PromptCategory(str, Enum):
    """One recent-prompt list exists per category."""

    TEMPLATE = "template"
    SUBJECT = "subject"
    DIRECT = "direct"


@dataclass(frozen=True)
class HistoryEntry:
    """A single generated image in the user's history.

    Attributes
    ----------
    id : int
        Creation-order-unique identifier (milliseconds, strictly increasing)
    kind : HistoryKind
        Generation stage that produced the image
    image : str
        PNG data URL
    prompt : str
        Prompt actually submitted
    negative_prompt : str
        Negative prompt actually submitted
    timestamp : float
        Unix time of creation
    aspect_ratio : str
        Aspect ratio the image was requested with
    """

    id: int
    kind: HistoryKind
    image: str
    prompt: str
    negative_prompt: str
    timestamp: float
    aspect_ratio: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        return cls(
            id=int(data["id"]),
            kind=HistoryKind(data["kind"]),
            image=str(data["image"]),
            prompt=str(data.get("prompt", "")),
            negative_prompt=str(data.get("negative_prompt", "")),
            timestamp=float(data.get("timestamp", 0.0)),
            aspect_ratio=str(data.get("aspect_ratio", "1:1")),
        )

    def reuse_target(self) -> dict[str, str]:
        """Describe where this entry's settings go when the user reuses it.

        Template and final entries reopen composition mode (filling the template
        or subject prompt); direct entries reopen direct mode.
        """
        if self.kind == HistoryKind.DIRECT:
            mode, prompt_field = "direct", "direct_prompt"
        elif self.kind == HistoryKind.TEMPLATE:
            mode, prompt_field = "composition", "template_prompt"
        else:
            mode, prompt_field = "composition", "subject_prompt"

        return {
            "mode": mode,
            "prompt_field": prompt_field,
            "prompt": self.prompt,
            "negative_prompt": self.negative_prompt,
            "aspect_ratio": self.aspect_ratio,
        }


def prepend_bounded(items: list, new_items: list, limit: int) -> list:
    """Return ``new_items + items`` truncated to ``limit``."""
    return (list(new_items) + list(items))[:limit]


def insert_recent(items: list[str], value: str, limit: int) -> list[str]:
    """Move or insert ``value`` at the front, dropping exact duplicates."""
    return ([value] + [item for item in items if item != value])[:limit]


class RecencyStore:
    """Shared owner of history and recent-prompt lists.

    All mutation goes through the methods below; readers get copies.

    Args:
        history_limit: Maximum number of history entries
        recent_prompt_limit: Maximum length of each recent-prompt list
        history_path: Optional JSON file for history persistence
        recent_prompts_path: Optional JSON file for recent-prompt persistence
    """

    def __init__(
        self,
        history_limit: int = 50,
        recent_prompt_limit: int = 10,
        history_path: Path | None = None,
        recent_prompts_path: Path | None = None,
    ) -> None:
        self.history_limit = history_limit
        self.recent_prompt_limit = recent_prompt_limit
        self.history_path = history_path
        self.recent_prompts_path = recent_prompts_path

        self._lock = threading.Lock()
        self._history: list[HistoryEntry] = []
        self._recent: dict[PromptCategory, list[str]] = {c: [] for c in PromptCategory}
        self._last_id = 0

        self._load()

    @classmethod
    def from_config(cls, config) -> RecencyStore:
        """Build a persistent store from a :class:`ContentCanvasConfig`."""
        return cls(
            history_limit=config.history_limit,
            recent_prompt_limit=config.recent_prompt_limit,
            history_path=config.history_path,
            recent_prompts_path=config.recent_prompts_path,
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @property
    def history(self) -> list[HistoryEntry]:
        """Snapshot of the history, newest first."""
        with self._lock:
            return list(self._history)

    def get_history_entry(self, entry_id: int) -> HistoryEntry | None:
        with self._lock:
            return next((e for e in self._history if e.id == entry_id), None)

    def record(
        self,
        kind: HistoryKind,
        images: list[str],
        prompt: str,
        negative_prompt: str = "",
        aspect_ratio: str = "1:1",
    ) -> list[HistoryEntry]:
        """Create history entries for freshly generated images and prepend them.

        Entries of one batch keep the batch order at the head of the history.

        Returns:
            The new entries
        """
        now = time.time()
        with self._lock:
            entries = [
                HistoryEntry(
                    id=self._next_id(),
                    kind=kind,
                    image=image,
                    prompt=prompt,
                    negative_prompt=negative_prompt or "",
                    timestamp=now,
                    aspect_ratio=aspect_ratio,
                )
                for image in images
            ]
            self._history = prepend_bounded(self._history, entries, self.history_limit)
            self._save_history()

        logger.info(f"Recorded {len(entries)} {kind.value} history entr{'y' if len(entries) == 1 else 'ies'}")
        return entries

    def add_history(self, entries: HistoryEntry | list[HistoryEntry]) -> None:
        """Prepend existing entries and truncate to the history limit."""
        new_items = entries if isinstance(entries, list) else [entries]
        with self._lock:
            self._history = prepend_bounded(self._history, new_items, self.history_limit)
            self._last_id = max([self._last_id] + [e.id for e in new_items])
            self._save_history()

    def delete_history_entry(self, entry_id: int) -> bool:
        """Remove one entry by id.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            remaining = [e for e in self._history if e.id != entry_id]
            removed = len(remaining) != len(self._history)
            if removed:
                self._history = remaining
                self._save_history()
        return removed

    def clear_history(self) -> None:
        with self._lock:
            self._history = []
            self._save_history()
        logger.info("History cleared")

    def _next_id(self) -> int:
        # Caller holds the lock.
        self._last_id = max(self._last_id + 1, int(time.time() * 1000))
        return self._last_id

    # ------------------------------------------------------------------
    # Recent prompts
    # ------------------------------------------------------------------

    def recent_prompts(self, category: PromptCategory) -> list[str]:
        with self._lock:
            return list(self._recent[PromptCategory(category)])

    def add_recent_prompt(self, category: PromptCategory, prompt: str) -> list[str]:
        """Insert a prompt at the front of its category list.

        Empty prompts are ignored.

        Returns:
            The updated list
        """
        category = PromptCategory(category)
        with self._lock:
            if prompt:
                self._recent[category] = insert_recent(
                    self._recent[category], prompt, self.recent_prompt_limit
                )
                self._save_recent()
            return list(self._recent[category])

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        raw_history = _read_json(self.history_path, [])
        history: list[HistoryEntry] = []
        if isinstance(raw_history, list):
            for item in raw_history:
                try:
                    history.append(HistoryEntry.from_dict(item))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Dropping malformed history entry: {e}")
        self._history = history[: self.history_limit]
        self._last_id = max([0] + [e.id for e in self._history])

        raw_recent = _read_json(self.recent_prompts_path, {})
        if isinstance(raw_recent, dict):
            for category in PromptCategory:
                values = raw_recent.get(category.value, [])
                if isinstance(values, list):
                    deduped: list[str] = []
                    for value in values:
                        if isinstance(value, str) and value and value not in deduped:
                            deduped.append(value)
                    self._recent[category] = deduped[: self.recent_prompt_limit]

        if self.history_path is not None:
            logger.info(f"Loaded {len(self._history)} history entries from {self.history_path}")

    def _save_history(self) -> None:
        try:
            _write_json(self.history_path, [e.to_dict() for e in self._history])
        except OSError as e:
            logger.error(f"Failed to save history to {self.history_path}: {e}", exc_info=True)

    def _save_recent(self) -> None:
        try:
            _write_json(
                self.recent_prompts_path,
                {category.value: values for category, values in self._recent.items()},
            )
        except OSError as e:
            logger.error(
                f"Failed to save recent prompts to {self.recent_prompts_path}: {e}",
                exc_info=True,
            )


def _read_json(path: Path | None, default):
    """Load JSON from ``path``, returning ``default`` when missing or invalid."""
    if path is None or not path.exists():
        return default
    try:
        with open(path, encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return default


def _write_json(path: Path | None, data) -> None:
    if path is None:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
