"""Durable named slots for client-side state.

A slot holds one serialized string (JSON in practice). :class:`FileStorage`
keeps each slot in its own file under a per-session directory so state
survives a restart; :class:`MemoryStorage` is the in-process equivalent.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_SLOT_RE = re.compile(r"[^A-Za-z0-9_.-]")


class SlotStorage(Protocol):
    """Minimal key/value interface used by the cart and order book."""

    def get(self, slot: str) -> str | None: ...

    def set(self, slot: str, value: str) -> None: ...

    def remove(self, slot: str) -> None: ...


class MemoryStorage:
    """Slot storage kept in a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.slots: dict[str, str] = dict(initial or {})

    def get(self, slot: str) -> str | None:
        return self.slots.get(slot)

    def set(self, slot: str, value: str) -> None:
        self.slots[slot] = value

    def remove(self, slot: str) -> None:
        self.slots.pop(slot, None)


class FileStorage:
    """Slot storage backed by one file per slot.

    Writes go to a temporary file which is then renamed over the target, so a
    crash mid-write leaves either the old or the new payload on disk.
    """

    def __init__(self, root: str | Path, session_id: str = "default") -> None:
        self.directory = Path(root) / _SLOT_RE.sub("_", session_id)

    def _path(self, slot: str) -> Path:
        return self.directory / f"{_SLOT_RE.sub('_', slot)}.json"

    def get(self, slot: str) -> str | None:
        path = self._path(slot)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("unreadable slot %s: %s", path, exc)
            return None

    def set(self, slot: str, value: str) -> None:
        path = self._path(slot)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove(self, slot: str) -> None:
        self._path(slot).unlink(missing_ok=True)
