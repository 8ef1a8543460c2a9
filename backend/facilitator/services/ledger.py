"""Experience ledger — cumulative XP and contribution history per participant.

The in-memory mapping is authoritative. Every mutation schedules a write of
the whole ledger to disk; writes are coalesced and run off the caller's path.
A failed write is logged and left for the next mutation to retry.
"""

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import aiofiles

logger = logging.getLogger(__name__)


@dataclass
class Contribution:
    points: int
    reason: str
    timestamp: int  # epoch milliseconds

    def to_dict(self) -> dict:
        return {"points": self.points, "reason": self.reason, "timestamp": self.timestamp}


@dataclass
class LedgerEntry:
    id: str
    name: str
    points: int = 0
    contributions: list[Contribution] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "points": self.points,
            "contributions": [c.to_dict() for c in self.contributions],
        }

    @classmethod
    def from_dict(cls, participant_id: str, data: dict) -> "LedgerEntry":
        return cls(
            id=str(data.get("id", participant_id)),
            name=str(data.get("name", "")),
            points=int(data.get("points", 0)),
            contributions=[
                Contribution(
                    points=int(c.get("points", 0)),
                    reason=str(c.get("reason", "")),
                    timestamp=int(c.get("timestamp", 0)),
                )
                for c in data.get("contributions", [])
            ],
        )


class ExperienceLedger:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._entries: dict[str, LedgerEntry] = {}
        self._dirty = False
        self._save_task: Optional[asyncio.Task] = None
        self._write_lock = asyncio.Lock()

    # ── Queries ──────────────────────────────────────────────────────────────

    def get(self, participant_id: str) -> Optional[LedgerEntry]:
        return self._entries.get(participant_id)

    def points(self, participant_id: str) -> int:
        entry = self._entries.get(participant_id)
        return entry.points if entry else 0

    def top(self, n: int) -> list[LedgerEntry]:
        """Entries by points, highest first; ties keep insertion order."""
        ranked = sorted(self._entries.values(), key=lambda e: -e.points)
        return ranked[:max(n, 0)]

    def snapshot(self) -> dict:
        return {pid: entry.to_dict() for pid, entry in self._entries.items()}

    def __len__(self) -> int:
        return len(self._entries)

    # ── Mutations ────────────────────────────────────────────────────────────

    async def award(self, participant_id: str, display_name: str, points: int, reason: str) -> int:
        """Add points to a participant and return their new total."""
        if points <= 0:
            raise ValueError(f"Awarded points must be positive, got {points}")

        # No await between read and write: concurrent awards cannot interleave.
        entry = self._entries.get(participant_id)
        if entry is None:
            entry = LedgerEntry(id=participant_id, name=display_name)
            self._entries[participant_id] = entry
        entry.name = display_name
        entry.points += points
        entry.contributions.append(
            Contribution(points=points, reason=reason, timestamp=int(time.time() * 1000))
        )
        self._request_save()
        return entry.points

    async def reset(self) -> None:
        """Replace the whole ledger with an empty one and persist it."""
        self._entries = {}
        logger.info("Ledger reset")
        self._dirty = True
        await self.flush()

    # ── Persistence ──────────────────────────────────────────────────────────

    async def load(self) -> None:
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                raw = json.loads(await f.read())
        except FileNotFoundError:
            logger.info("No existing XP data at %s, starting fresh", self.path)
            self._entries = {}
            return
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Could not read XP data from %s (%s), starting fresh", self.path, e)
            self._entries = {}
            return

        if not isinstance(raw, dict):
            logger.error("XP data at %s is not a mapping, starting fresh", self.path)
            self._entries = {}
            return

        try:
            entries = {
                str(pid): LedgerEntry.from_dict(str(pid), data)
                for pid, data in raw.items()
                if isinstance(data, dict)
            }
        except (TypeError, ValueError, AttributeError) as e:
            logger.error("XP data at %s has malformed entries (%s), starting fresh", self.path, e)
            self._entries = {}
            return

        self._entries = entries
        logger.info("XP data loaded: %d participants", len(self._entries))

    def _request_save(self) -> None:
        self._dirty = True
        if self._save_task is None or self._save_task.done():
            self._save_task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while self._dirty:
            self._dirty = False
            if not await self.save():
                # Keep the in-memory state; the next mutation retries.
                break

    async def flush(self) -> None:
        """Wait until every pending change has been written (or has failed)."""
        if self._save_task is not None and not self._save_task.done():
            await self._save_task
        if self._dirty:
            await self._drain()

    async def save(self) -> bool:
        payload = json.dumps(self.snapshot(), indent=2)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        async with self._write_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                    await f.write(payload)
                os.replace(tmp_path, self.path)
            except OSError as e:
                logger.error("Error saving XP data to %s: %s", self.path, e)
                return False
        logger.debug("XP data saved (%d participants)", len(self._entries))
        return True
