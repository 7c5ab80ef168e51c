"""Append-only activity log sink.

There is no update or delete: entries are written once by the workflows
and read back newest-first by the admin log view.
"""

from __future__ import annotations

from typing import Protocol

from docseal.models.activity import ActivityLog


class ActivityRepo(Protocol):
    async def append(self, entry: ActivityLog) -> None: ...
    async def list_recent(self, limit: int = 100) -> list[ActivityLog]: ...


class InMemoryActivityRepo:
    def __init__(self) -> None:
        self._entries: list[ActivityLog] = []

    async def append(self, entry: ActivityLog) -> None:
        self._entries.append(entry)

    async def list_recent(self, limit: int = 100) -> list[ActivityLog]:
        return list(reversed(self._entries[-limit:])) if limit > 0 else []
