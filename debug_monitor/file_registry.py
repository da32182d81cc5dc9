"""Listing of saved debug audio files.

The registry has two writers: refresh() replaces the listing with the
engine's full scan, and on_saved() appends a record pushed by the engine.
They do not coordinate. A record appended while a refresh is in flight
may be dropped when that refresh lands; the next refresh restores it.
"""

from __future__ import annotations

import logging

from debug_monitor.engine import EngineClient
from debug_monitor.models import ArtifactRecord
from debug_monitor.session import SessionState

logger = logging.getLogger(__name__)


class FileRegistry:
    """Artifact records keyed by path, iterated in insertion order."""

    def __init__(self, client: EngineClient, session: SessionState) -> None:
        self._client = client
        self._session = session
        self._records: dict[str, ArtifactRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def records(self) -> tuple[ArtifactRecord, ...]:
        return tuple(self._records.values())

    def replace(self, records: list[ArtifactRecord]) -> None:
        """Replace the listing wholesale; later duplicates of a path win."""
        self._records = {record.path: record for record in records}

    def on_saved(self, record: ArtifactRecord) -> None:
        """Add a pushed record without refetching.

        A record whose path is already listed is updated in place.
        """
        self._records[record.path] = record
        logger.debug(f"Debug file registered: {record.path}")

    def clear(self) -> None:
        self._records.clear()

    async def refresh(self) -> bool:
        """Fetch the engine's full listing and replace the registry with it.

        Returns:
            True if the listing was applied, False if the fetch failed, no
            session is active, or the session ended before the response
        """
        if not self._session.active:
            logger.debug("Skipping file refresh, debug session is not active")
            return False

        generation = self._session.generation
        try:
            records = await self._client.list_debug_files()
        except Exception as e:
            logger.error(f"Failed to fetch debug files: {e}")
            return False

        if not self._session.is_current(generation):
            logger.debug("Dropping debug file listing from an ended session")
            return False

        self.replace(list(records))
        logger.debug(f"Debug file listing refreshed: {len(self._records)} file(s)")
        return True
