"""Registry of in-flight todo creations.

This module tracks every queued or in-flight creation by its client-local
id. The registry owns the *current* desired list position of each pending
todo: the user may reorder a pending todo any number of times before its
creation resolves, and the position applied at commit time is whatever was
set last.

A lookup for an id that is no longer registered is a registry miss. Misses
are expected (the creation may already have resolved) and are treated as
no-ops rather than errors.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from todohub.sync.contracts import PendingCreationRecord

logger = logging.getLogger(__name__)


class PendingCreationRegistry:
    """Pending creation records keyed by ``local_id``.

    Single-writer: only the creation queue and the reconciliation engine
    mutate it, both from the event loop thread.
    """

    def __init__(self) -> None:
        self._records: Dict[str, PendingCreationRecord] = {}

    def register(self, record: PendingCreationRecord) -> None:
        """Add or overwrite the record for ``record.local_id``."""
        self._records[record.local_id] = record
        logger.debug(
            f"Registered pending creation {record.local_id} at position {record.desired_position}"
        )

    def get(self, local_id: str) -> Optional[PendingCreationRecord]:
        return self._records.get(local_id)

    def __contains__(self, local_id: object) -> bool:
        return local_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def desired_position(self, local_id: str) -> Optional[int]:
        record = self._records.get(local_id)
        return None if record is None else record.desired_position

    def update_desired_position(self, local_id: str, position: int) -> bool:
        """Set the desired position of a pending creation.

        Returns:
            True if a record was updated, False on a registry miss.
        """
        record = self._records.get(local_id)
        if record is None:
            logger.debug(f"Registry miss updating position of {local_id}; creation already resolved")
            return False
        self._records[local_id] = record.model_copy(update={"desired_position": position})
        return True

    def shift_positions(self, exclude: str, by: int = 1) -> None:
        """Shift every other record's desired position (a todo was inserted above them)."""
        for local_id, record in list(self._records.items()):
            if local_id == exclude:
                continue
            shifted = max(0, record.desired_position + by)
            self._records[local_id] = record.model_copy(update={"desired_position": shifted})

    def remove(self, local_id: str) -> Optional[PendingCreationRecord]:
        """Drop a record; returns it, or None on a registry miss."""
        return self._records.pop(local_id, None)

    def __repr__(self) -> str:
        return f"PendingCreationRegistry(records={len(self._records)})"
