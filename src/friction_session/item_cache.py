"""
Local cache of friction items.

Ordered, keyed by item id, newest creations first. The cache never talks to
the backend; the session controller applies confirmed backend responses to it.
"""

import logging
from typing import Iterable, Iterator, List, Optional

from .models import FrictionItem

logger = logging.getLogger(__name__)


class ItemCache:
    """
    Ordered in-memory mirror of the backend's friction items.

    Holds at most one entry per item id. List loads are fenced with
    tickets so that a slow, older load cannot overwrite a newer one, and
    a confirmed insert, replace or remove supersedes every load issued
    before it.
    """

    def __init__(self, items: Optional[Iterable[FrictionItem]] = None):
        self._items: List[FrictionItem] = []
        self._issued_ticket = 0
        self._applied_ticket = 0
        if items:
            self.replace_all(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[FrictionItem]:
        return iter(list(self._items))

    def __contains__(self, item_id: object) -> bool:
        return self._index_of(item_id) is not None

    def get(self, item_id: int) -> Optional[FrictionItem]:
        index = self._index_of(item_id)
        return self._items[index] if index is not None else None

    def ids(self) -> List[int]:
        return [item.id for item in self._items]

    def snapshot(self) -> List[FrictionItem]:
        return list(self._items)

    def insert_front(self, item: FrictionItem) -> None:
        """Insert a newly created item at the head of the list."""
        existing = self._index_of(item.id)
        if existing is not None:
            del self._items[existing]
        self._items.insert(0, item)
        self._supersede_pending_loads()
        logger.debug(f"[CACHE] Inserted item {item.id} at front ({len(self)} items)")

    def replace(self, item: FrictionItem) -> bool:
        """
        Replace the cached entry with the same id, keeping its position.

        Returns:
            False if the id is not cached (nothing changes)
        """
        self._supersede_pending_loads()
        index = self._index_of(item.id)
        if index is None:
            logger.debug(f"[CACHE] Replace skipped, item {item.id} not cached")
            return False
        self._items[index] = item
        return True

    def remove(self, item_id: int) -> bool:
        self._supersede_pending_loads()
        index = self._index_of(item_id)
        if index is None:
            return False
        del self._items[index]
        logger.debug(f"[CACHE] Removed item {item_id} ({len(self)} items)")
        return True

    def replace_all(self, items: Iterable[FrictionItem]) -> None:
        """Swap in a freshly loaded list, dropping repeated ids."""
        seen = set()
        fresh = []
        for item in items:
            if item.id in seen:
                continue
            seen.add(item.id)
            fresh.append(item)
        self._items = fresh

    def clear(self) -> None:
        self._items = []

    # ------------------------------------------------------------------
    # Load fencing
    # ------------------------------------------------------------------

    def begin_load(self) -> int:
        """Issue a ticket for a list load about to be sent."""
        self._issued_ticket += 1
        return self._issued_ticket

    def apply_load(self, ticket: int, items: Iterable[FrictionItem]) -> bool:
        """
        Apply a list load result unless it has been superseded.

        Returns:
            True if the cache was replaced
        """
        if ticket <= self._applied_ticket:
            logger.info(
                f"[CACHE] Discarding stale load #{ticket} "
                f"(superseded at #{self._applied_ticket})"
            )
            return False
        self._applied_ticket = ticket
        self.replace_all(items)
        return True

    def _supersede_pending_loads(self) -> None:
        # Lists requested before a confirmed mutation predate it
        self._applied_ticket = self._issued_ticket

    def _index_of(self, item_id: object) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None
