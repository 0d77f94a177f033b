"""
Persistence tracker for pair identities.

Remembers the logical height at which each pair identity was first seen,
so an opportunity only counts once it has survived several cycles.

Entries are never removed unless a size bound is configured, in which
case the least recently observed identity is evicted first.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Union

from cachetools import Cache, LRUCache

from arbguard.core.logging import LoggerMixin
from arbguard.domain.models import PairIdentity, PersistenceEntry


class _EvictionAwareLRU(LRUCache):
    """LRUCache that reports every eviction to a callback."""

    def __init__(self, maxsize: int, on_evict: Callable[[PairIdentity, int], None]):
        super().__init__(maxsize=maxsize)
        self._on_evict = on_evict

    def popitem(self):
        key, value = super().popitem()
        self._on_evict(key, value)
        return key, value


class PersistenceTracker(LoggerMixin):
    """
    Map of PairIdentity -> first-seen logical height.

    observe() is the only mutator. Wrap calls in transaction() to make a
    group of observe() calls all-or-nothing.
    """

    def __init__(self, threshold: int = 2, max_entries: Optional[int] = None):
        """
        Args:
            threshold: Height increments an identity must span to mature
            max_entries: Optional bound; None keeps every identity forever
        """
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")

        self.threshold = threshold
        self.max_entries = max_entries
        self._entries: Union[dict[PairIdentity, int], _EvictionAwareLRU]
        if max_entries is None:
            self._entries = {}
        else:
            self._entries = _EvictionAwareLRU(max_entries, self._record_eviction)

        # Undo log for the active transaction, None outside one
        self._journal: Optional[list[tuple[str, PairIdentity, int]]] = None

    def observe(self, identity: PairIdentity, height: int) -> bool:
        """
        Record or check an identity.

        Returns:
            False on first sighting (the height is stored), otherwise
            whether height - first_seen >= threshold.
        """
        first_seen = self._entries.get(identity)
        if first_seen is None:
            self._entries[identity] = height
            if self._journal is not None:
                self._journal.append(("insert", identity, height))
            self.logger.debug(f"First sighting of pair {identity} at height {height}")
            return False

        return height - first_seen >= self.threshold

    def first_seen(self, identity: PairIdentity) -> Optional[int]:
        """First-seen height, or None if never observed. Does not mutate."""
        if identity not in self._entries:
            return None
        return self._peek(identity)

    def _peek(self, identity: PairIdentity) -> int:
        if isinstance(self._entries, LRUCache):
            # Base Cache lookup skips the LRU recency update
            return Cache.__getitem__(self._entries, identity)
        return self._entries[identity]

    def entries(self) -> list[PersistenceEntry]:
        return [
            PersistenceEntry(pair_identity=k, first_seen_height=self._peek(k))
            for k in list(self._entries)
        ]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: PairIdentity) -> bool:
        return identity in self._entries

    def _record_eviction(self, identity: PairIdentity, height: int) -> None:
        self.logger.info(f"Evicted pair {identity} (first seen at {height})")
        if self._journal is not None:
            self._journal.append(("evict", identity, height))

    @contextmanager
    def transaction(self) -> Iterator["PersistenceTracker"]:
        """
        Undo every insert/eviction made inside the block if it raises.

        Nested blocks join the outermost transaction.
        """
        if self._journal is not None:
            yield self
            return

        self._journal = []
        try:
            yield self
        except BaseException:
            self._rollback()
            raise
        finally:
            self._journal = None

    def _rollback(self) -> None:
        journal, self._journal = self._journal or [], None
        for action, identity, height in reversed(journal):
            if action == "insert":
                self._entries.pop(identity, None)
            else:
                self._entries[identity] = height
        if journal:
            self.logger.warning(f"Rolled back {len(journal)} tracker change(s)")
