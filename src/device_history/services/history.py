"""
Storage-independent history pipeline.

The aggregation runs in three phases regardless of where the rows come from:

1. ``group_rows`` folds flat ``(device, entity, timestamp)`` rows into one
   ``EntityGroup`` per device, keeping a single entry per entity id.
2. ``collect_entity_ids`` gathers the ids to hand to a name resolver in one batch.
3. ``flatten_history`` expands each entry into one ``HistoryEntry`` per
   timestamp, drops repeated ``(entity, timestamp)`` pairs (first seen wins)
   and orders the result newest first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Set, Tuple

Row = Tuple[Hashable, Optional[Hashable], Optional[int]]


@dataclass(frozen=True)
class HistoryEntry:
    entity_id: Hashable
    display_name: Optional[str]
    timestamp: int


@dataclass
class EntityGroup:
    """Entries of one kind on one device, in first-seen order."""

    entries: Dict[Hashable, List[int]] = field(default_factory=dict)

    def add(self, entity_id: Optional[Hashable], timestamp: Optional[int] = None) -> None:
        # A missing entity id is the placeholder row of a device with no entries.
        if entity_id is None:
            return
        timestamps = self.entries.setdefault(entity_id, [])
        if timestamp is not None:
            timestamps.append(timestamp)

    @property
    def unique_count(self) -> int:
        return len(self.entries)

    def entity_ids(self) -> List[Hashable]:
        return list(self.entries)


def group_rows(rows: Iterable[Row]) -> Dict[Hashable, EntityGroup]:
    """Fold ``(device_key, entity_id, timestamp)`` rows into per-device groups."""

    groups: Dict[Hashable, EntityGroup] = {}
    for device_key, entity_id, timestamp in rows:
        group = groups.get(device_key)
        if group is None:
            group = groups[device_key] = EntityGroup()
        group.add(entity_id, timestamp)
    return groups


def collect_entity_ids(groups: Iterable[EntityGroup]) -> Set[Hashable]:
    ids: Set[Hashable] = set()
    for group in groups:
        ids.update(group.entries)
    return ids


def flatten_history(
    group: Optional[EntityGroup],
    names: Mapping[Hashable, Optional[str]],
) -> List[HistoryEntry]:
    """Return the deduplicated history of ``group`` sorted by timestamp, newest first."""

    if group is None:
        return []
    seen: Set[Tuple[Hashable, int]] = set()
    history: List[HistoryEntry] = []
    for entity_id, timestamps in group.entries.items():
        display_name = names.get(entity_id)
        for timestamp in timestamps:
            key = (entity_id, timestamp)
            if key in seen:
                continue
            seen.add(key)
            history.append(HistoryEntry(entity_id, display_name, timestamp))
    # list.sort is stable, so ties keep first-seen order
    history.sort(key=lambda entry: entry.timestamp, reverse=True)
    return history
