from __future__ import annotations

import uuid

from device_history.services.history import (
    EntityGroup,
    HistoryEntry,
    collect_entity_ids,
    flatten_history,
    group_rows,
)

DEVICE_A = uuid.uuid4()
DEVICE_B = uuid.uuid4()
USER_1 = uuid.uuid4()
USER_2 = uuid.uuid4()


def test_group_rows_keeps_one_entry_per_entity() -> None:
    rows = [
        (DEVICE_A, USER_1, 10),
        (DEVICE_A, USER_1, 12),
        (DEVICE_A, USER_2, 11),
        (DEVICE_B, USER_2, 3),
    ]

    groups = group_rows(rows)

    assert set(groups) == {DEVICE_A, DEVICE_B}
    assert groups[DEVICE_A].entries == {USER_1: [10, 12], USER_2: [11]}
    assert groups[DEVICE_A].unique_count == 2
    assert groups[DEVICE_B].unique_count == 1


def test_placeholder_rows_produce_an_empty_group() -> None:
    groups = group_rows([(DEVICE_A, None, None)])

    assert groups[DEVICE_A].unique_count == 0
    assert flatten_history(groups[DEVICE_A], {}) == []


def test_entry_without_timestamps_still_counts_as_unique() -> None:
    group = EntityGroup()
    group.add(USER_1, None)

    assert group.unique_count == 1
    assert flatten_history(group, {USER_1: "alice"}) == []


def test_duplicate_timestamps_collapse_to_one_history_entry() -> None:
    group = EntityGroup()
    for timestamp in (10, 10, 7):
        group.add(USER_1, timestamp)

    history = flatten_history(group, {USER_1: "alice"})

    assert [entry.timestamp for entry in history] == [10, 7]
    assert group.unique_count == 1


def test_history_is_sorted_newest_first() -> None:
    group = EntityGroup()
    for timestamp in (5, 3, 9):
        group.add(USER_1, timestamp)

    history = flatten_history(group, {USER_1: "alice"})

    assert [entry.timestamp for entry in history] == [9, 5, 3]


def test_same_timestamp_for_different_entities_is_kept_in_first_seen_order() -> None:
    group = EntityGroup()
    group.add(USER_1, 4)
    group.add(USER_2, 4)

    history = flatten_history(group, {USER_1: "alice", USER_2: "bob"})

    assert history == [HistoryEntry(USER_1, "alice", 4), HistoryEntry(USER_2, "bob", 4)]


def test_unresolved_names_are_none() -> None:
    group = EntityGroup()
    group.add(USER_1, 1)

    history = flatten_history(group, {})

    assert history == [HistoryEntry(USER_1, None, 1)]


def test_missing_group_flattens_to_empty_history() -> None:
    assert flatten_history(None, {USER_1: "alice"}) == []


def test_collect_entity_ids_spans_all_groups() -> None:
    groups = group_rows([(DEVICE_A, USER_1, 1), (DEVICE_B, USER_2, 2), (DEVICE_B, USER_1, 3)])

    assert collect_entity_ids(groups.values()) == {USER_1, USER_2}
