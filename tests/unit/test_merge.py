from __future__ import annotations

import uuid

from device_history.services.detail import PartialSummary, merge_summaries
from device_history.services.history import HistoryEntry
from device_history.services.summary import IpRecord

DEVICE_PK = uuid.uuid4()
DOMAIN = uuid.uuid4()
USER = uuid.uuid4()


def _partial(pk: uuid.UUID = DEVICE_PK, *, count: int, history) -> PartialSummary:
    return PartialSummary(
        id=pk,
        device_id="HMD-1",
        mac_addr="aa:bb",
        created_at=None,
        updated_at=None,
        ip_address=[IpRecord("10.0.0.1", 1)],
        unique_count=count,
        history=history,
    )


def test_both_sides_missing_merge_to_none() -> None:
    assert merge_summaries(None, None) is None


def test_domain_only_side_gets_empty_user_view() -> None:
    domain_side = _partial(count=2, history=[HistoryEntry(DOMAIN, "acme", 5)])

    merged = merge_summaries(domain_side, None)

    assert merged.unique_domain_count == 2
    assert merged.unique_user_count == 0
    assert merged.users_history == []
    assert merged.domains_history == [HistoryEntry(DOMAIN, "acme", 5)]


def test_user_only_side_is_not_dropped() -> None:
    user_side = _partial(count=1, history=[HistoryEntry(USER, "alice", 7)])

    merged = merge_summaries(None, user_side)

    assert merged.id == DEVICE_PK
    assert merged.unique_domain_count == 0
    assert merged.unique_user_count == 1
    assert merged.ip_address == [IpRecord("10.0.0.1", 1)]


def test_both_sides_merge_into_one_summary() -> None:
    merged = merge_summaries(
        _partial(count=1, history=[HistoryEntry(DOMAIN, "acme", 5)]),
        _partial(count=1, history=[HistoryEntry(USER, "alice", 7)]),
    )

    assert (merged.unique_domain_count, merged.unique_user_count) == (1, 1)
    assert [entry.entity_id for entry in merged.users_history] == [USER]


def test_disagreeing_sides_keep_the_domain_half() -> None:
    merged = merge_summaries(
        _partial(count=1, history=[HistoryEntry(DOMAIN, "acme", 5)]),
        _partial(uuid.uuid4(), count=3, history=[HistoryEntry(USER, "alice", 7)]),
    )

    assert merged.id == DEVICE_PK
    assert merged.unique_user_count == 0
    assert merged.users_history == []
