"""
Integration tests for the scoped, paginated device history list.
"""
import uuid
from datetime import datetime

import pytest
from sqlalchemy import update

from device_history.models import Device
from device_history.services.aggregator import HistoryAggregator
from device_history.services.errors import InvalidQuery
from device_history.services.pagination import Page
from device_history.services.recorder import InteractionRecorder
from device_history.services.registry import DeviceRegistry
from device_history.services.scope import DirectoryScopeProvider, VisibilityScope


@pytest.fixture
def devices(db_session, directory):
    """
    HMD-1: acme at 10, alice at 20 (twice), bob at 15
    HMD-2: globex at 30, carol at 40
    HMD-3: bob at 5
    HMD-4: registered, never used
    """
    registry = DeviceRegistry(db_session, device_limit=10)
    recorder = InteractionRecorder(db_session, registry)
    recorder.record_domain_access("HMD-1", directory.acme.id, "10.0.0.1", "mac-1", now=10)
    recorder.record_user_access("HMD-1", directory.alice.id, "10.0.0.1", "mac-1", now=20)
    recorder.record_user_access("HMD-1", directory.alice.id, "10.0.0.2", "mac-1", now=20)
    recorder.record_user_access("HMD-1", directory.bob.id, "10.0.0.1", "mac-1", now=15)
    recorder.record_domain_access("HMD-2", directory.globex.id, "192.168.1.5", "mac-2", now=30)
    recorder.record_user_access("HMD-2", directory.carol.id, "192.168.1.5", "mac-2", now=40)
    recorder.record_user_access("HMD-3", directory.bob.id, "10.0.0.3", "mac-3", now=5)
    registry.register("HMD-4", "mac-4")
    return directory


@pytest.fixture
def aggregator(db_session):
    return HistoryAggregator(db_session, default_page_limit=2)


def _scope(db_session, user):
    return DirectoryScopeProvider(db_session).scope_for(user)


def _ids(summaries):
    return [summary.device_id for summary in summaries]


def test_device_qualifies_through_domain_or_user(db_session, devices, aggregator):
    summaries = aggregator.list_devices(_scope(db_session, devices.alice))

    assert sorted(_ids(summaries)) == ["HMD-1", "HMD-3"]
    hmd3 = next(summary for summary in summaries if summary.device_id == "HMD-3")
    assert hmd3.unique_domain_count == 0
    assert hmd3.unique_user_count == 1
    assert hmd3.domains_history == []


def test_admin_sees_every_used_device(db_session, devices, aggregator):
    for device_id, day in (("HMD-1", 2), ("HMD-2", 3), ("HMD-3", 1)):
        db_session.execute(
            update(Device).where(Device.device_id == device_id).values(updated_at=datetime(2026, 1, day))
        )
    db_session.commit()

    summaries = aggregator.list_devices(_scope(db_session, devices.admin))

    # Default order is most recently updated first
    assert _ids(summaries) == ["HMD-2", "HMD-1", "HMD-3"]


def test_empty_scope_lists_nothing(devices, aggregator):
    assert aggregator.list_devices(VisibilityScope()) == []


def test_histories_are_deduplicated_named_and_newest_first(db_session, devices, aggregator):
    (hmd1,) = aggregator.list_devices(
        _scope(db_session, devices.alice), filters=[{"id": "deviceId", "value": "HMD-1"}]
    )

    assert [(entry.display_name, entry.timestamp) for entry in hmd1.users_history] == [
        ("alice", 20),
        ("bob", 15),
    ]
    assert [(entry.display_name, entry.timestamp) for entry in hmd1.domains_history] == [("acme", 10)]
    assert hmd1.unique_user_count == 2
    assert hmd1.unique_domain_count == 1


def test_ip_history_keeps_every_observation(db_session, devices, aggregator):
    (hmd1,) = aggregator.list_devices(_scope(db_session, devices.admin), filters={"deviceId": "HMD-1"})

    assert [(record.ip, record.timestamp) for record in hmd1.ip_address] == [
        ("10.0.0.1", 10),
        ("10.0.0.1", 20),
        ("10.0.0.2", 20),
        ("10.0.0.1", 15),
    ]


def test_counts_only_cover_visible_entities(db_session, devices, aggregator):
    scope = VisibilityScope.of([devices.acme.id], [devices.alice.id])

    (hmd1,) = aggregator.list_devices(scope)

    assert hmd1.unique_user_count == 1
    assert [entry.entity_id for entry in hmd1.users_history] == [devices.alice.id]


def test_unknown_entity_has_null_display_name(db_session, devices, aggregator):
    ghost = uuid.uuid4()
    InteractionRecorder(db_session, DeviceRegistry(db_session, 10)).record_user_access(
        "HMD-4", ghost, "10.0.0.4", "mac-4", now=99
    )

    (hmd4,) = aggregator.list_devices(VisibilityScope.of(user_ids=[ghost]))

    assert hmd4.device_id == "HMD-4"
    assert hmd4.users_history[0].entity_id == ghost
    assert hmd4.users_history[0].display_name is None


def test_filter_by_ip_address(db_session, devices, aggregator):
    summaries = aggregator.list_devices(
        _scope(db_session, devices.admin), filters='[{"id": "ipAddress", "value": "192.168"}]'
    )

    assert _ids(summaries) == ["HMD-2"]


def test_filter_by_device_id_list(db_session, devices, aggregator):
    summaries = aggregator.list_devices(
        _scope(db_session, devices.admin),
        sort={"deviceId": "asc"},
        filters=[{"id": "deviceId", "value": ["HMD-3", "HMD-2"]}],
    )

    assert _ids(summaries) == ["HMD-2", "HMD-3"]


def test_filters_do_not_widen_scope(db_session, devices, aggregator):
    summaries = aggregator.list_devices(
        _scope(db_session, devices.alice), filters=[{"id": "deviceId", "value": "HMD-2"}]
    )

    assert summaries == []


def test_sort_by_unique_user_count(db_session, devices, aggregator):
    summaries = aggregator.list_devices(_scope(db_session, devices.admin), sort='{"uniqueUserCount": -1}')

    assert _ids(summaries)[0] == "HMD-1"


def test_pages_partition_the_full_list(db_session, devices, aggregator):
    scope = _scope(db_session, devices.admin)
    full = _ids(aggregator.list_devices(scope, sort={"deviceId": 1}))

    first = aggregator.list_devices(scope, page=1, sort={"deviceId": 1})
    second = aggregator.list_devices(scope, page=2, sort={"deviceId": 1})

    assert isinstance(first, Page)
    assert (first.total_docs, first.limit, first.total_pages) == (3, 2, 2)
    assert first.has_next_page and not second.has_next_page
    assert _ids(first.docs) + _ids(second.docs) == full


def test_repeated_page_requests_are_stable(db_session, devices, aggregator):
    scope = _scope(db_session, devices.admin)

    pages = [_ids(aggregator.list_devices(scope, page=1, limit=2).docs) for _ in range(3)]

    assert pages[0] == pages[1] == pages[2]


def test_page_past_the_end_is_empty(db_session, devices, aggregator):
    result = aggregator.list_devices(_scope(db_session, devices.admin), page=9, limit=2)

    assert result.docs == []
    assert result.total_docs == 3
    assert result.prev_page == 8


def test_no_matches_gives_zero_pages(aggregator):
    result = aggregator.list_devices(VisibilityScope(), page=1, limit=5)

    assert (result.total_docs, result.total_pages, result.docs) == (0, 0, [])


def test_invalid_sort_field_is_rejected(db_session, devices, aggregator):
    with pytest.raises(InvalidQuery):
        aggregator.list_devices(_scope(db_session, devices.admin), sort={"ipAddress": 1})
