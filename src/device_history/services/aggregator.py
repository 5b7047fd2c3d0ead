"""
History aggregator: the paginated, scope-restricted device list.

Devices qualify when they hold at least one in-scope domain entry or at least
one in-scope user entry, and satisfy every structured filter. The qualifying
devices are sorted and paged in the store; the history pipeline then runs
only over the devices of the requested page.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Hashable, List, Optional, Sequence, Union

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.device import Device
from ..models.interaction import EntityKind
from .deadline import Deadline
from .errors import StorageUnavailable
from .filters import build_filter_clauses
from .history import EntityGroup, collect_entity_ids, flatten_history, group_rows
from .names import DirectoryNameResolver, NameResolver
from .pagination import Page, paginate, parse_sort, resolve_page
from .scope import VisibilityScope
from .summary import (
    DeviceSummary,
    load_entity_rows,
    load_ip_history,
    scoped_entry_count,
    scoped_entry_exists,
)

LOGGER = logging.getLogger(__name__)

SORT_FIELDS = ("deviceId", "macAddr", "createdAt", "updatedAt", "uniqueDomainCount", "uniqueUserCount")


class HistoryAggregator:
    def __init__(
        self,
        db: Session,
        name_resolver: Optional[NameResolver] = None,
        *,
        default_page_limit: int = 10,
    ) -> None:
        self._db = db
        self._names = name_resolver or DirectoryNameResolver(db)
        self._default_page_limit = default_page_limit

    def list_devices(
        self,
        scope: VisibilityScope,
        *,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort: Union[None, str, dict] = None,
        filters: Union[None, str, list, dict] = None,
        deadline: Optional[Deadline] = None,
    ) -> Union[Page[DeviceSummary], List[DeviceSummary]]:
        """
        List devices visible within ``scope`` with their interaction histories.
        
        Args:
            scope: Domain and user ids the caller may see
            page: 1-indexed page; None returns every matching device
            limit: Page size (defaults to the configured page limit)
            sort: ``{field: direction}`` mapping or its JSON text
            filters: ``[{"id": field, "value": value}]`` or its JSON text
            deadline: Optional deadline checked between phases
            
        Returns:
            A ``Page`` of summaries, or a plain list when unpaginated
            
        Raises:
            InvalidQuery: for malformed paging, sort or filter input
            StorageUnavailable: if the store fails
        """
        deadline = deadline or Deadline.unbounded()
        paging = resolve_page(page, limit, self._default_page_limit)
        sort_spec = parse_sort(sort, SORT_FIELDS)
        filter_clauses = build_filter_clauses(filters)

        domain_count = scoped_entry_count(EntityKind.DOMAIN, scope.domain_ids).label("unique_domain_count")
        user_count = scoped_entry_count(EntityKind.USER, scope.user_ids).label("unique_user_count")
        stmt = select(Device, domain_count, user_count).where(
            or_(
                scoped_entry_exists(EntityKind.DOMAIN, scope.domain_ids),
                scoped_entry_exists(EntityKind.USER, scope.user_ids),
            ),
            *filter_clauses,
        )

        sortable: Dict[str, Any] = {
            "deviceId": Device.device_id,
            "macAddr": Device.mac_addr,
            "createdAt": Device.created_at,
            "updatedAt": Device.updated_at,
            "uniqueDomainCount": domain_count,
            "uniqueUserCount": user_count,
        }
        order_by = [
            sortable[field_name].desc() if direction < 0 else sortable[field_name].asc()
            for field_name, direction in sort_spec
        ]
        order_by.append(Device.id.asc())

        try:
            deadline.check("device selection")
            result = paginate(
                self._db,
                stmt,
                order_by=order_by,
                page=paging[0] if paging else None,
                limit=paging[1] if paging else None,
            )
            devices = [row[0] for row in (result.docs if isinstance(result, Page) else result)]
            summaries = self.summarize(devices, scope, deadline)
        except SQLAlchemyError as exc:
            LOGGER.exception("Device history aggregation failed")
            raise StorageUnavailable("Could not aggregate device histories") from exc

        if isinstance(result, Page):
            return Page(summaries, result.total_docs, result.limit, result.page, result.total_pages)
        return summaries

    def summarize(
        self,
        devices: Sequence[Device],
        scope: VisibilityScope,
        deadline: Optional[Deadline] = None,
    ) -> List[DeviceSummary]:
        """Build summaries for ``devices``, preserving their order."""
        deadline = deadline or Deadline.unbounded()
        device_pks = [device.id for device in devices]

        deadline.check("entry grouping")
        domain_groups = group_rows(load_entity_rows(self._db, device_pks, EntityKind.DOMAIN, scope.domain_ids))
        user_groups = group_rows(load_entity_rows(self._db, device_pks, EntityKind.USER, scope.user_ids))

        deadline.check("name resolution")
        domain_names = self._names.resolve(EntityKind.DOMAIN, collect_entity_ids(domain_groups.values()))
        user_names = self._names.resolve(EntityKind.USER, collect_entity_ids(user_groups.values()))

        deadline.check("ip history")
        ip_history = load_ip_history(self._db, device_pks)

        return [
            DeviceSummary(
                id=device.id,
                device_id=device.device_id,
                mac_addr=device.mac_addr,
                created_at=device.created_at,
                updated_at=device.updated_at,
                unique_domain_count=_unique_count(domain_groups, device.id),
                unique_user_count=_unique_count(user_groups, device.id),
                ip_address=ip_history.get(device.id, []),
                domains_history=flatten_history(domain_groups.get(device.id), domain_names),
                users_history=flatten_history(user_groups.get(device.id), user_names),
            )
            for device in devices
        ]


def _unique_count(groups: Dict[Hashable, EntityGroup], device_pk: uuid.UUID) -> int:
    group = groups.get(device_pk)
    return group.unique_count if group else 0
